import os
from unittest import mock

import pytest

NARRA_ENV_PREFIXES = (
    "SUPABASE",
    "PUBLIC_SUPABASE",
    "NEXT_PUBLIC_SUPABASE",
    "REACT_APP_SUPABASE",
    "RESEND_",
    "STRIPE_",
    "OPENAI_",
    "APP_URL",
)


@pytest.fixture(scope="function", autouse=True)
def narra_env_fixture():
    """Hide third party credentials of the developer's shell from the tests.

    Every test starts without Supabase, Resend, Stripe or OpenAI settings so that
    nothing live is contacted by accident.
    """
    # os.environ is restored after the fixture is finished
    with mock.patch.dict(os.environ):
        for name in list(os.environ):
            if name.startswith(NARRA_ENV_PREFIXES):
                del os.environ[name]
        yield
