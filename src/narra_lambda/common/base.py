import re

from aws_lambda_powertools.utilities.typing import LambdaContext

CONTEXT_ATTR = "_context"

SERVICE_PREFIX = "narra"


class HandlerMixins:
    """Lambda context access and the names that label a handler's logs and metrics."""

    @property
    def context(self) -> LambdaContext:
        """Context of the invocation being served.

        Raises:
            ValueError: If no invocation has set it yet.
        """
        if not hasattr(self, CONTEXT_ATTR):
            raise ValueError(f"Lambda context has not been set on {self.__class__.__name__}")
        return getattr(self, CONTEXT_ATTR)

    @context.setter
    def context(self, value: LambdaContext):
        setattr(self, CONTEXT_ATTR, value)

    @classmethod
    def handler_name(cls) -> str:
        """Prefix of the handler's metric names, e.g. `AuthorLoginPinHandlerSuccess`."""
        return cls.__name__

    @classmethod
    def service_name(cls) -> str:
        """Service label of the handler's logs and metrics.

        Example:
            >>> AuthorLoginPinHandler.service_name()
            'narra.author-login-pin'
        """
        name = re.sub(r"Handler$", "", cls.__name__) or cls.__name__
        kebab = re.sub(r"(?<!^)(?=[A-Z])", "-", name).lower()
        return f"{SERVICE_PREFIX}.{kebab}"
