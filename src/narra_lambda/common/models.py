"""Lambda context model for running handlers outside of AWS Lambda."""

from dataclasses import dataclass, field

from aibs_informatics_core.utils.os_operations import get_env_var
from aws_lambda_powertools.utilities.typing import LambdaContext
from aws_lambda_powertools.utilities.typing.lambda_client_context import LambdaClientContext
from aws_lambda_powertools.utilities.typing.lambda_cognito_identity import LambdaCognitoIdentity

AWS_LAMBDA_FUNCTION_NAME_KEY = "AWS_LAMBDA_FUNCTION_NAME"
AWS_LAMBDA_FUNCTION_VERSION_KEY = "AWS_LAMBDA_FUNCTION_VERSION"
AWS_LAMBDA_FUNCTION_MEMORY_SIZE_KEY = "AWS_LAMBDA_FUNCTION_MEMORY_SIZE"
AWS_LAMBDA_LOG_GROUP_NAME_KEY = "AWS_LAMBDA_LOG_GROUP_NAME"
AWS_LAMBDA_LOG_STREAM_NAME_KEY = "AWS_LAMBDA_LOG_STREAM_NAME"
AWS_REGION_KEY = "AWS_REGION"

DEFAULT_AWS_LAMBDA_FUNCTION_NAME = "narra-local"
DEFAULT_AWS_REGION = "us-east-1"


@dataclass
class DefaultLambdaContext(LambdaContext):
    """Standard implementation of LambdaContext for non-Lambda environments.

    Used when a handler is constructed directly (local runs, tests) instead of
    being invoked by the Lambda runtime. Fields default to the standard Lambda
    runtime environment variables when they are set.
    """

    _function_name: str = field(
        default_factory=lambda: get_env_var(
            AWS_LAMBDA_FUNCTION_NAME_KEY, default_value=DEFAULT_AWS_LAMBDA_FUNCTION_NAME
        )
    )
    _function_version: str = field(
        default_factory=lambda: get_env_var(AWS_LAMBDA_FUNCTION_VERSION_KEY, default_value="1.0")
    )
    _invoked_function_arn: str = ""
    _memory_limit_in_mb: int = field(
        default_factory=lambda: int(
            get_env_var(AWS_LAMBDA_FUNCTION_MEMORY_SIZE_KEY, default_value="1024")
        )
    )
    _aws_request_id: str = "00000000-0000-0000-0000-000000000000"
    _log_group_name: str = field(
        default_factory=lambda: get_env_var(AWS_LAMBDA_LOG_GROUP_NAME_KEY, default_value="")
    )
    _log_stream_name: str = field(
        default_factory=lambda: get_env_var(AWS_LAMBDA_LOG_STREAM_NAME_KEY, default_value="")
    )
    _identity: LambdaCognitoIdentity = field(default_factory=lambda: LambdaCognitoIdentity())
    _client_context: LambdaClientContext = field(default_factory=lambda: LambdaClientContext())

    def __post_init__(self):
        if not self._invoked_function_arn:
            region = get_env_var(AWS_REGION_KEY, default_value=DEFAULT_AWS_REGION)
            self._invoked_function_arn = (
                f"arn:aws:lambda:{region}:000000000000:function:{self.function_name}"
            )
        if not self._log_group_name:
            self._log_group_name = f"/aws/lambda/{self.function_name}"
        if not self._log_stream_name:
            self._log_stream_name = f"{self.aws_request_id}"
