"""API Gateway Lambda handler base class.

Provides the base class shared by every Narra HTTP endpoint. A handler declares
its route, its methods and its request model; the base class takes care of CORS
preflight, method checks, configuration checks, request decoding, error
conversion, logging and metrics.
"""

__all__ = [
    "ApiLambdaHandler",
]

import base64
import binascii
import json
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, ClassVar, Dict, Generic, List, Optional, TypeVar, Union

from aibs_informatics_core.utils.json import JSON
from aws_lambda_powertools.event_handler.api_gateway import BaseRouter, Response
from aws_lambda_powertools.logging import Logger
from aws_lambda_powertools.logging.correlation_paths import API_GATEWAY_REST
from aws_lambda_powertools.metrics import EphemeralMetrics, Metrics
from aws_lambda_powertools.utilities.data_classes import APIGatewayProxyEvent
from aws_lambda_powertools.utilities.typing import LambdaContext

from narra_lambda.common.api.errors import ApiError, MethodNotAllowedError, RequestValidationError
from narra_lambda.common.api.model import ApiRequest
from narra_lambda.common.api.response import ApiResponse, cors_headers
from narra_lambda.common.handler import LambdaHandler, LambdaHandlerType

API_REQUEST = TypeVar("API_REQUEST", bound=ApiRequest)

API_PREFIX = "/api"
INTERNAL_ERROR_MESSAGE = "Internal server error"


@dataclass  # type: ignore[misc] # mypy #5374
class ApiLambdaHandler(LambdaHandler[API_REQUEST, ApiResponse], Generic[API_REQUEST]):
    """Base class for Narra API Gateway handlers.

    Request lifecycle:

    1. `OPTIONS` answers 204 with the CORS headers.
    2. Methods missing from `route_methods()` answer 405.
    3. `validate_config()` resolves the settings the handler needs. A missing secret
       raises `ConfigurationError`, so no third party is contacted.
    4. The request is decoded into the handler's request model.
    5. `handle()` returns a JSON-able object (200) or an `ApiResponse`.

    `ApiError`s become JSON error bodies with their status. Any other exception is
    logged and answered with a generic 500.

    Example:
        ```python
        @dataclass
        class PingRequest(ApiRequest):
            name: str = custom_field(mm_field=StringField(), default="")

        @dataclass
        class PingHandler(ApiLambdaHandler[PingRequest]):
            @classmethod
            def route_name(cls) -> str:
                return "ping"

            def handle(self, request: PingRequest) -> Dict[str, Any]:
                return {"success": True, "message": f"Hola, {request.name}"}

        handler = PingHandler.get_handler()
        ```
    """

    body_required: ClassVar[bool] = False
    decode_body: ClassVar[bool] = True

    _current_event: Optional[APIGatewayProxyEvent] = field(default=None, repr=False)

    # --------------------------------------------------------------------
    # Route definition
    # --------------------------------------------------------------------

    @classmethod
    def route_name(cls) -> str:
        raise NotImplementedError(  # pragma: no cover
            f"{cls.__name__} must implement `route_name`"
        )

    @classmethod
    def route_rule(cls) -> str:
        return f"{API_PREFIX}/{cls.route_name()}"

    @classmethod
    def route_methods(cls) -> List[str]:
        return ["POST"]

    @classmethod
    def cors_headers(cls) -> Dict[str, str]:
        return cors_headers(cls.route_methods())

    # --------------------------------------------------------------------
    # Current event helpers
    # --------------------------------------------------------------------

    @property
    def current_event(self) -> APIGatewayProxyEvent:
        if self._current_event is None:
            raise ValueError(f"Current event not set for {self}.")
        return self._current_event

    @current_event.setter
    def current_event(self, value: Union[APIGatewayProxyEvent, Dict[str, Any]]):
        if not isinstance(value, APIGatewayProxyEvent):
            value = APIGatewayProxyEvent(value)
        self._current_event = value

    def header(self, name: str, default: Optional[str] = None) -> Optional[str]:
        """Case insensitive header lookup."""
        target = name.lower()
        for key, value in (self.current_event.headers or {}).items():
            if key.lower() == target:
                return value
        return default

    def bearer_token(self) -> Optional[str]:
        authorization = self.header("Authorization") or ""
        if not authorization.startswith("Bearer "):
            return None
        return authorization[len("Bearer ") :].strip() or None

    def client_ip(self) -> Optional[str]:
        if ip := self.header("cf-connecting-ip"):
            return ip
        if forwarded := self.header("x-forwarded-for"):
            return forwarded.split(",")[0].strip()
        identity = (self.current_event.get("requestContext") or {}).get("identity") or {}
        return identity.get("sourceIp")

    def raw_body(self) -> bytes:
        body = self.current_event.body
        if body is None:
            return b""
        if self.current_event.is_base64_encoded:
            try:
                return base64.b64decode(body)
            except (binascii.Error, ValueError) as e:
                raise RequestValidationError() from e
        return body.encode("utf-8")

    def json_body(self) -> Optional[JSON]:
        """The decoded JSON body. A missing or malformed body is None."""
        raw = self.raw_body()
        if not raw.strip():
            return None
        try:
            return json.loads(raw)
        except ValueError:
            self.log.info("Request body is not valid JSON. Treating it as absent.")
            return None

    # --------------------------------------------------------------------
    # Request lifecycle
    # --------------------------------------------------------------------

    def validate_config(self) -> None:
        """Resolve the settings this handler depends on.

        Raises:
            ConfigurationError: If a required setting is missing.
        """

    def request_payload(self) -> Dict[str, Any]:
        """Merge query string parameters with the JSON body (body wins)."""
        payload: Dict[str, Any] = dict(self.current_event.query_string_parameters or {})
        if not self.decode_body:
            return payload
        body = self.json_body()
        if isinstance(body, dict):
            payload.update(body)
        elif self.body_required:
            raise RequestValidationError(self.get_request_cls().invalid_message)
        return payload

    def parse_request(self) -> API_REQUEST:
        return self.get_request_cls().from_payload(self.request_payload())

    def process_event(self, event: Union[APIGatewayProxyEvent, Dict[str, Any]]) -> ApiResponse:
        """Run the request lifecycle for a proxy event and build the response."""
        start = datetime.now()
        self.current_event = event
        method = (self.current_event.http_method or "").upper()

        if method == "OPTIONS":
            return ApiResponse.no_content()

        try:
            if method not in self.route_methods():
                raise MethodNotAllowedError()
            self.validate_config()
            request = self.parse_request()
            self.log.debug(f"Decoded request: {request}")
            result = self.handle(request)
            response = result if isinstance(result, ApiResponse) else ApiResponse.json(result)
            self.metrics.add_success_metric(self.handler_name())
        except ApiError as e:
            self.log.warning(f"{self.route_rule()} answered {e.status_code}: {e.message}")
            response = ApiResponse.json(e.to_body(), e.status_code)
            self.metrics.add_failure_metric(self.handler_name())
        except Exception as e:
            self.log.exception(f"Unexpected error handling {self.route_rule()}: {e}")
            response = ApiResponse.json({"error": INTERNAL_ERROR_MESSAGE}, 500)
            self.metrics.add_failure_metric(self.handler_name())
        self.metrics.add_duration_metric(start=start, name=self.handler_name())
        return response

    # --------------------------------------------------------------------
    # Handler provider methods
    # --------------------------------------------------------------------

    @classmethod
    def get_handler(cls, *args, **kwargs) -> LambdaHandlerType:
        """Create a Lambda entry point serving this endpoint alone.

        The entry point takes an API Gateway REST proxy event and returns a proxy
        integration response. The raw event is not logged since it carries bearer tokens.
        """
        logger = cls.get_logger(service=cls.service_name(), add_to_root=False)
        metrics = cls.get_metrics(service=cls.service_name())

        @metrics.log_metrics
        @logger.inject_lambda_context(correlation_id_path=API_GATEWAY_REST, log_event=False)
        def handler(event: Dict[str, Any], context: LambdaContext) -> Dict[str, Any]:
            lambda_handler = cls(*args, **kwargs)  # type: ignore[call-arg]
            lambda_handler.log = logger
            lambda_handler.metrics = metrics
            lambda_handler.context = context
            lambda_handler.add_logger_to_root()
            return lambda_handler.process_event(event).to_proxy_response(cls.cors_headers())

        return handler

    @classmethod
    def add_to_router(
        cls,
        router: BaseRouter,
        *args,
        logger: Optional[Logger] = None,
        metrics: Optional[Union[EphemeralMetrics, Metrics]] = None,
        **kwargs,
    ) -> Callable:
        """Register this handler with an API Gateway router.

        The route is registered for the handler's methods plus `OPTIONS`.

        Args:
            router (BaseRouter): The router to register the handler with.
            *args: Additional arguments passed to the handler constructor.
            logger (Optional[Logger]): Optional logger instance. If None, creates a new one.
            metrics (Optional[Union[EphemeralMetrics, Metrics]]): Optional metrics instance.
                If None, creates a new one.
            **kwargs: Additional keyword arguments passed to the handler constructor.

        Returns:
            The registered gateway handler function.
        """
        logger = logger or cls.get_logger(service=cls.service_name())
        metrics = metrics or cls.get_metrics()
        methods = [*cls.route_methods(), "OPTIONS"]

        @router.route(rule=cls.route_rule(), method=methods)
        def gateway_handler(**route_parameters) -> Response:
            """Generic gateway handler"""
            lambda_handler = cls(*args, **kwargs)  # type: ignore[call-arg]
            lambda_handler.log = logger
            lambda_handler.metrics = metrics
            lambda_handler.context = router.lambda_context
            response = lambda_handler.process_event(router.current_event)
            return response.to_resolver_response(cls.cors_headers())

        return gateway_handler

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(route={self.route_rule()}, methods={self.route_methods()})"
