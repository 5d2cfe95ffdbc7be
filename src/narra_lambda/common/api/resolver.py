"""One Lambda function serving every Narra API endpoint.

`ApiResolverBuilder` collects the `ApiLambdaHandler` classes of a package and registers
each of them on a powertools `APIGatewayRestResolver`, at its route and for its methods
plus `OPTIONS`. Requests to unknown routes answer a JSON 404; exceptions escaping a
handler answer the generic JSON 500.
"""

__all__ = [
    "ApiResolverBuilder",
    "get_target_handler_classes",
]
import json
from dataclasses import dataclass, field
from datetime import datetime
from types import ModuleType
from typing import Callable, ClassVar, List, Optional, Union

from aibs_informatics_core.collections import PostInitMixin
from aibs_informatics_core.utils.json import JSON, JSONObject
from aibs_informatics_core.utils.modules import get_all_subclasses, load_all_modules_from_pkg
from aws_lambda_powertools.event_handler import APIGatewayRestResolver, content_types
from aws_lambda_powertools.event_handler.api_gateway import BaseRouter, Response, Router
from aws_lambda_powertools.event_handler.exceptions import NotFoundError
from aws_lambda_powertools.event_handler.middlewares import NextMiddleware
from aws_lambda_powertools.logging.correlation_paths import API_GATEWAY_REST
from aws_lambda_powertools.utilities.data_classes import APIGatewayProxyEvent
from aws_lambda_powertools.utilities.typing import LambdaContext

from narra_lambda.common.api.handler import INTERNAL_ERROR_MESSAGE, ApiLambdaHandler
from narra_lambda.common.api.response import cors_headers
from narra_lambda.common.logging import LoggingMixins
from narra_lambda.common.metrics import MetricsMixins

LambdaEvent = Union[JSON]  # type: ignore  # https://github.com/python/mypy/issues/7866

ResolverHandlerType = Callable[[LambdaEvent, LambdaContext], JSONObject]

LOG_LEVEL_HEADER = "x-log-level"
FALLBACK_CORS_METHODS = ["GET", "POST"]


def json_error(status_code: int, message: str) -> Response:
    return Response(
        status_code=status_code,
        content_type=content_types.APPLICATION_JSON,
        body=json.dumps({"error": message}),
        headers=cors_headers(FALLBACK_CORS_METHODS),
    )


@dataclass
class ApiResolverBuilder(LoggingMixins, MetricsMixins, PostInitMixin):
    """Build the resolver behind the all-in-one API function.

    Example:
        ```python
        import narra_lambda.handlers

        builder = ApiResolverBuilder()
        builder.add_handlers(narra_lambda.handlers)
        handler = builder.get_lambda_handler()
        ```

    A request may raise its own log level with an `X-Log-Level` header.
    """

    app: APIGatewayRestResolver = field(default_factory=APIGatewayRestResolver)

    metric_name_prefix: ClassVar[str] = "ApiResolver"

    def __post_init__(self):
        super().__post_init__()
        self.logger = self.get_logger(service=self.service_name(), add_to_root=False)

        def log_level_middleware(
            app: APIGatewayRestResolver, next_middleware: NextMiddleware
        ) -> Response:
            self.update_logging_level(app.current_event)
            return next_middleware(app)

        self.app.use(middlewares=[log_level_middleware])
        self.app.exception_handler(Exception)(self.handle_exception)
        self.app.not_found(self.handle_not_found)

    # --------------------------------------------------------------------
    # Resolver callbacks
    # --------------------------------------------------------------------

    def update_logging_level(self, event: APIGatewayProxyEvent) -> None:
        log_level = next(
            (v for k, v in (event.headers or {}).items() if k.lower() == LOG_LEVEL_HEADER), None
        )
        if not log_level:
            return
        try:
            self.logger.setLevel(log_level.upper())
        except (TypeError, ValueError) as e:
            self.logger.warning(f"Ignoring log level {log_level}: {e}")

    def handle_exception(self, e: Exception) -> Response:
        self.logger.exception(
            f"Unhandled error: {e}", extra={"path": self.app.current_event.path}
        )
        return json_error(500, INTERNAL_ERROR_MESSAGE)

    def handle_not_found(self, e: NotFoundError) -> Response:
        self.logger.warning(f"No route for {self.app.current_event.path}")
        self.metrics.add_count_metric("RouteNotFound", 1)
        return json_error(404, "Not found")

    # --------------------------------------------------------------------
    # Entry point
    # --------------------------------------------------------------------

    def handle(self, event: LambdaEvent, context: LambdaContext) -> JSONObject:
        """Resolve an API Gateway proxy event and return the proxy response."""
        start = datetime.now()
        self.logger.info(
            f"Resolving {event.get('httpMethod')} {event.get('path')}"  # type: ignore[union-attr]
        )
        try:
            response = self.app.resolve(event, context)
        except Exception as e:
            self.logger.error(f"Resolver failed: {e}")
            self.metrics.add_failure_metric(self.metric_name_prefix)
            raise
        else:
            self.metrics.add_success_metric(self.metric_name_prefix)
            return response
        finally:
            self.metrics.add_duration_metric(start, name=self.metric_name_prefix)

    def get_lambda_handler(self) -> ResolverHandlerType:
        """`handle` wrapped with the Lambda logging context and metrics flushing."""
        lambda_handler = self.logger.inject_lambda_context(
            correlation_id_path=API_GATEWAY_REST, log_event=False
        )(self.handle)
        return self.metrics.log_metrics(capture_cold_start_metric=True)(lambda_handler)  # type: ignore

    def add_handlers(
        self,
        target_module: ModuleType,
        router: Optional[BaseRouter] = None,
        prefix: Optional[str] = None,
    ):
        """Register every API handler declared in `target_module` and its sub-packages.

        Args:
            target_module (ModuleType): Package holding the handler classes.
            router (Optional[BaseRouter]): Router to register on. Defaults to the resolver
                itself, or to a fresh `Router` when a prefix is given.
            prefix (Optional[str]): Path prefix of every route in the package.
        """
        if router is None:
            router = Router() if prefix else self.app

        for handler_class in get_target_handler_classes(target_module):
            handler_class.add_to_router(router, logger=self.logger, metrics=self.metrics)

        if isinstance(router, Router):
            self.app.include_router(router=router, prefix=prefix)


def get_target_handler_classes(target_module: ModuleType) -> List[ApiLambdaHandler]:
    """Concrete API handlers of a package, sorted by route.

    Only classes that define `route_name` themselves count, so shared bases such as
    `NarraApiHandler` are skipped.
    """
    loaded_modules = load_all_modules_from_pkg(target_module, include_packages=True)
    module_names = {target_module.__name__, *loaded_modules.keys()}

    handler_classes: List[ApiLambdaHandler] = [
        handler_class
        for handler_class in get_all_subclasses(ApiLambdaHandler, True)  # type: ignore[type-abstract]
        if handler_class.__module__ in module_names and "route_name" in vars(handler_class)
    ]
    return sorted(handler_classes, key=lambda c: c.route_rule())  # type: ignore
