import logging
from dataclasses import dataclass
from typing import Any, Callable, Generic, Optional, Type, TypeVar, Union, get_args

from aibs_informatics_core.models.base import ModelProtocol
from aibs_informatics_core.utils.json import JSON
from aws_lambda_powertools.utilities.typing import LambdaContext

from narra_lambda.common.logging import LoggingMixins
from narra_lambda.common.metrics import MetricsMixins
from narra_lambda.common.models import DefaultLambdaContext

LambdaEvent = Union[JSON]  # type: ignore # https://github.com/python/mypy/issues/7866
LambdaHandlerType = Callable[[LambdaEvent, LambdaContext], Optional[JSON]]
logger = logging.getLogger(__name__)

REQUEST = TypeVar("REQUEST", bound=ModelProtocol)
RESPONSE = TypeVar("RESPONSE")


@dataclass  # type: ignore[misc] # mypy #5374
class LambdaHandler(
    LoggingMixins,
    MetricsMixins,
    Generic[REQUEST, RESPONSE],
):
    """Base class for creating strongly-typed AWS Lambda handlers.

    Inherit from LambdaHandler to create a handler that expects a REQUEST model
    and returns a RESPONSE. The request type is read from the generic
    parameters of the subclass, so subclasses only implement `handle`.

    Example:
        ```python
        @dataclass
        class PingRequest(SchemaModel):
            name: str = custom_field(mm_field=StringField(), default="")

        class PingHandler(LambdaHandler[PingRequest, dict]):
            def handle(self, request: PingRequest) -> dict:
                return {"message": f"Hola, {request.name}!"}

        handler = PingHandler.get_handler()
        ```
    """

    def __post_init__(self):
        self.context = DefaultLambdaContext()

    def handle(self, request: REQUEST) -> Optional[RESPONSE]:
        raise NotImplementedError(  # pragma: no cover
            f"{self.__class__.__name__} must implement `handle`"
        )

    # --------------------------------------------------------------------
    # Request / Response serialization
    # --------------------------------------------------------------------

    @classmethod
    def get_request_cls(cls) -> Type[REQUEST]:
        """Resolve the request model from the generic parameters of the handler class.

        Raises:
            TypeError: If no concrete request type was bound.
        """
        for klass in cls.__mro__:
            for base in klass.__dict__.get("__orig_bases__", ()):
                args = get_args(base)
                if args and isinstance(args[0], type):
                    return args[0]
        raise TypeError(f"{cls.__name__} does not declare a concrete request type")

    @classmethod
    def deserialize_request(cls, event: LambdaEvent) -> REQUEST:
        return cls.get_request_cls().from_dict(event)  # type: ignore[attr-defined]

    @classmethod
    def serialize_response(cls, response: RESPONSE) -> Any:
        if hasattr(response, "to_dict"):
            return response.to_dict()  # type: ignore[union-attr]
        return response

    # --------------------------------------------------------------------
    # Handler provider methods
    # --------------------------------------------------------------------

    @classmethod
    def get_handler(cls, *args, **kwargs) -> LambdaHandlerType:
        """Lambda entry point running this handler on each event.

        Each invocation builds a fresh handler from `args` and `kwargs` and returns the
        serialized result of `handle` for the decoded event. The event is logged, so this
        entry point is not meant for events carrying credentials.
        """

        logger = cls.get_logger(service=cls.service_name(), add_to_root=False)

        @logger.inject_lambda_context(log_event=True)
        def handler(event: LambdaEvent, context: LambdaContext) -> Optional[JSON]:
            lambda_handler = cls(*args, **kwargs)  # type: ignore[call-arg]
            lambda_handler.log = logger
            lambda_handler.context = context
            lambda_handler.add_logger_to_root()

            request = lambda_handler.deserialize_request(event)
            lambda_handler.log.debug(f"Handling {type(request).__name__}")
            response = lambda_handler.handle(request=request)
            return None if response is None else lambda_handler.serialize_response(response)

        return handler

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(request: {self.get_request_cls().__name__})"
