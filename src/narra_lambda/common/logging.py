"""Structured logging for Narra handlers.

Every handler logs through an AWS Lambda Powertools `Logger` named after its service
(see `HandlerMixins.service_name`). Clients and helpers log through standard library
loggers, which share the handler's JSON formatting once `add_logger_to_root()` has run.
"""

import logging
from typing import Optional, Union

from aibs_informatics_core.utils.logging import get_all_handlers
from aws_lambda_powertools.logging import Logger

from narra_lambda.common.base import SERVICE_PREFIX, HandlerMixins


class LoggingMixins(HandlerMixins):
    """Gives a handler a lazily created powertools logger, reachable as `log` or `logger`."""

    @property
    def log(self) -> Logger:
        return self.logger

    @log.setter
    def log(self, value: Logger):
        self.logger = value

    @property
    def logger(self) -> Logger:
        try:
            return self._logger
        except AttributeError:
            self.logger = self.get_logger(self.service_name())
        return self.logger

    @logger.setter
    def logger(self, value: Logger):
        self._logger = value

    @classmethod
    def get_logger(cls, service: Optional[str] = None, add_to_root: bool = False) -> Logger:
        return get_service_logger(service=service, add_to_root=add_to_root)

    def add_logger_to_root(self):
        """Route standard library log records through this handler's formatter."""
        add_handler_to_logger(self.logger, None)


def get_service_logger(
    service: Optional[str] = None, child: bool = False, add_to_root: bool = False
) -> Logger:
    """Create a powertools logger for a service.

    Args:
        service (Optional[str]): Service label. Defaults to `narra`.
        child (bool): Create a child logger sharing its parent's handler.
        add_to_root (bool): Also attach the logger's handler to the root logger.

    Returns:
        The service logger.
    """
    service_logger = Logger(service=service or SERVICE_PREFIX, child=child)
    if add_to_root:
        add_handler_to_logger(service_logger)
    return service_logger


def add_handler_to_logger(
    source_logger: Logger, target_logger: Union[str, logging.Logger, None] = None
):
    """Attach the handler of `source_logger` to `target_logger` (root logger by default).

    A named or root target is lowered to the source's level when the source is more
    verbose. Attaching twice is a no-op.
    """
    handler = source_logger.registered_handler

    if target_logger is None or isinstance(target_logger, str):
        target_logger = logging.getLogger(target_logger)
        target_logger.setLevel(min(source_logger.log_level, target_logger.getEffectiveLevel()))

    # powertools re-creates handlers per Logger; match on formatter type too
    for existing in get_all_handlers(target_logger):
        if existing is handler or (
            type(existing) is type(handler)
            and type(existing.formatter) is type(handler.formatter)
        ):
            return
    target_logger.addHandler(handler)
