"""Delivery channel interface for transactional notifications."""

from abc import abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, Generic, Type, Union

from narra_lambda.notifications.model import NOTIFIER_TARGET, EmailContent, NotifierResult


@dataclass
class Notifier(Generic[NOTIFIER_TARGET]):
    """A channel delivering `EmailContent` to targets of one type.

    `notify` reports failures through `NotifierResult.success` instead of raising, so
    each caller decides whether an undelivered email fails its request.
    """

    @classmethod
    def target_class(cls) -> Type[NOTIFIER_TARGET]:
        """Target type bound by the subclass, e.g. `EmailTarget` for `Notifier[EmailTarget]`."""
        return cls.__orig_bases__[0].__args__[0]  # type: ignore

    @abstractmethod
    def notify(self, content: EmailContent, target: NOTIFIER_TARGET) -> NotifierResult:
        raise NotImplementedError(  # pragma: no cover
            f"{self.__class__.__name__} must implement `notify`"
        )

    @classmethod
    def parse_target(cls, target: Union[Dict[str, Any], NOTIFIER_TARGET]) -> NOTIFIER_TARGET:
        """Accept a target instance or its dict form (e.g. `{"to": "ana@example.com"}`).

        Raises:
            ValueError: If `target` is neither.
        """
        target_class = cls.target_class()
        if isinstance(target, target_class):
            return target
        if isinstance(target, dict):
            return target_class.from_dict(target)
        raise ValueError(f"Cannot use {target!r} as {target_class.__name__}")
