from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Callable

from authkit.core.logging import get_logger
from authkit.services.identity import Identity

logger = get_logger(__name__)


class UserEventName(str, Enum):
    BEFORE_LOGIN = "before_login"
    AFTER_LOGIN = "after_login"
    BEFORE_LOGOUT = "before_logout"
    AFTER_LOGOUT = "after_logout"


class Verdict(str, Enum):
    PROCEED = "proceed"
    CANCEL = "cancel"


@dataclass
class UserEvent:
    name: UserEventName
    identity: Identity | None
    cookie_based: bool = False
    duration: int = 0
    cancelled: bool = False


# Returning None counts as PROCEED so observers need not return anything.
EventHandler = Callable[[UserEvent], "Verdict | None"]


class EventChain:
    """Ordered handlers per event; the first CANCEL stops the chain."""

    def __init__(self) -> None:
        self._handlers: dict[UserEventName, list[EventHandler]] = {name: [] for name in UserEventName}

    def on(self, name: UserEventName, handler: EventHandler) -> None:
        self._handlers[name].append(handler)

    def off(self, name: UserEventName, handler: EventHandler | None = None) -> bool:
        handlers = self._handlers[name]
        if handler is None:
            removed = bool(handlers)
            handlers.clear()
            return removed
        try:
            handlers.remove(handler)
        except ValueError:
            return False
        return True

    def trigger(self, event: UserEvent) -> Verdict:
        for handler in list(self._handlers[event.name]):
            if handler(event) is Verdict.CANCEL:
                event.cancelled = True
                logger.info(
                    "user_event_cancelled",
                    user_event=event.name.value,
                    identity_id=event.identity.get_id() if event.identity is not None else None,
                )
                return Verdict.CANCEL
        return Verdict.PROCEED
