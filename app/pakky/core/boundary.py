"""Allow-listed boundary between the presentation layer and the engine.

The presentation layer never calls the engine directly: it invokes
named operations and subscribes to named channels. Anything outside
the two enumerations below is rejected before it reaches a handler.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from enum import Enum
from typing import Any

from pakky.core.errors import NotAllowedError
from pakky.core.events import EventBus, Listener, Subscription

logger = logging.getLogger(__name__)

Handler = Callable[..., Any]


class Operation(str, Enum):
    """Operations the presentation layer may invoke."""

    QUEUE_LIST = "queue:list"
    QUEUE_ADD = "queue:add"
    QUEUE_REMOVE = "queue:remove"
    QUEUE_REINSTALL = "queue:reinstall"
    QUEUE_CLEAR = "queue:clear"
    QUEUE_MOVE = "queue:move"
    QUEUE_IMPORT = "queue:import"
    INSTALL_START = "install:start"
    INSTALL_CANCEL = "install:cancel"
    INSTALL_STATUS = "install:status"
    INSTALL_GET_INSTALLED = "install:getInstalled"
    SCRIPTS_SUGGEST = "scripts:suggest"
    SCRIPTS_RUN = "scripts:run"
    SEARCH_BREW = "search:brew"


class Channel(str, Enum):
    """Event channels the presentation layer may observe."""

    INSTALL_PROGRESS = "install:progress"
    INSTALL_LOG = "install:log"


def _parse_operation(name: str | Operation) -> Operation:
    try:
        return Operation(name)
    except ValueError:
        msg = f"Operation not allowed: {name}"
        raise NotAllowedError(msg) from None


def _parse_channel(name: str | Channel) -> Channel:
    try:
        return Channel(name)
    except ValueError:
        msg = f"Channel not allowed: {name}"
        raise NotAllowedError(msg) from None


class Boundary:
    """Routes allow-listed operations to handlers and channels to the bus.

    Example:
        >>> boundary = Boundary(bus)
        >>> boundary.register(Operation.QUEUE_LIST, service.list_queue)
        >>> items = boundary.invoke("queue:list")
    """

    def __init__(self, bus: EventBus) -> None:
        self._bus = bus
        self._handlers: dict[Operation, Handler] = {}

    @property
    def operations(self) -> tuple[Operation, ...]:
        """Operations that currently have a handler."""
        return tuple(self._handlers)

    def register(self, operation: Operation | str, handler: Handler) -> None:
        """Attach a handler to an allowed operation.

        Raises:
            NotAllowedError: If the operation is not in the allow-list.
        """
        self._handlers[_parse_operation(operation)] = handler

    def invoke(self, name: Operation | str, **kwargs: Any) -> Any:
        """Invoke an operation by name.

        Args:
            name: Operation name, e.g. ``queue:add``.
            **kwargs: Arguments passed to the handler.

        Returns:
            Whatever the handler returns.

        Raises:
            NotAllowedError: If the name is not allowed or has no handler.
        """
        operation = _parse_operation(name)
        handler = self._handlers.get(operation)
        if handler is None:
            msg = f"Operation not available: {operation.value}"
            raise NotAllowedError(msg)
        logger.debug("Invoking %s", operation.value)
        return handler(**kwargs)

    def subscribe(self, channel: Channel | str, listener: Listener) -> Subscription:
        """Observe an allowed event channel.

        Returns:
            Subscription; call ``close()`` to stop receiving events.

        Raises:
            NotAllowedError: If the channel is not in the allow-list.
        """
        allowed = _parse_channel(channel)
        return self._bus.subscribe(allowed.value, listener)
