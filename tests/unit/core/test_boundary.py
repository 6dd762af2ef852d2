"""Unit tests for the allow-listed boundary."""

import pytest
from pakky.core.boundary import Boundary, Channel, Operation
from pakky.core.errors import NotAllowedError
from pakky.core.events import EventBus


class TestInvoke:
    """Tests for Boundary.invoke."""

    def test_routes_to_handler(self) -> None:
        """Registered operations reach their handler with keyword arguments."""
        boundary = Boundary(EventBus())
        boundary.register(Operation.QUEUE_REMOVE, lambda ref: f"removed {ref}")

        assert boundary.invoke("queue:remove", ref="git") == "removed git"
        assert boundary.invoke(Operation.QUEUE_REMOVE, ref="jq") == "removed jq"

    def test_unknown_operation_rejected(self) -> None:
        """Names outside the allow-list raise NotAllowedError."""
        boundary = Boundary(EventBus())
        with pytest.raises(NotAllowedError, match="not allowed"):
            boundary.invoke("shell:exec", command="rm -rf /")

    def test_unregistered_operation_rejected(self) -> None:
        """Allowed names without a handler raise NotAllowedError."""
        boundary = Boundary(EventBus())
        with pytest.raises(NotAllowedError, match="not available"):
            boundary.invoke(Operation.QUEUE_LIST)

    def test_register_rejects_unknown_operation(self) -> None:
        """Handlers cannot be attached to names outside the allow-list."""
        boundary = Boundary(EventBus())
        with pytest.raises(NotAllowedError):
            boundary.register("fs:write", lambda: None)

    def test_operations_lists_registered(self) -> None:
        """operations reports registered operations in order."""
        boundary = Boundary(EventBus())
        boundary.register(Operation.QUEUE_LIST, list)
        boundary.register(Operation.INSTALL_STATUS, dict)
        assert boundary.operations == (Operation.QUEUE_LIST, Operation.INSTALL_STATUS)


class TestSubscribe:
    """Tests for Boundary.subscribe."""

    def test_allowed_channel(self) -> None:
        """Allowed channels are forwarded to the bus."""
        bus = EventBus()
        boundary = Boundary(bus)
        received: list[str] = []

        subscription = boundary.subscribe(Channel.INSTALL_LOG, received.append)
        bus.publish("install:log", "line")
        subscription.close()
        bus.publish("install:log", "after")

        assert received == ["line"]

    def test_unknown_channel_rejected(self) -> None:
        """Channels outside the allow-list raise NotAllowedError."""
        boundary = Boundary(EventBus())
        with pytest.raises(NotAllowedError, match="Channel not allowed"):
            boundary.subscribe("queue:internal", print)
