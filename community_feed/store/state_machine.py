"""Connection status state machine."""

from typing import ClassVar

import structlog

from community_feed.store.models import ConnectionStatus


logger = structlog.get_logger()


class ConnectionTransitionError(Exception):
    """Raised when an invalid connection status transition is attempted."""

    def __init__(self, from_status: ConnectionStatus, to_status: ConnectionStatus) -> None:
        """Initialize the error.

        Args:
            from_status: The current status.
            to_status: The attempted target status.
        """
        self.from_status = from_status
        self.to_status = to_status
        super().__init__(
            f"Invalid connection transition: {from_status.value} -> {to_status.value}"
        )


class ConnectionStateMachine:
    """State machine for a single connection's status.

    State transitions:
        PENDING -> ACCEPTED: Recipient accepted the request
        PENDING -> DECLINED: Recipient declined the request
        PENDING -> BLOCKED: Either side blocked
        ACCEPTED -> BLOCKED: Either side blocked an existing connection
    """

    VALID_TRANSITIONS: ClassVar[dict[ConnectionStatus, set[ConnectionStatus]]] = {
        ConnectionStatus.PENDING: {
            ConnectionStatus.ACCEPTED,
            ConnectionStatus.DECLINED,
            ConnectionStatus.BLOCKED,
        },
        ConnectionStatus.ACCEPTED: {ConnectionStatus.BLOCKED},
        ConnectionStatus.DECLINED: set(),  # Terminal state
        ConnectionStatus.BLOCKED: set(),  # Terminal state
    }

    def __init__(self, connection_id: str, status: ConnectionStatus) -> None:
        """Initialize the state machine at the connection's current status.

        Args:
            connection_id: Connection identifier for logging.
            status: Current status of the connection.
        """
        self._connection_id = connection_id
        self._status = status
        self._log = logger.bind(component="store", connection_id=connection_id)

    @property
    def status(self) -> ConnectionStatus:
        """Get the current status."""
        return self._status

    def can_transition(self, to_status: ConnectionStatus) -> bool:
        """Check if a transition to the given status is valid.

        Args:
            to_status: The target status.

        Returns:
            True if the transition is valid, False otherwise.
        """
        return to_status in self.VALID_TRANSITIONS.get(self._status, set())

    def transition(self, to_status: ConnectionStatus) -> None:
        """Transition to a new status.

        Args:
            to_status: The target status.

        Raises:
            ConnectionTransitionError: If the transition is invalid.
        """
        if not self.can_transition(to_status):
            self._log.error(
                "invariant_violation",
                error_type="illegal_connection_transition",
                from_status=self._status.value,
                to_status=to_status.value,
            )
            raise ConnectionTransitionError(self._status, to_status)

        old_status = self._status
        self._status = to_status
        self._log.info(
            "connection_status_transition",
            from_status=old_status.value,
            to_status=to_status.value,
        )

    def is_terminal(self) -> bool:
        """Check if the current status allows no further transitions."""
        return not self.VALID_TRANSITIONS[self._status]
