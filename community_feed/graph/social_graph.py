"""Social graph accessor over the document store."""

import structlog

from community_feed.graph.models import ConnectionLookup, ViewerContext
from community_feed.store.models import ConnectionStatus
from community_feed.store.protocols import DocumentStore


logger = structlog.get_logger()


class SocialGraph:
    """Resolves accepted, symmetric connections for a user.

    Store errors propagate unchanged; a lookup either fully resolves or
    raises.
    """

    def __init__(self, store: DocumentStore) -> None:
        """Initialize the accessor.

        Args:
            store: Document store holding connection records.
        """
        self._store = store
        self._log = logger.bind(component="graph")

    def connected_user_ids(self, viewer_id: str) -> frozenset[str]:
        """Resolve the users connected to a viewer, including the viewer.

        The relation is symmetric: the viewer may be requester or recipient.

        Args:
            viewer_id: User whose connections to resolve.

        Returns:
            Accepted connection counterparts plus ``viewer_id`` itself.
        """
        connections = self._store.connections_for(
            viewer_id, status=ConnectionStatus.ACCEPTED
        )
        connected = {c.other_party(viewer_id) for c in connections}
        connected.add(viewer_id)

        self._log.debug(
            "connections_resolved",
            viewer_id=viewer_id,
            connections_count=len(connected) - 1,
        )
        return frozenset(connected)

    def viewer_context(self, viewer_id: str) -> ViewerContext:
        """Build the viewer context used by the feed ranker.

        Args:
            viewer_id: Requesting user.

        Returns:
            ViewerContext with the resolved connected set.
        """
        return ViewerContext(
            viewer_id=viewer_id,
            connected_ids=self.connected_user_ids(viewer_id),
        )

    def connection_status(self, viewer_id: str, other_id: str) -> ConnectionLookup:
        """Look up the connection, of any status, between two users.

        Args:
            viewer_id: Requesting user.
            other_id: User to check against.

        Returns:
            ConnectionLookup; ``status`` is None when no record exists.
        """
        for connection in self._store.connections_for(viewer_id):
            if connection.involves(other_id) and other_id != viewer_id:
                return ConnectionLookup(
                    status=connection.status,
                    connection_id=connection.connection_id,
                    is_requester=connection.requester_id == viewer_id,
                )
        return ConnectionLookup()
