"""Data models for the social graph."""

from typing import Annotated, Any

from pydantic import Field, model_validator

from community_feed.data_model import StrictBaseModel
from community_feed.store.models import ConnectionStatus


class ViewerContext(StrictBaseModel):
    """The requesting user and the set of users they are connected to.

    ``connected_ids`` always contains ``viewer_id``: a viewer's own posts
    rank as connection posts.
    """

    viewer_id: Annotated[str, Field(min_length=1)]
    connected_ids: frozenset[str] = Field(default_factory=frozenset)

    @model_validator(mode="before")
    @classmethod
    def include_viewer(cls, data: Any) -> Any:
        """Add the viewer to their own connected set."""
        if isinstance(data, dict) and data.get("viewer_id"):
            connected = set(data.get("connected_ids") or ())
            connected.add(data["viewer_id"])
            return {**data, "connected_ids": frozenset(connected)}
        return data

    @classmethod
    def solo(cls, viewer_id: str) -> "ViewerContext":
        """Build a context for a viewer without connections."""
        return cls(viewer_id=viewer_id)

    @property
    def connections_count(self) -> int:
        """Number of connected users, excluding the viewer."""
        return len(self.connected_ids) - 1

    @property
    def has_connections(self) -> bool:
        """Whether the viewer has at least one accepted connection."""
        return self.connections_count > 0

    def is_connected(self, user_id: str) -> bool:
        """Check whether a user is in the connected set (viewer included)."""
        return user_id in self.connected_ids


class ConnectionLookup(StrictBaseModel):
    """Relationship between a viewer and another user.

    Attributes:
        status: Stored status, or "none" when no connection exists.
        connection_id: Id of the connection record, if any.
        is_requester: Whether the viewer initiated the connection.
    """

    status: ConnectionStatus | None = None
    connection_id: str | None = None
    is_requester: bool = False

    @property
    def status_label(self) -> str:
        """Status as shown to clients, "none" when unconnected."""
        return self.status.value if self.status is not None else "none"
