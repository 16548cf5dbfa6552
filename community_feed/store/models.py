"""Document models for posts and connections."""

from enum import Enum
from typing import Annotated, Any

from pydantic import Field, field_validator, model_validator

from community_feed.data_model import StrictBaseModel, UtcDatetime, utc_now


MAX_TAGS_PER_POST = 10
MAX_CONNECTION_MESSAGE_LENGTH = 500


class ConnectionStatus(str, Enum):
    """Lifecycle status of a connection between two users.

    - pending: Request sent, awaiting the recipient
    - accepted: Both users are connected
    - declined: Recipient turned the request down
    - blocked: One side blocked the other
    """

    PENDING = "pending"
    ACCEPTED = "accepted"
    DECLINED = "declined"
    BLOCKED = "blocked"


class Comment(StrictBaseModel):
    """A comment attached to a post."""

    author_id: Annotated[str, Field(min_length=1)]
    content: Annotated[str, Field(min_length=1, max_length=1000)]
    created_at: UtcDatetime = Field(default_factory=utc_now)


class Post(StrictBaseModel):
    """A blog post as stored in the document store.

    ``likes`` and ``comments`` are always initialized containers; documents
    that omit them (or store null) load as empty.
    """

    post_id: Annotated[str, Field(min_length=1, description="Stable post identifier")]
    author_id: Annotated[str, Field(min_length=1, description="Author user id")]
    content: str = ""
    tags: Annotated[list[str], Field(max_length=MAX_TAGS_PER_POST)] = Field(
        default_factory=list
    )
    is_published: bool = True
    created_at: UtcDatetime = Field(default_factory=utc_now)
    likes: frozenset[str] = Field(
        default_factory=frozenset, description="User ids that liked the post"
    )
    comments: list[Comment] = Field(default_factory=list)

    @field_validator("tags", mode="before")
    @classmethod
    def normalize_tags(cls, v: Any) -> Any:
        """Lowercase and strip tags, dropping blanks.

        Anything other than a list or tuple is left for type validation.
        """
        if v is None:
            return []
        if not isinstance(v, list | tuple):
            return v
        return [str(tag).strip().lower() for tag in v if str(tag).strip()]

    @field_validator("likes", "comments", mode="before")
    @classmethod
    def default_missing_collection(cls, v: Any) -> Any:
        """Replace a missing collection with an empty one."""
        return [] if v is None else v

    @property
    def likes_count(self) -> int:
        """Number of users who liked the post."""
        return len(self.likes)

    @property
    def comments_count(self) -> int:
        """Number of comments on the post."""
        return len(self.comments)

    def is_liked_by(self, user_id: str) -> bool:
        """Check whether a user liked the post.

        Args:
            user_id: User to check.

        Returns:
            True if the user is in the like set.
        """
        return user_id in self.likes


class Connection(StrictBaseModel):
    """A relationship between two users, initiated by the requester."""

    connection_id: Annotated[str, Field(min_length=1)]
    requester_id: Annotated[str, Field(min_length=1)]
    recipient_id: Annotated[str, Field(min_length=1)]
    status: ConnectionStatus = ConnectionStatus.PENDING
    message: Annotated[str, Field(max_length=MAX_CONNECTION_MESSAGE_LENGTH)] = ""
    created_at: UtcDatetime = Field(default_factory=utc_now)
    updated_at: UtcDatetime = Field(default_factory=utc_now)

    @field_validator("status", mode="before")
    @classmethod
    def coerce_status(cls, v: Any) -> ConnectionStatus:
        """Coerce string to ConnectionStatus enum."""
        if isinstance(v, ConnectionStatus):
            return v
        if isinstance(v, str):
            return ConnectionStatus(v.lower())
        msg = f"Invalid connection status: {v}"
        raise ValueError(msg)

    @model_validator(mode="after")
    def reject_self_connection(self) -> "Connection":
        """Ensure a user cannot connect to themselves."""
        if self.requester_id == self.recipient_id:
            msg = "Cannot connect to yourself"
            raise ValueError(msg)
        return self

    @property
    def pair_key(self) -> tuple[str, str]:
        """Order-independent key for the user pair."""
        a, b = sorted((self.requester_id, self.recipient_id))
        return a, b

    def involves(self, user_id: str) -> bool:
        """Check whether the user is either party of the connection."""
        return user_id in (self.requester_id, self.recipient_id)

    def other_party(self, user_id: str) -> str:
        """Return the id of the other user in the connection.

        Args:
            user_id: One party of the connection.

        Returns:
            The other party's user id.

        Raises:
            ValueError: If ``user_id`` is not part of this connection.
        """
        if user_id == self.requester_id:
            return self.recipient_id
        if user_id == self.recipient_id:
            return self.requester_id
        msg = f"User {user_id} is not part of connection {self.connection_id}"
        raise ValueError(msg)


class TagTrend(StrictBaseModel):
    """Occurrence counts for a single tag."""

    tag: Annotated[str, Field(min_length=1)]
    total_count: Annotated[int, Field(ge=0, description="Published posts with tag")]
    recent_count: Annotated[
        int, Field(ge=0, description="Published posts with tag inside the window")
    ]
