"""Social graph accessor for connection-aware ranking."""

from community_feed.graph.models import ConnectionLookup, ViewerContext
from community_feed.graph.social_graph import SocialGraph


__all__ = [
    "ConnectionLookup",
    "SocialGraph",
    "ViewerContext",
]
