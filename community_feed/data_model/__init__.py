"""Shared data model primitives."""

from community_feed.data_model.base import StrictBaseModel, UtcDatetime, as_utc, utc_now


__all__ = ["StrictBaseModel", "UtcDatetime", "as_utc", "utc_now"]
