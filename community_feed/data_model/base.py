"""Shared Pydantic base models and field types."""

from datetime import UTC, datetime
from typing import Annotated

from pydantic import AfterValidator, BaseModel, ConfigDict


def as_utc(value: datetime) -> datetime:
    """Treat naive datetimes as UTC and convert aware ones to UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


UtcDatetime = Annotated[datetime, AfterValidator(as_utc)]


def utc_now() -> datetime:
    """Current time in UTC."""
    return datetime.now(UTC)


class StrictBaseModel(BaseModel):
    """Immutable document that rejects unknown fields."""

    model_config = ConfigDict(frozen=True, extra="forbid")
