"""
Shared model helpers
"""
from datetime import datetime, timezone
from typing import Annotated, Literal
import uuid

from pydantic import AfterValidator

DifficultyLevel = Literal["easy", "medium", "hard"]
DIFFICULTY_LEVELS = ["easy", "medium", "hard"]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def new_id(prefix: str) -> str:
    """Opaque document id, e.g. ``pool_1a2b3c4d5e6f``"""
    return f"{prefix}_{uuid.uuid4().hex[:12]}"


def _as_utc(value: datetime) -> datetime:
    # MongoDB hands back naive datetimes unless the client is tz_aware
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


UTCDateTime = Annotated[datetime, AfterValidator(_as_utc)]


def normalize_difficulty(value: str) -> str:
    """Lower-cased, stripped difficulty tag used for every comparison"""
    return (value or "").strip().lower()
