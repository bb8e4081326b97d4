"""Pydantic models for users and diary entries."""

import json
from datetime import datetime, timezone
from typing import Any, List, Optional

import pydantic
from pydantic import BaseModel, Field, field_validator

from ..exceptions import ValidationError

CATEGORIES = [
    "Tech/Programming",
    "Science",
    "Creative/Art",
    "Language",
    "Business",
    "Health/Fitness",
    "General",
]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def parse_timestamp(value: Any) -> Any:
    """Parse stored ISO timestamps into aware UTC datetimes."""
    if isinstance(value, str) and value:
        parsed = datetime.fromisoformat(value)
        if parsed.tzinfo is None:
            parsed = parsed.replace(tzinfo=timezone.utc)
        return parsed
    return value


def format_timestamp(value: datetime) -> str:
    """Fixed-width UTC representation so stored values sort as text."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S.%f+00:00")


class UserSettings(BaseModel):
    """Per-user preferences."""

    notifications: bool = True
    locale: str = "en"
    timezone: str = "UTC"


class User(BaseModel):
    """Diary user, keyed by Telegram chat id."""

    user_id: int
    quiz_day: int = Field(default=0, ge=0, le=6)  # 0 = Sunday
    quiz_time: int = Field(default=20, ge=0, le=23)
    daily_goal: Optional[int] = None
    joined_at: datetime = Field(default_factory=_utcnow)
    last_active_at: datetime = Field(default_factory=_utcnow)
    settings: UserSettings = Field(default_factory=UserSettings)

    @classmethod
    def from_row(cls, row: Any) -> "User":
        """Create from database row."""
        data = dict(row)
        settings_raw = data.pop("settings_json", "{}")
        data["settings"] = UserSettings(**json.loads(settings_raw or "{}"))
        for field in ("joined_at", "last_active_at"):
            data[field] = parse_timestamp(data.get(field))
        return cls(**data)


class EntryOptions(BaseModel):
    """Optional enrichment attached to a new entry."""

    category: Optional[str] = None
    difficulty: Optional[int] = Field(default=None, ge=1, le=5)
    confidence: Optional[int] = Field(default=None, ge=1, le=5)
    tags: List[str] = Field(default_factory=list)
    source: str = "manual"
    is_ai_generated: bool = False

    @field_validator("category")
    @classmethod
    def _known_category(cls, value: Optional[str]) -> Optional[str]:
        if value is not None and value not in CATEGORIES:
            raise ValueError(f"Unknown category: {value}")
        return value

    @field_validator("tags")
    @classmethod
    def _normalize_tags(cls, value: List[str]) -> List[str]:
        seen: List[str] = []
        for tag in value:
            tag = tag.strip().lower()
            if tag and tag not in seen:
                seen.append(tag)
        return seen

    @classmethod
    def build(cls, **kwargs: Any) -> "EntryOptions":
        """Construct options, raising the diary ValidationError on bad input."""
        try:
            return cls(**kwargs)
        except pydantic.ValidationError as exc:
            first = exc.errors()[0]
            field = ".".join(str(p) for p in first["loc"])
            raise ValidationError(first["msg"], field=field) from exc


class Entry(BaseModel):
    """A logged learning or work item. Never modified after creation."""

    id: int
    user_id: int
    content: str
    category: Optional[str] = None
    created_at: datetime
    difficulty: Optional[int] = None
    confidence: Optional[int] = None
    tags: List[str] = Field(default_factory=list)
    source: str = "manual"
    is_ai_generated: bool = False
    work: Optional[str] = None
    learn: Optional[str] = None
    blockers: Optional[str] = None

    model_config = {"frozen": True}

    @classmethod
    def from_row(cls, row: Any) -> "Entry":
        """Create from database row."""
        data = dict(row)
        tags_raw = data.pop("tags_json", "[]")
        data["tags"] = json.loads(tags_raw) if tags_raw else []
        data["created_at"] = parse_timestamp(data.get("created_at"))
        data["is_ai_generated"] = bool(data.get("is_ai_generated"))
        return cls(**data)
