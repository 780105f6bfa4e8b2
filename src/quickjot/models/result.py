"""Pydantic models for the canonical classification result.

The same schema validates output from the remote classifier and from the
local pipeline; nothing else is accepted or emitted.
"""

from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_validator

ItemType = Literal["Task", "To-do", "Event", "Note", "Journal"]
ITEM_TYPES: tuple[str, ...] = ("Task", "To-do", "Event", "Note", "Journal")

DEFAULT_MAX_ITEMS = 15


def _sorted_unique(values: list[str]) -> list[str]:
    return sorted(set(values))


class TimeBlock(BaseModel):
    """A point in time, or a relative reference to one, found in text."""

    iso: str | None = Field(default=None, description="Resolved YYYY-MM-DDTHH:MM:00Z value")
    date: str | None = Field(default=None, pattern=r"^\d{4}-\d{2}-\d{2}$", description="YYYY-MM-DD")
    time: str | None = Field(default=None, pattern=r"^\d{2}:\d{2}$", description="HH:mm, 24h")
    tz: str | None = Field(default=None, description="IANA timezone the text was read in")
    when_text: str | None = Field(default=None, description="The matched phrase")


class Item(BaseModel):
    """A single typed productivity item."""

    model_config = ConfigDict(validate_assignment=True)

    type: ItemType = Field(..., description="Item category")
    title: str = Field(..., description="Short, non-empty title")
    details: str | None = Field(..., description="Full source segment when it differs from the title")
    due_iso: str | None = Field(..., description="ISO-8601 datetime")
    duration_min: int | None = Field(..., ge=0, description="Duration in minutes")
    location: str | None = Field(..., description="Where the item happens")
    subtasks: list[str] = Field(default_factory=list, description="Lexically sorted subtasks")

    @field_validator("title")
    @classmethod
    def validate_title(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("title must not be empty")
        return v

    @field_validator("due_iso")
    @classmethod
    def validate_due_iso(cls, v: str | None) -> str | None:
        """Require a full ISO-8601 datetime, not a bare date."""
        if v is None:
            return v
        if "T" not in v:
            raise ValueError(f"due_iso must be a datetime: {v!r}")
        try:
            datetime.fromisoformat(v.replace("Z", "+00:00"))
        except ValueError as e:
            raise ValueError(f"due_iso is not ISO-8601: {v!r}") from e
        return v

    @field_validator("subtasks")
    @classmethod
    def sort_subtasks(cls, v: list[str]) -> list[str]:
        return _sorted_unique(v)


class CanonicalResult(BaseModel):
    """Classification result shared by remote and local producers.

    Validate untrusted payloads with ``context={"max_items": n}`` to apply a
    cap other than the default.
    """

    items: list[Item] = Field(..., description="Extracted items")
    suggested_overall_category: ItemType = Field(..., description="Most common item type")
    forced_rules_applied: list[str] = Field(default_factory=list, description="Sorted rule tags")
    warnings: list[str] = Field(default_factory=list, description="Sorted warnings")
    confidence: float = Field(..., ge=0.0, le=1.0)

    @field_validator("items")
    @classmethod
    def validate_item_cap(cls, v: list[Item], info: ValidationInfo) -> list[Item]:
        max_items = DEFAULT_MAX_ITEMS
        if info.context and "max_items" in info.context:
            max_items = info.context["max_items"]
        if len(v) > max_items:
            raise ValueError(f"too many items: {len(v)} > {max_items}")
        return v

    @field_validator("forced_rules_applied", "warnings")
    @classmethod
    def sort_tags(cls, v: list[str]) -> list[str]:
        return _sorted_unique(v)


class Alternative(BaseModel):
    """One candidate recognition of an utterance."""

    transcript: str
    confidence: float | None = Field(default=None, ge=0.0, le=1.0)


class TasksPreview(BaseModel):
    """Cheap summary of what the local pipeline would extract."""

    segment_count: int
    type_counts: dict[str, int] = Field(default_factory=dict)
    has_date_info: bool = False
    has_duration: bool = False
    has_location: bool = False
