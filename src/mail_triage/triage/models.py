"""Classification data models.

``meta_summary`` is a tagged union keyed by ``category``: the tag selects the
model used to validate the payload, and a payload that does not fit its tag is
rejected (after the small repairs in ``coerce_meta_summary``).
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, model_validator

from mail_triage.exceptions import ClassificationError


class Category(str, Enum):
    ACTION_REQUIRED = "ACTION_REQUIRED"
    SUMMARIZE_AND_INFORM = "SUMMARIZE_AND_INFORM"
    SUMMARIZE_EVENTS = "SUMMARIZE_EVENTS"
    SUMMARIZE_PURCHASES = "SUMMARIZE_PURCHASES"
    UNSUBSCRIBE = "UNSUBSCRIBE"
    IMMEDIATE_ARCHIVE = "IMMEDIATE_ARCHIVE"
    OTHER = "OTHER"


class ActionRequiredSummary(BaseModel):
    subject: str = Field(description="The email subject")
    people: str = Field(description="List all participants with emails")
    synopsis: str = Field(description="One-sentence summary of thread purpose")
    analysis: str = Field(
        description=(
            "Single most important question/action required, sender sentiment "
            "(casual/urgent/formal), deadline if any"
        )
    )


class InformSummary(BaseModel):
    source: str = Field(description="Publication or sender name")
    subject: str = Field(description="Email subject")
    key_insights: str = Field(description="2-4 sentence synopsis of main points and key takeaway")


class EventSummary(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    event: str = Field(description="Event name")
    from_: str = Field(alias="from", description="Invitation sender")
    what: str = Field(description="One-sentence event description")
    where: str = Field(description="Venue, address, location")
    when: str = Field(description="Full date and time")


class PurchaseSummary(BaseModel):
    vendor: str = Field(description="Store name")
    subject: str = Field(description="Email subject")
    update: str = Field(
        description=(
            "Purchase details: You purchased [Item(s)] for [Price]. "
            "OR Your order shipped. OR Delivery on [Date]."
        )
    )


class UnsubscribeSummary(BaseModel):
    sender: str = Field(description="Business or service name")
    recommendation: str = Field(description="One-sentence justification for unsubscribing")


class OtherSummary(BaseModel):
    subject: str = Field(description="Email subject")
    people: str = Field(description="Sender")
    synopsis: str = Field(description="Brief summary")
    reason: str = Field(description="Why it doesn't fit other categories")


MetaSummary = Union[
    ActionRequiredSummary,
    InformSummary,
    EventSummary,
    PurchaseSummary,
    UnsubscribeSummary,
    OtherSummary,
    str,
]

# IMMEDIATE_ARCHIVE maps to None: its summary is a plain string.
META_SUMMARY_MODELS: dict[Category, Optional[type[BaseModel]]] = {
    Category.ACTION_REQUIRED: ActionRequiredSummary,
    Category.SUMMARIZE_AND_INFORM: InformSummary,
    Category.SUMMARIZE_EVENTS: EventSummary,
    Category.SUMMARIZE_PURCHASES: PurchaseSummary,
    Category.UNSUBSCRIBE: UnsubscribeSummary,
    Category.IMMEDIATE_ARCHIVE: None,
    Category.OTHER: OtherSummary,
}


def coerce_meta_summary(category: Category | str, value: Any) -> MetaSummary:
    """Validate ``value`` against the shape declared by ``category``.

    Repairs two common model slips before validating: an object category
    whose summary arrived JSON-encoded as a string, and an IMMEDIATE_ARCHIVE
    summary that arrived as an object (its values are joined into one string).

    Raises:
        ValueError: if the payload cannot be made to fit the category.
    """
    category = Category(category)
    model = META_SUMMARY_MODELS[category]

    if model is None:
        if isinstance(value, str):
            return value
        if isinstance(value, dict) and value:
            return " ".join(str(v) for v in value.values() if v)
        raise ValueError(f"{category.value} meta_summary must be a string")

    if isinstance(value, model):
        return value
    if isinstance(value, BaseModel):
        value = value.model_dump(by_alias=True)
    if isinstance(value, str):
        try:
            value = json.loads(value)
        except json.JSONDecodeError:
            raise ValueError(
                f"{category.value} meta_summary must be an object, got a plain string"
            ) from None
    if not isinstance(value, dict):
        raise ValueError(f"{category.value} meta_summary must be an object")
    return model.model_validate(value)


class _TaggedSummary(BaseModel):
    """Shared before-validator: resolve ``meta_summary`` through ``category``."""

    @model_validator(mode="before")
    @classmethod
    def _validate_meta_summary(cls, data: Any) -> Any:
        if not isinstance(data, dict) or "meta_summary" not in data:
            return data
        try:
            category = Category(data.get("category"))
        except ValueError:
            return data  # let the category field report the bad tag
        data = dict(data)
        data["meta_summary"] = coerce_meta_summary(category, data["meta_summary"])
        return data


class ClassificationResponse(_TaggedSummary):
    """What the model returns through the classification tool."""

    category: Category
    confidence: float = Field(ge=0.0, le=1.0)
    meta_summary: MetaSummary


class Classification(_TaggedSummary):
    """Latest classification of one email, as persisted in the pending store."""

    model_config = ConfigDict(populate_by_name=True)

    email_id: str
    category: Category
    confidence: float = Field(ge=0.0, le=1.0)
    from_: str = Field(default="", alias="from")
    subject: str = ""
    date: str = ""
    meta_summary: MetaSummary
    reason_for_low_confidence: Optional[str] = None

    def to_dict(self) -> dict:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


@dataclass(frozen=True)
class ClassificationResult:
    """Outcome of one classification attempt: a value or an error, never both."""

    email_id: str
    classification: Optional[Classification] = None
    error: Optional[ClassificationError] = None

    @property
    def ok(self) -> bool:
        return self.classification is not None

    @classmethod
    def success(cls, classification: Classification) -> "ClassificationResult":
        return cls(email_id=classification.email_id, classification=classification)

    @classmethod
    def failure(cls, error: ClassificationError) -> "ClassificationResult":
        return cls(email_id=error.email_id, error=error)


class PendingDocument(BaseModel):
    """The persisted ``triage/pending.json`` document."""

    last_updated: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    total_emails: int = 0
    by_category: dict[str, int] = Field(default_factory=dict)
    emails: list[Classification] = Field(default_factory=list)

    def recount(self) -> None:
        """Recompute the derived counters from ``emails`` and stamp the time."""
        self.total_emails = len(self.emails)
        self.by_category = count_categories(self.emails)
        self.last_updated = datetime.now(timezone.utc)

    def to_json(self) -> str:
        return json.dumps(
            self.model_dump(mode="json", by_alias=True, exclude_none=True),
            indent=2,
        )


def count_categories(classifications: list[Classification]) -> dict[str, int]:
    counts: dict[str, int] = {}
    for classification in classifications:
        key = classification.category.value
        counts[key] = counts.get(key, 0) + 1
    return counts


__all__ = [
    "Category",
    "ActionRequiredSummary",
    "InformSummary",
    "EventSummary",
    "PurchaseSummary",
    "UnsubscribeSummary",
    "OtherSummary",
    "MetaSummary",
    "META_SUMMARY_MODELS",
    "coerce_meta_summary",
    "ClassificationResponse",
    "Classification",
    "ClassificationResult",
    "PendingDocument",
    "count_categories",
]
