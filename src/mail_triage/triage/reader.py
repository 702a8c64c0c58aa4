"""Category-scoped, size-bounded batches of pending classifications."""

from __future__ import annotations

from dataclasses import dataclass, field

from mail_triage.config import DEFAULT_BATCH_LIMIT, MAX_BATCH_LIMIT
from mail_triage.triage.models import Category, Classification
from mail_triage.triage.store import PendingStore


@dataclass
class BatchPage:
    category: Category
    offset: int
    emails: list[Classification] = field(default_factory=list)
    total_in_category: int = 0
    has_more: bool = False
    next_offset: int | None = None

    def to_dict(self) -> dict:
        return {
            "category": self.category.value,
            "offset": self.offset,
            "emails": [c.to_dict() for c in self.emails],
            "total_in_category": self.total_in_category,
            "has_more": self.has_more,
            "next_offset": self.next_offset,
        }


class BatchReader:
    """Serves small slices of the pending store to the calling agent.

    The cap on ``limit`` keeps any single response from flooding the agent's
    context, whatever the agent asks for.
    """

    def __init__(
        self,
        store: PendingStore,
        default_limit: int = DEFAULT_BATCH_LIMIT,
        max_limit: int = MAX_BATCH_LIMIT,
    ):
        self.store = store
        self.default_limit = default_limit
        self.max_limit = max_limit

    def get_batch(
        self,
        category: str,
        offset: int = 0,
        limit: int | None = None,
    ) -> BatchPage:
        """Return up to ``limit`` (at most ``max_limit``) emails of ``category``.

        Raises:
            ValueError: for an unknown category name.
            PendingStoreError: if the store file is corrupt.
        """
        resolved = parse_category(category)
        page = self.store.read_category(
            resolved,
            offset=offset,
            limit=self.default_limit if limit is None else limit,
            max_limit=self.max_limit,
        )
        return BatchPage(category=resolved, offset=max(0, offset), **page)


def parse_category(name: str) -> Category:
    """Match a category name case-insensitively; spaces count as underscores."""
    key = name.strip().upper().replace(" ", "_")
    try:
        return Category(key)
    except ValueError:
        valid = ", ".join(c.value for c in Category)
        raise ValueError(f"Unknown category '{name}'. Valid categories: {valid}") from None
