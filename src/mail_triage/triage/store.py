"""Durable JSON store of the latest classification per email."""

from __future__ import annotations

import json
import logging
import os
import tempfile
import threading
from pathlib import Path

from pydantic import ValidationError

from mail_triage.config import DEFAULT_BATCH_LIMIT, MAX_BATCH_LIMIT
from mail_triage.exceptions import PendingStoreError
from mail_triage.triage.models import Category, Classification, PendingDocument

logger = logging.getLogger(__name__)


class PendingStore:
    """The ``triage/pending.json`` document.

    ``merge`` only ever appends ids it has not seen; an entry already in the
    store is never replaced by a later merge. Each write goes to a temporary
    file in the same directory and is renamed over the target, so readers
    never observe a half-written document.

    Args:
        path: Location of the JSON document. Parent directories are created
            on first write.
    """

    def __init__(self, path: Path):
        self.path = Path(path)
        self._lock = threading.Lock()

    def load(self) -> PendingDocument | None:
        """Read the document; None when it does not exist.

        Raises:
            PendingStoreError: if the file exists but is not a valid document.
        """
        if not self.path.exists():
            return None
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
            return PendingDocument.model_validate(data)
        except (OSError, json.JSONDecodeError, ValidationError) as e:
            raise PendingStoreError(f"Unreadable pending store at {self.path}: {e}") from e

    def merge(self, classifications: list[Classification]) -> int:
        """Append classifications whose ``email_id`` is not stored yet.

        A corrupt document is logged and replaced by one built from
        ``classifications`` alone. Returns the number of entries added.
        """
        with self._lock:
            try:
                document = self.load()
            except PendingStoreError as e:
                logger.warning(f"{e}; overwriting with a new document")
                document = None

            if document is None:
                document = PendingDocument(emails=_dedupe(classifications))
                document.recount()
                self._write(document)
                logger.info(
                    f"Created {self.path} with {document.total_emails} email(s)"
                )
                return document.total_emails

            existing_ids = {c.email_id for c in document.emails}
            new_emails = []
            for classification in classifications:
                if classification.email_id not in existing_ids:
                    existing_ids.add(classification.email_id)
                    new_emails.append(classification)

            if not new_emails:
                logger.info(f"All emails already in {self.path}")
                return 0

            document.emails.extend(new_emails)
            document.recount()
            self._write(document)
            logger.info(f"Updated {self.path} with {len(new_emails)} new email(s)")
            return len(new_emails)

    def read_category(
        self,
        category: Category | str,
        offset: int = 0,
        limit: int = DEFAULT_BATCH_LIMIT,
        max_limit: int = MAX_BATCH_LIMIT,
    ) -> dict:
        """Slice the stored emails of one category, preserving stored order.

        ``limit`` is clamped to ``[1, max_limit]`` whatever the caller asks
        for. A missing store reads as empty.
        """
        category = Category(category)
        offset = max(0, offset)
        limit = max(1, min(limit, max_limit))

        document = self.load()
        matching = (
            [c for c in document.emails if c.category == category]
            if document else []
        )
        page = matching[offset:offset + limit]
        end = offset + len(page)
        has_more = end < len(matching)
        return {
            "emails": page,
            "total_in_category": len(matching),
            "has_more": has_more,
            "next_offset": end if has_more else None,
        }

    def _write(self, document: PendingDocument) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        try:
            with tempfile.NamedTemporaryFile(
                "w",
                encoding="utf-8",
                dir=self.path.parent,
                prefix=f".{self.path.name}-",
                suffix=".tmp",
                delete=False,
            ) as tmp:
                tmp.write(document.to_json())
            os.replace(tmp.name, self.path)
        except OSError as e:
            raise PendingStoreError(f"Failed to write {self.path}: {e}") from e


def _dedupe(classifications: list[Classification]) -> list[Classification]:
    """Keep one entry per email_id; a later entry replaces an earlier one in place."""
    by_id: dict[str, Classification] = {}
    for classification in classifications:
        by_id[classification.email_id] = classification
    return list(by_id.values())
