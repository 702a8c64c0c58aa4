"""Two-pass inbox triage.

A run moves through a fixed sequence of states::

    FETCHING -> CLASSIFYING_PASS1 -> SELECTING_LOW_CONFIDENCE
    -> FETCHING_FULL_BODIES -> CLASSIFYING_PASS2 -> MERGING
    -> SUMMARIZING -> DONE

Pass 1 classifies every fetched email from its snippet. Anything below the
confidence threshold is re-fetched with its full body and classified again;
a successful second pass replaces the first wholesale, a failed one leaves
the first in place. The final list is merged into the pending store and only
counts and a digest go back to the caller.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum

from mail_triage.config import (
    CONFIDENCE_THRESHOLD,
    DEFAULT_BATCH_SIZE,
    LARGE_BATCH_WARNING,
    MAX_BATCH_SIZE,
)
from mail_triage.exceptions import GmailFetchError
from mail_triage.gmail.models import EmailSummary
from mail_triage.gmail.pager import GmailPager
from mail_triage.gmail.query import QueryFilters, build_query, format_date
from mail_triage.triage.classifier import Classifier, resolve
from mail_triage.triage.digest import build_digest
from mail_triage.triage.models import Classification, ClassificationResult, count_categories
from mail_triage.triage.store import PendingStore

logger = logging.getLogger(__name__)


class TriageState(str, Enum):
    IDLE = "IDLE"
    FETCHING = "FETCHING"
    CLASSIFYING_PASS1 = "CLASSIFYING_PASS1"
    SELECTING_LOW_CONFIDENCE = "SELECTING_LOW_CONFIDENCE"
    FETCHING_FULL_BODIES = "FETCHING_FULL_BODIES"
    CLASSIFYING_PASS2 = "CLASSIFYING_PASS2"
    MERGING = "MERGING"
    SUMMARIZING = "SUMMARIZING"
    DONE = "DONE"
    FAILED = "FAILED"


RUN_SEQUENCE = [
    TriageState.FETCHING,
    TriageState.CLASSIFYING_PASS1,
    TriageState.SELECTING_LOW_CONFIDENCE,
    TriageState.FETCHING_FULL_BODIES,
    TriageState.CLASSIFYING_PASS2,
    TriageState.MERGING,
    TriageState.SUMMARIZING,
    TriageState.DONE,
]


@dataclass
class TriageReport:
    """What a run hands back: counts and a digest, never the classifications."""

    total_emails: int
    by_category: dict[str, int]
    message: str
    summary: str = ""
    reclassified: int = 0
    added_to_store: int = 0
    store_path: str = ""

    def to_dict(self) -> dict:
        return {
            "success": True,
            "total_emails": self.total_emails,
            "by_category": self.by_category,
            "message": self.message,
            "summary": self.summary,
            "reclassified": self.reclassified,
            "added_to_store": self.added_to_store,
            "store_path": self.store_path,
        }


@dataclass
class _RunContext:
    emails: list[EmailSummary] = field(default_factory=list)
    classifications: list[Classification] = field(default_factory=list)
    low_confidence: list[Classification] = field(default_factory=list)
    full_bodies: dict = field(default_factory=dict)
    reclassified: int = 0
    added: int = 0


class TriageEngine:
    """Orchestrates one triage run over the mailbox.

    Args:
        pager: Fetches summaries and full bodies from Gmail.
        classifier: Classifies single emails.
        store: Pending store the results are merged into.
        threshold: Pass-1 confidence strictly below this triggers pass 2.
        max_batch_size: Hard ceiling on emails per run.
        concurrency: Pass-1 classifications in flight at once.
    """

    def __init__(
        self,
        pager: GmailPager,
        classifier: Classifier,
        store: PendingStore,
        threshold: float = CONFIDENCE_THRESHOLD,
        max_batch_size: int = MAX_BATCH_SIZE,
        concurrency: int = 1,
    ):
        self.pager = pager
        self.classifier = classifier
        self.store = store
        self.threshold = threshold
        self.max_batch_size = max_batch_size
        self.concurrency = max(1, concurrency)
        self.state = TriageState.IDLE
        self.history: list[TriageState] = []

    async def run(
        self,
        batch_size: int = DEFAULT_BATCH_SIZE,
        days: int = 1,
        older_than: date | str | None = None,
        now: datetime | None = None,
    ) -> TriageReport:
        """Triage up to ``batch_size`` inbox emails.

        ``older_than`` (a date or ``YYYY/MM/DD``) takes precedence over
        ``days``. ``batch_size`` above the ceiling is clamped, not rejected.

        Raises:
            GmailFetchError: if the mailbox search fails.
        """
        self.history = []
        self.state = TriageState.IDLE
        ctx = _RunContext()
        try:
            return await self._run(ctx, batch_size, days, older_than, now)
        except Exception:
            self._enter(TriageState.FAILED)
            raise

    async def _run(self, ctx, batch_size, days, older_than, now) -> TriageReport:
        cap = self.clamp_batch_size(batch_size)
        query = self.build_run_query(days, older_than, now)

        self._enter(TriageState.FETCHING)
        logger.info(f"Searching with query: {query} (cap {cap})")
        ctx.emails = await self.pager.fetch(query, cap)
        logger.info(f"Total emails found: {len(ctx.emails)}")
        if len(ctx.emails) > LARGE_BATCH_WARNING:
            logger.warning(
                f"Processing {len(ctx.emails)} emails may be slow. "
                f"Consider smaller batches (batch_size={DEFAULT_BATCH_SIZE})."
            )

        self._enter(TriageState.CLASSIFYING_PASS1)
        results = await self._classify_all(ctx.emails, use_snippet_only=True)
        ctx.classifications = [
            resolve(result, email) for result, email in zip(results, ctx.emails)
        ]

        self._enter(TriageState.SELECTING_LOW_CONFIDENCE)
        ctx.low_confidence = [
            c for c in ctx.classifications if self.needs_full_body(c)
        ]
        logger.info(f"Found {len(ctx.low_confidence)} low-confidence classifications")

        self._enter(TriageState.FETCHING_FULL_BODIES)
        for item in ctx.low_confidence:
            try:
                ctx.full_bodies[item.email_id] = await self.pager.fetch_full(item.email_id)
            except GmailFetchError as e:
                logger.warning(f"Could not fetch full body for {item.email_id}: {e}")

        self._enter(TriageState.CLASSIFYING_PASS2)
        replacements: dict[str, Classification] = {}
        for email_id, full in ctx.full_bodies.items():
            result = await self.classifier.attempt(full, use_snippet_only=False)
            if result.ok:
                replacements[email_id] = result.classification
            else:
                logger.warning(
                    f"Could not reclassify {email_id}, keeping first pass: {result.error.reason}"
                )
        ctx.classifications = [
            replacements.get(c.email_id, c) for c in ctx.classifications
        ]
        ctx.reclassified = len(replacements)
        if ctx.low_confidence:
            logger.info(f"Reclassified {ctx.reclassified} emails with full content")

        self._enter(TriageState.MERGING)
        ctx.added = self.store.merge(ctx.classifications)

        self._enter(TriageState.SUMMARIZING)
        report = self._report(ctx)

        self._enter(TriageState.DONE)
        return report

    def clamp_batch_size(self, batch_size: int) -> int:
        if batch_size > self.max_batch_size:
            logger.warning(
                f"Batch size {batch_size} exceeds maximum {self.max_batch_size}, "
                f"limiting to {self.max_batch_size}"
            )
            return self.max_batch_size
        return max(1, batch_size)

    def needs_full_body(self, classification: Classification) -> bool:
        return classification.confidence < self.threshold

    @staticmethod
    def build_run_query(
        days: int = 1,
        older_than: date | str | None = None,
        now: datetime | None = None,
    ) -> str:
        if older_than:
            return build_query(
                QueryFilters(query="in:inbox", before=normalize_date(older_than)),
                now=now,
            )
        return build_query(
            QueryFilters(query="in:inbox", time_range=f"{max(0, int(days))}d"),
            now=now,
        )

    async def _classify_all(
        self,
        emails: list[EmailSummary],
        use_snippet_only: bool,
    ) -> list[ClassificationResult]:
        if self.concurrency == 1:
            results = []
            for i, email in enumerate(emails, start=1):
                logger.info(f"[{i}/{len(emails)}] Classifying: {email.subject[:50] or '(no subject)'}")
                results.append(await self.classifier.attempt(email, use_snippet_only))
            return results

        semaphore = asyncio.Semaphore(self.concurrency)

        async def bounded(email: EmailSummary) -> ClassificationResult:
            async with semaphore:
                return await self.classifier.attempt(email, use_snippet_only)

        return list(await asyncio.gather(*(bounded(e) for e in emails)))

    def _report(self, ctx: _RunContext) -> TriageReport:
        total = len(ctx.classifications)
        if total == 0:
            message = "No emails found in the specified time range"
        else:
            message = (
                f"Successfully triaged {total} email(s). "
                f"Results saved to {self.store.path}"
            )
        return TriageReport(
            total_emails=total,
            by_category=count_categories(ctx.classifications),
            message=message,
            summary=build_digest(ctx.classifications) if total else "",
            reclassified=ctx.reclassified,
            added_to_store=ctx.added,
            store_path=str(self.store.path),
        )

    def _enter(self, state: TriageState) -> None:
        if state is not TriageState.FAILED:
            expected = RUN_SEQUENCE[len(self.history)]
            if state is not expected:
                raise RuntimeError(f"Illegal transition {self.state.value} -> {state.value}")
        logger.debug(f"Triage state {self.state.value} -> {state.value}")
        self.state = state
        self.history.append(state)


def normalize_date(value: date | str) -> str:
    """Accept a date, ``YYYY/MM/DD`` or ``YYYY-MM-DD``; return Gmail's form."""
    if isinstance(value, datetime):
        value = value.date()
    if isinstance(value, date):
        return format_date(value)
    text = value.strip()
    for fmt in ("%Y/%m/%d", "%Y-%m-%d"):
        try:
            return format_date(datetime.strptime(text, fmt).date())
        except ValueError:
            continue
    raise ValueError(f"older_than must be YYYY/MM/DD, got {value!r}")
