"""Single-email classification backed by a tool-forced LLM call."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from mail_triage.exceptions import ClassificationError
from mail_triage.gmail.models import EmailFull, EmailSummary
from mail_triage.triage.models import (
    Category,
    Classification,
    ClassificationResponse,
    ClassificationResult,
    OtherSummary,
)
from mail_triage.triage.prompts import (
    CLASSIFY_TOOL_NAME,
    SYSTEM_PROMPT,
    build_prompt,
    classification_tool,
    load_preferences,
)

logger = logging.getLogger(__name__)

FALLBACK_CONFIDENCE = 0.3
SNIPPET_LOW_CONFIDENCE = 0.5

SNIPPET_LOW_CONFIDENCE_REASON = (
    "Snippet is truncated or unclear, need full body for accurate classification"
)
FAILED_CLASSIFICATION_REASON = "LLM classification failed, manual review recommended"


class Classifier:
    """Classifies one email at a time.

    ``attempt`` returns a ``ClassificationResult`` and never raises for model
    or parsing problems; ``classify`` additionally resolves a failed attempt
    into the OTHER fallback.

    Args:
        llm: An ``AsyncLLMClient`` (or anything with the same
            ``generate_with_tools`` coroutine).
        preferences_path: Markdown file with the user's triage preferences.
        temperature: Sampling temperature for the classification call.
    """

    def __init__(
        self,
        llm: Any,
        preferences_path: Path | None = None,
        temperature: float = 0.0,
    ):
        self.llm = llm
        self.preferences_path = preferences_path
        self.temperature = temperature
        self._tool = classification_tool()
        self._preferences: str | None = None

    @property
    def preferences(self) -> str:
        if self._preferences is None:
            self._preferences = load_preferences(self.preferences_path)
        return self._preferences

    def reload_preferences(self) -> None:
        """Forget cached preferences so the next call re-reads the file."""
        self._preferences = None

    async def attempt(
        self,
        email: EmailSummary,
        use_snippet_only: bool,
    ) -> ClassificationResult:
        try:
            response = await self._request(email, use_snippet_only)
        except ClassificationError as e:
            return ClassificationResult.failure(e)

        reason = None
        if use_snippet_only and response.confidence < SNIPPET_LOW_CONFIDENCE:
            reason = SNIPPET_LOW_CONFIDENCE_REASON
        return ClassificationResult.success(Classification(
            email_id=email.id,
            category=response.category,
            confidence=response.confidence,
            from_=email.sender,
            subject=email.subject,
            date=email.date,
            meta_summary=response.meta_summary,
            reason_for_low_confidence=reason,
        ))

    async def classify(
        self,
        email: EmailSummary,
        use_snippet_only: bool,
    ) -> Classification:
        result = await self.attempt(email, use_snippet_only)
        return resolve(result, email)

    async def _request(
        self,
        email: EmailSummary,
        use_snippet_only: bool,
    ) -> ClassificationResponse:
        prompt = build_prompt(email, self.preferences, use_snippet_only)
        try:
            reply = await self.llm.generate_with_tools(
                SYSTEM_PROMPT,
                prompt,
                tools=[self._tool],
                tool_choice={"type": "tool", "name": CLASSIFY_TOOL_NAME},
                max_tokens=1024,
                temperature=self.temperature,
            )
        except Exception as e:
            # LLMError and anything the SDK or transport lets through
            raise ClassificationError(email.id, f"Model call failed: {e}") from e

        calls = [c for c in reply.get("tool_calls", []) if c.get("name") == CLASSIFY_TOOL_NAME]
        if not calls:
            raise ClassificationError(email.id, "Model did not return a classification")
        try:
            return ClassificationResponse.model_validate(calls[0].get("input") or {})
        except ValidationError as e:
            raise ClassificationError(
                email.id, f"Invalid classification payload: {e.error_count()} error(s)"
            ) from e


def fallback(email: EmailSummary, error: ClassificationError) -> Classification:
    """The OTHER/0.3 classification used when the model call fails."""
    body = email.body if isinstance(email, EmailFull) else ""
    synopsis = email.snippet or body[:100] or "No content available"
    return Classification(
        email_id=email.id,
        category=Category.OTHER,
        confidence=FALLBACK_CONFIDENCE,
        from_=email.sender,
        subject=email.subject,
        date=email.date,
        meta_summary=OtherSummary(
            subject=email.subject or "(no subject)",
            people=email.sender,
            synopsis=synopsis,
            reason=f"Classification failed: {error.reason}",
        ),
        reason_for_low_confidence=FAILED_CLASSIFICATION_REASON,
    )


def resolve(result: ClassificationResult, email: EmailSummary) -> Classification:
    """Unwrap ``result``, substituting the fallback for a failure."""
    if result.ok:
        return result.classification
    logger.error(f"Error classifying email {email.id}: {result.error.reason}")
    return fallback(email, result.error)
