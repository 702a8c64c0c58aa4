"""Prompt and tool schema for email classification."""

from __future__ import annotations

import logging
from pathlib import Path

from mail_triage.gmail.models import EmailFull, EmailSummary
from mail_triage.triage.models import META_SUMMARY_MODELS, Category

logger = logging.getLogger(__name__)

CLASSIFY_TOOL_NAME = "record_email_classification"

DEFAULT_PREFERENCES = "No user preferences loaded. Use default classification rules."

SYSTEM_PROMPT = (
    "You are an email classification assistant. Classify the email you are "
    f"given into one of the defined categories by calling the {CLASSIFY_TOOL_NAME} "
    "tool exactly once."
)

SNIPPET_WARNING = (
    "WARNING: You only have the snippet. If the content seems truncated or "
    "unclear, lower your confidence score (0.3-0.5 range) and note that full "
    "body is needed for accurate classification."
)

_INSTRUCTIONS = """Instructions:
1. Choose the most appropriate category based on the email content and user preferences
2. Provide a confidence score (0.0-1.0) based on how certain you are
3. Create a structured meta_summary that matches the category's required format:
{shapes}
4. For ACTION_REQUIRED: Focus on job search emails (HIGHEST PRIORITY), personal contacts, direct questions
5. For IMMEDIATE_ARCHIVE: Use a simple string, not an object
6. Consider the user's location, interests, and priorities when categorizing"""


def load_preferences(path: Path | None) -> str:
    """Read the user's classification preferences, or a default note."""
    if path is None:
        return DEFAULT_PREFERENCES
    try:
        if path.exists():
            return path.read_text(encoding="utf-8")
    except OSError as e:
        logger.warning(f"Failed to load email preferences from {path}: {e}")
    return DEFAULT_PREFERENCES


def build_prompt(
    email: EmailSummary,
    preferences: str,
    use_snippet_only: bool,
) -> str:
    if use_snippet_only:
        content = email.snippet
        content_type = "SNIPPET ONLY"
    else:
        body = email.body if isinstance(email, EmailFull) else ""
        content = body or email.snippet
        content_type = "FULL EMAIL"

    sections = [
        "Classify the following email into one of the defined categories and "
        "provide a structured meta-summary.",
        preferences,
        "EMAIL TO CLASSIFY:\n"
        f"From: {email.sender}\n"
        f"Subject: {email.subject or '(no subject)'}\n"
        f"Date: {email.date}\n"
        f"Content Type: {content_type}\n"
        f"Content:\n{content}",
    ]
    if use_snippet_only:
        sections.append(SNIPPET_WARNING)
    sections.append(_INSTRUCTIONS.format(shapes=_describe_shapes()))
    return "\n\n".join(sections)


def classification_tool() -> dict:
    """Anthropic tool declaration whose input is a classification response."""
    variants = []
    for model in META_SUMMARY_MODELS.values():
        if model is None:
            variants.append({"type": "string"})
        else:
            variants.append(model.model_json_schema())
    return {
        "name": CLASSIFY_TOOL_NAME,
        "description": "Record the category, confidence and meta-summary for the email.",
        "input_schema": {
            "type": "object",
            "properties": {
                "category": {
                    "type": "string",
                    "enum": [c.value for c in Category],
                    "description": "The category this email belongs to",
                },
                "confidence": {
                    "type": "number",
                    "minimum": 0,
                    "maximum": 1,
                    "description": "Confidence score from 0.0 to 1.0",
                },
                "meta_summary": {
                    "anyOf": variants,
                    "description": "Category-specific structured summary",
                },
            },
            "required": ["category", "confidence", "meta_summary"],
        },
    }


def _describe_shapes() -> str:
    lines = []
    for category, model in META_SUMMARY_MODELS.items():
        if model is None:
            lines.append(f"   - {category.value}: a plain string")
            continue
        fields = ", ".join(
            field.alias or name for name, field in model.model_fields.items()
        )
        lines.append(f"   - {category.value}: {{{fields}}}")
    return "\n".join(lines)
