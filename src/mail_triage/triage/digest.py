"""Aggregate counts and the human-readable digest returned after a run."""

from __future__ import annotations

from mail_triage.triage.models import Category, Classification, count_categories

PRIORITY_ORDER = [
    Category.ACTION_REQUIRED,
    Category.SUMMARIZE_EVENTS,
    Category.SUMMARIZE_PURCHASES,
    Category.SUMMARIZE_AND_INFORM,
    Category.UNSUBSCRIBE,
    Category.IMMEDIATE_ARCHIVE,
    Category.OTHER,
]

ICONS = {
    Category.ACTION_REQUIRED: "🔴",
    Category.SUMMARIZE_EVENTS: "📅",
    Category.SUMMARIZE_PURCHASES: "🛒",
    Category.SUMMARIZE_AND_INFORM: "📰",
    Category.UNSUBSCRIBE: "🗑️",
    Category.IMMEDIATE_ARCHIVE: "📥",
    Category.OTHER: "❓",
}


def build_digest(classifications: list[Classification]) -> str:
    """One line per non-empty category, most urgent first."""
    counts = count_categories(classifications)
    lines = [f"Triaged {len(classifications)} emails:", ""]
    for category in PRIORITY_ORDER:
        count = counts.get(category.value, 0)
        if count:
            label = category.value.replace("_", " ")
            lines.append(f"  {ICONS[category]} {count} {label}")
    return "\n".join(lines)
