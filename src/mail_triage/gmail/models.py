"""Data models for the Gmail module."""

from __future__ import annotations

from dataclasses import asdict, dataclass


@dataclass(frozen=True)
class EmailSummary:
    """Lightweight projection of a mailbox message used while paging."""

    id: str
    subject: str
    sender: str
    date: str  # already in the display timezone
    to: str
    snippet: str

    def to_dict(self) -> dict:
        data = asdict(self)
        data["from"] = data.pop("sender")
        return data


@dataclass(frozen=True)
class EmailFull(EmailSummary):
    """An EmailSummary with the decoded message body, fetched for pass 2."""

    body: str = ""


@dataclass(frozen=True)
class SearchPage:
    """One page of message ids from a Gmail search."""

    ids: list[str]
    next_page_token: str | None = None
