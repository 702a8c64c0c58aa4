"""Parse Gmail API message payloads into EmailSummary / EmailFull."""

from __future__ import annotations

import base64
import html as html_module
import re
from datetime import tzinfo

import dateutil.parser as parser
from bs4 import BeautifulSoup
from dateutil import tz

from mail_triage.config import DEFAULT_TIMEZONE
from mail_triage.gmail.models import EmailFull, EmailSummary

METADATA_HEADERS = ["Subject", "From", "Date", "To"]


def parse_metadata(raw_message: dict, display_tz: tzinfo | None = None) -> EmailSummary:
    """Build an EmailSummary from a ``format=metadata`` message.

    Pure parsing, no network calls.
    """
    headers = _extract_headers(raw_message.get("payload", {}))
    return EmailSummary(
        id=raw_message["id"],
        subject=headers.get("subject", ""),
        sender=headers.get("from", ""),
        date=format_display_date(headers.get("date", ""), display_tz),
        to=headers.get("to", ""),
        snippet=html_module.unescape(raw_message.get("snippet", "")),
    )


def parse_full(
    raw_message: dict,
    display_tz: tzinfo | None = None,
    max_body_length: int = 10000,
) -> EmailFull:
    """Build an EmailFull from a ``format=full`` message.

    The body falls back to the snippet when no text part can be decoded.
    """
    summary = parse_metadata(raw_message, display_tz)
    body = _extract_body(raw_message.get("payload", {}))
    if len(body) > max_body_length:
        body = body[:max_body_length]
    return EmailFull(
        id=summary.id,
        subject=summary.subject,
        sender=summary.sender,
        date=summary.date,
        to=summary.to,
        snippet=summary.snippet,
        body=body or summary.snippet,
    )


def format_display_date(value: str, display_tz: tzinfo | None = None) -> str:
    """Render an RFC 2822 date like ``Fri, Mar 15, 2024, 2:30 PM EDT``.

    The abbreviation comes from the zone itself, so it follows DST. Values
    that cannot be parsed are returned unchanged.
    """
    if not value:
        return value
    zone = display_tz or tz.gettz(DEFAULT_TIMEZONE)
    try:
        parsed = parser.parse(value)
        if parsed.tzinfo is None:
            parsed = parsed.replace(tzinfo=tz.UTC)
        # offsets of 24h or more parse fine but cannot be converted
        local = parsed.astimezone(zone)
    except (ValueError, OverflowError):
        return value
    hour = local.hour % 12 or 12
    return (
        f"{local:%a}, {local:%b} {local.day}, {local.year}, "
        f"{hour}:{local:%M} {local:%p} {local.tzname()}"
    )


def _extract_headers(payload: dict) -> dict[str, str]:
    return {
        h["name"].lower(): h["value"]
        for h in payload.get("headers", [])
    }


def _extract_body(payload: dict) -> str:
    mime_type = payload.get("mimeType", "")

    if mime_type == "text/plain":
        return _decode_body_data(payload)

    if mime_type.startswith("multipart/"):
        parts = payload.get("parts", [])
        for part in parts:
            if part.get("mimeType") == "text/plain":
                text = _decode_body_data(part)
                if text:
                    return text
        for part in parts:
            text = _extract_body(part)
            if text:
                return text

    if mime_type == "text/html":
        html = _decode_body_data(payload)
        return _strip_html(html) if html else ""

    return ""


def _decode_body_data(payload: dict) -> str:
    data = payload.get("body", {}).get("data", "")
    if not data:
        return ""
    try:
        return base64.urlsafe_b64decode(data).decode("utf-8", errors="replace")
    except (ValueError, TypeError):
        return ""


def _strip_html(html: str) -> str:
    soup = BeautifulSoup(html, "html.parser")
    for tag in soup(["script", "style", "head"]):
        tag.decompose()
    text = soup.get_text(separator=" ")
    return re.sub(r"\s+", " ", text).strip()
