"""Page through a Gmail search, collecting message summaries up to a cap."""

from __future__ import annotations

import logging
from datetime import tzinfo

from dateutil import tz

from mail_triage.config import DEFAULT_TIMEZONE
from mail_triage.exceptions import GmailFetchError
from mail_triage.gmail.client import MAX_PAGE_SIZE, GmailClient
from mail_triage.gmail.models import EmailFull, EmailSummary
from mail_triage.gmail.parser import METADATA_HEADERS, parse_full, parse_metadata

logger = logging.getLogger(__name__)


class GmailPager:
    """Iterates search results page by page, one metadata fetch per id.

    Results keep Gmail's native order (most recent first) with repeated ids
    dropped. A message whose metadata cannot be fetched or parsed is skipped;
    a failed search call is fatal.

    Args:
        client: The Gmail capability.
        timezone: IANA zone used to render message dates.
    """

    def __init__(self, client: GmailClient, timezone: str = DEFAULT_TIMEZONE):
        self.client = client
        self.display_tz: tzinfo | None = tz.gettz(timezone)
        if self.display_tz is None:
            raise ValueError(f"Unknown timezone: {timezone}")

    async def fetch(self, query: str, cap: int) -> list[EmailSummary]:
        """Return at most ``cap`` summaries for ``query``.

        Raises:
            GmailFetchError: if a search call fails.
        """
        emails: list[EmailSummary] = []
        seen: set[str] = set()
        page_token = None
        page_number = 1

        while len(emails) < cap:
            page = await self.client.asearch(
                query,
                page_size=min(MAX_PAGE_SIZE, cap - len(emails)),
                page_token=page_token,
            )
            if not page.ids:
                break

            skipped = 0
            for message_id in page.ids:
                if len(emails) >= cap:
                    break
                # results can shift between page requests
                if message_id in seen:
                    skipped += 1
                    continue
                seen.add(message_id)
                try:
                    emails.append(await self._summary(message_id))
                except GmailFetchError as e:
                    skipped += 1
                    logger.warning(f"Skipping message {message_id}: {e}")

            logger.info(
                f"Fetched page {page_number}: {len(page.ids) - skipped} of "
                f"{len(page.ids)} messages (total: {len(emails)})"
            )

            page_token = page.next_page_token
            page_number += 1
            if not page_token:
                break

        return emails

    async def fetch_full(self, email_id: str) -> EmailFull:
        """Fetch and decode one message with its body.

        Raises:
            GmailFetchError: if the message cannot be fetched or parsed.
        """
        raw = await self.client.aget_full(email_id)
        try:
            return parse_full(raw, self.display_tz)
        except (KeyError, TypeError, ValueError) as e:
            raise GmailFetchError(f"Failed to parse message {email_id}: {e}") from e

    async def _summary(self, message_id: str) -> EmailSummary:
        raw = await self.client.aget_metadata(message_id, METADATA_HEADERS)
        try:
            return parse_metadata(raw, self.display_tz)
        except (KeyError, TypeError, ValueError) as e:
            raise GmailFetchError(f"Failed to parse metadata for {message_id}: {e}") from e
