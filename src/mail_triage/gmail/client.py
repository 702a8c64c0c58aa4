"""Read-only Gmail API capability used by the triage pipeline."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Optional

import httplib2
from googleapiclient.errors import HttpError

from mail_triage.exceptions import GmailFetchError
from mail_triage.gmail.models import SearchPage

logger = logging.getLogger(__name__)

MAX_PAGE_SIZE = 100  # Gmail's cap for users.messages.list

_TRANSPORT_ERRORS = (HttpError, httplib2.HttpLib2Error, OSError)


class GmailClient:
    """Thin wrapper over an authenticated Gmail ``Resource``.

    Exposes exactly what triage needs: search, metadata fetch and full fetch.
    Nothing here mutates the mailbox.

    Args:
        service: A ``googleapiclient.discovery.Resource`` for Gmail v1, as
            returned by ``AuthManager.get_gmail_service``.
        user_id: Gmail user id, normally ``'me'``.
    """

    def __init__(self, service: Any, user_id: str = 'me'):
        self._service = service
        self.user_id = user_id

    # ---- Sync methods ----

    def search(
        self,
        query: str,
        page_size: int = MAX_PAGE_SIZE,
        page_token: Optional[str] = None,
    ) -> SearchPage:
        """Return one page of message ids matching ``query``."""
        kwargs: dict[str, Any] = {
            'userId': self.user_id,
            'q': query,
            'maxResults': max(1, min(page_size, MAX_PAGE_SIZE)),
        }
        if page_token:
            kwargs['pageToken'] = page_token

        try:
            response = self._service.users().messages().list(**kwargs).execute()
        except _TRANSPORT_ERRORS as e:
            raise GmailFetchError(f"Failed to search messages: {e}") from e

        return SearchPage(
            ids=[msg['id'] for msg in response.get('messages', [])],
            next_page_token=response.get('nextPageToken'),
        )

    def get_metadata(self, message_id: str, header_names: list[str]) -> dict:
        """Fetch headers and snippet for one message (``format=metadata``)."""
        try:
            return self._service.users().messages().get(
                userId=self.user_id,
                id=message_id,
                format='metadata',
                metadataHeaders=header_names,
            ).execute()
        except _TRANSPORT_ERRORS as e:
            raise GmailFetchError(
                f"Failed to fetch metadata for {message_id}: {e}"
            ) from e

    def get_full(self, message_id: str) -> dict:
        """Fetch the full payload for one message (``format=full``)."""
        try:
            return self._service.users().messages().get(
                userId=self.user_id, id=message_id, format='full',
            ).execute()
        except _TRANSPORT_ERRORS as e:
            raise GmailFetchError(f"Failed to fetch message {message_id}: {e}") from e

    # ---- Async wrappers (asyncio.to_thread) ----

    async def asearch(
        self,
        query: str,
        page_size: int = MAX_PAGE_SIZE,
        page_token: Optional[str] = None,
    ) -> SearchPage:
        """Async version of search."""
        return await asyncio.to_thread(self.search, query, page_size, page_token)

    async def aget_metadata(self, message_id: str, header_names: list[str]) -> dict:
        """Async version of get_metadata."""
        return await asyncio.to_thread(self.get_metadata, message_id, header_names)

    async def aget_full(self, message_id: str) -> dict:
        """Async version of get_full."""
        return await asyncio.to_thread(self.get_full, message_id)
