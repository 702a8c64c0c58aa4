"""Agent-facing tool declarations for triage and batch read-back.

``TOOLS`` uses the Anthropic tool format, so it can be passed straight to
``AsyncLLMClient.generate_with_tools``. ``TriageToolbox.call`` executes a
tool call and always returns a JSON string: errors are reported in the
payload instead of raised into the agent loop.
"""

from __future__ import annotations

import json
import logging
from typing import Any

from mail_triage.config import (
    DEFAULT_BATCH_LIMIT,
    DEFAULT_BATCH_SIZE,
    MAX_BATCH_LIMIT,
    MAX_BATCH_SIZE,
    TriageSettings,
)
from mail_triage.exceptions import MailTriageError
from mail_triage.triage.engine import TriageEngine
from mail_triage.triage.models import Category
from mail_triage.triage.reader import BatchReader

logger = logging.getLogger(__name__)

TOOLS = [
    {
        "name": "triage_inbox",
        "description": (
            "Triage and classify inbox emails in batch. Fetches emails from "
            "Gmail, classifies them by category with confidence scores, and "
            "merges the results into the pending triage store. Returns only "
            "counts per category and a short digest; read the emails "
            "themselves with get_triage_batch."
        ),
        "input_schema": {
            "type": "object",
            "properties": {
                "batch_size": {
                    "type": "integer",
                    "description": (
                        f"Maximum number of emails to process (default: "
                        f"{DEFAULT_BATCH_SIZE}, max: {MAX_BATCH_SIZE})"
                    ),
                },
                "days": {
                    "type": "integer",
                    "description": "Process emails from the last N days (default: 1)",
                },
                "older_than": {
                    "type": "string",
                    "description": "Process emails older than this date (YYYY/MM/DD)",
                },
            },
            "required": [],
        },
    },
    {
        "name": "get_triage_batch",
        "description": (
            "Read a small batch of triaged emails of one category from the "
            "pending triage store. Use next_offset to page through."
        ),
        "input_schema": {
            "type": "object",
            "properties": {
                "category": {
                    "type": "string",
                    "enum": [c.value for c in Category],
                    "description": "Category to read",
                },
                "offset": {
                    "type": "integer",
                    "description": "Index of the first email to return (default: 0)",
                },
                "limit": {
                    "type": "integer",
                    "description": (
                        f"Emails to return (default: {DEFAULT_BATCH_LIMIT}, "
                        f"max: {MAX_BATCH_LIMIT})"
                    ),
                },
            },
            "required": ["category"],
        },
    },
]


class TriageToolbox:
    """Dispatches agent tool calls to the engine and the batch reader."""

    def __init__(self, engine: TriageEngine, reader: BatchReader):
        self.engine = engine
        self.reader = reader

    async def call(self, name: str, arguments: dict[str, Any] | None = None) -> str:
        arguments = arguments or {}
        try:
            if name == "triage_inbox":
                report = await self.engine.run(
                    batch_size=int(arguments.get("batch_size", DEFAULT_BATCH_SIZE)),
                    days=int(arguments.get("days", 1)),
                    older_than=arguments.get("older_than"),
                )
                payload = report.to_dict()
            elif name == "get_triage_batch":
                page = self.reader.get_batch(
                    arguments["category"],
                    offset=int(arguments.get("offset", 0)),
                    limit=int(arguments["limit"]) if "limit" in arguments else None,
                )
                payload = {"success": True, **page.to_dict()}
            else:
                raise ValueError(f"Unknown tool: {name}")
        except (MailTriageError, ValueError, KeyError, TypeError) as e:
            logger.error(f"Tool {name} failed: {e}")
            payload = {
                "success": False,
                "error": str(e),
                "message": f"Failed to complete {name}",
            }
        return json.dumps(payload, indent=2, ensure_ascii=False)


def build_toolbox(settings: TriageSettings | None = None) -> TriageToolbox:
    """Wire the real Gmail service, LLM client, store and reader.

    Raises:
        GmailAuthError: if no usable OAuth token exists.
        LLMError: if no Anthropic API key is configured.
    """
    from mail_triage.gmail.auth import AuthManager
    from mail_triage.gmail.client import GmailClient
    from mail_triage.gmail.pager import GmailPager
    from mail_triage.llm.client import AsyncLLMClient
    from mail_triage.triage.classifier import Classifier
    from mail_triage.triage.store import PendingStore

    settings = settings or TriageSettings.from_env()

    auth = AuthManager(settings.credentials_dir, settings.client_secret_file)
    service = auth.get_gmail_service(settings.account_id)
    llm = AsyncLLMClient(model=settings.model) if settings.model else AsyncLLMClient()

    store = PendingStore(settings.store_path)
    engine = TriageEngine(
        pager=GmailPager(GmailClient(service), timezone=settings.timezone),
        classifier=Classifier(llm, preferences_path=settings.preferences_path),
        store=store,
        concurrency=settings.concurrency,
    )
    return TriageToolbox(engine, BatchReader(store))
