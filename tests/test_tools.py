"""Tests for the agent-facing tool dispatcher."""

import asyncio
import json

import pytest

from mail_triage.exceptions import GmailFetchError
from mail_triage.tools import TOOLS, TriageToolbox
from mail_triage.triage.classifier import Classifier
from mail_triage.triage.engine import TriageEngine
from mail_triage.triage.reader import BatchReader
from mail_triage.triage.store import PendingStore


@pytest.fixture
def toolbox(tmp_path, fake_llm_cls, fake_pager_cls, make_email, payload):
    emails = [make_email(n) for n in range(1, 8)]
    llm = fake_llm_cls(snippet={"Subject 3": payload("IMMEDIATE_ARCHIVE", 0.97)})
    pager = fake_pager_cls(emails)
    store = PendingStore(tmp_path / "pending.json")
    engine = TriageEngine(pager, Classifier(llm), store)
    return TriageToolbox(engine, BatchReader(store))


def _call(toolbox, name, arguments=None):
    return json.loads(asyncio.run(toolbox.call(name, arguments)))


def test_tool_declarations():
    names = [t["name"] for t in TOOLS]
    assert names == ["triage_inbox", "get_triage_batch"]
    batch = TOOLS[1]["input_schema"]
    assert batch["required"] == ["category"]
    assert "IMMEDIATE_ARCHIVE" in batch["properties"]["category"]["enum"]


def test_triage_inbox_returns_counts_only(toolbox):
    result = _call(toolbox, "triage_inbox", {"batch_size": 50})
    assert result["success"] is True
    assert result["total_emails"] == 7
    assert result["by_category"] == {"OTHER": 6, "IMMEDIATE_ARCHIVE": 1}
    assert "emails" not in result
    assert "📥 1 IMMEDIATE ARCHIVE" in result["summary"]


def test_get_triage_batch_pages(toolbox):
    _call(toolbox, "triage_inbox")
    first = _call(toolbox, "get_triage_batch", {"category": "other", "limit": 4})
    assert first["success"] is True
    assert first["category"] == "OTHER"
    assert [e["email_id"] for e in first["emails"]] == ["msg1", "msg2", "msg4", "msg5"]
    assert first["next_offset"] == 4

    rest = _call(toolbox, "get_triage_batch", {"category": "OTHER", "offset": 4})
    assert [e["email_id"] for e in rest["emails"]] == ["msg6", "msg7"]
    assert rest["has_more"] is False
    assert rest["emails"][0]["from"] == "Sender 6 <sender6@example.com>"


def test_get_triage_batch_before_any_run(toolbox):
    result = _call(toolbox, "get_triage_batch", {"category": "ACTION_REQUIRED"})
    assert result["success"] is True
    assert result["emails"] == []
    assert result["total_in_category"] == 0


def test_unknown_category_is_reported(toolbox):
    result = _call(toolbox, "get_triage_batch", {"category": "SPAM"})
    assert result["success"] is False
    assert "Unknown category" in result["error"]
    assert result["message"] == "Failed to complete get_triage_batch"


def test_missing_category_is_reported(toolbox):
    assert _call(toolbox, "get_triage_batch", {})["success"] is False


def test_unknown_tool_is_reported(toolbox):
    result = _call(toolbox, "archive_everything")
    assert result["success"] is False
    assert result["error"] == "Unknown tool: archive_everything"


def test_fetch_failure_is_reported(toolbox):
    async def broken_fetch(query, cap):
        raise GmailFetchError("Failed to search messages: 401")

    toolbox.engine.pager.fetch = broken_fetch
    result = _call(toolbox, "triage_inbox")
    assert result["success"] is False
    assert result["error"] == "Failed to search messages: 401"
