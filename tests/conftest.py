"""Shared test doubles for the triage pipeline."""

import re

import pytest

from mail_triage.exceptions import GmailFetchError
from mail_triage.gmail.models import EmailFull, EmailSummary

SAMPLE_SUMMARIES = {
    "ACTION_REQUIRED": {
        "subject": "Interview next week",
        "people": "Dana <dana@example.com>",
        "synopsis": "Recruiter asks for availability.",
        "analysis": "Reply with time slots by Friday; tone is formal.",
    },
    "SUMMARIZE_AND_INFORM": {
        "source": "Weekly Digest",
        "subject": "This week in tech",
        "key_insights": "Three product launches and one acquisition.",
    },
    "SUMMARIZE_EVENTS": {
        "event": "Design meetup",
        "from": "Meetup <info@meetup.com>",
        "what": "Evening talks on UX research.",
        "where": "Cambridge Innovation Center",
        "when": "Thursday, March 21, 6:30 PM",
    },
    "SUMMARIZE_PURCHASES": {
        "vendor": "Bookshop",
        "subject": "Your order shipped",
        "update": "Your order shipped.",
    },
    "UNSUBSCRIBE": {
        "sender": "Deals Daily",
        "recommendation": "Daily promotions you never open.",
    },
    "IMMEDIATE_ARCHIVE": "Automated notification requiring no action.",
    "OTHER": {
        "subject": "Misc",
        "people": "someone@example.com",
        "synopsis": "Hard to tell.",
        "reason": "Does not fit other categories.",
    },
}


def _payload(category="OTHER", confidence=0.9, meta_summary=None):
    return {
        "category": category,
        "confidence": confidence,
        "meta_summary": SAMPLE_SUMMARIES[category] if meta_summary is None else meta_summary,
    }


class FakeLLM:
    """Stands in for AsyncLLMClient.generate_with_tools.

    ``snippet`` / ``full`` map an email subject to a tool input dict or an
    exception to raise, for pass 1 and pass 2 respectively.
    """

    def __init__(self, snippet=None, full=None, default=None):
        self.snippet = snippet or {}
        self.full = full or {}
        self.default = default or _payload("OTHER", 0.9)
        self.calls = []

    async def generate_with_tools(self, system_prompt, messages, tools, tool_choice=None, **kwargs):
        subject = re.search(r"^Subject: (.*)$", messages, re.MULTILINE).group(1)
        snippet_only = "Content Type: SNIPPET ONLY" in messages
        self.calls.append((subject, "snippet" if snippet_only else "full"))
        script = self.snippet if snippet_only else self.full
        outcome = script.get(subject, self.default)
        if isinstance(outcome, Exception):
            raise outcome
        return {
            "text": "",
            "tool_calls": [{"name": tools[0]["name"], "input": outcome, "id": "tool_1"}],
            "stop_reason": "tool_use",
        }


class FakePager:
    """Stands in for GmailPager with canned summaries and bodies."""

    def __init__(self, emails, fail_full=()):
        self.emails = emails
        self.fail_full = set(fail_full)
        self.queries = []
        self.full_requests = []

    async def fetch(self, query, cap):
        self.queries.append((query, cap))
        return self.emails[:cap]

    async def fetch_full(self, email_id):
        self.full_requests.append(email_id)
        if email_id in self.fail_full:
            raise GmailFetchError(f"Failed to fetch message {email_id}: boom")
        email = next(e for e in self.emails if e.id == email_id)
        return EmailFull(
            id=email.id,
            subject=email.subject,
            sender=email.sender,
            date=email.date,
            to=email.to,
            snippet=email.snippet,
            body=f"Full body of {email.subject}",
        )


def _make_email(n, subject=None, snippet=None):
    return EmailSummary(
        id=f"msg{n}",
        subject=subject or f"Subject {n}",
        sender=f"Sender {n} <sender{n}@example.com>",
        date="Fri, Mar 15, 2024, 2:30 PM EDT",
        to="me@example.com",
        snippet=snippet if snippet is not None else f"Snippet for message {n}",
    )


@pytest.fixture
def payload():
    return _payload


@pytest.fixture
def make_email():
    return _make_email


@pytest.fixture
def fake_llm_cls():
    return FakeLLM


@pytest.fixture
def fake_pager_cls():
    return FakePager
