"""Tests for the Gmail capability client."""

import asyncio
from unittest.mock import MagicMock

import httplib2
import pytest
from googleapiclient.errors import HttpError

from mail_triage.exceptions import GmailFetchError
from mail_triage.gmail.client import GmailClient


@pytest.fixture
def gmail_client():
    service = MagicMock()
    return GmailClient(service), service


def test_search_returns_ids_and_token(gmail_client):
    client, service = gmail_client
    service.users().messages().list().execute.return_value = {
        "messages": [{"id": "a"}, {"id": "b"}],
        "nextPageToken": "tok",
    }
    page = client.search("in:inbox", page_size=50)
    assert page.ids == ["a", "b"]
    assert page.next_page_token == "tok"
    kwargs = service.users().messages().list.call_args.kwargs
    assert kwargs["q"] == "in:inbox"
    assert kwargs["maxResults"] == 50
    assert "pageToken" not in kwargs


def test_search_clamps_page_size_and_passes_token(gmail_client):
    client, service = gmail_client
    service.users().messages().list().execute.return_value = {}
    page = client.search("in:inbox", page_size=500, page_token="next")
    assert page.ids == []
    assert page.next_page_token is None
    kwargs = service.users().messages().list.call_args.kwargs
    assert kwargs["maxResults"] == 100
    assert kwargs["pageToken"] == "next"


def test_search_error(gmail_client):
    client, service = gmail_client
    service.users().messages().list().execute.side_effect = HttpError(
        httplib2.Response({"status": 503}), b"backend error"
    )
    with pytest.raises(GmailFetchError, match="Failed to search messages"):
        client.search("in:inbox")


def test_get_metadata_requests_headers(gmail_client):
    client, service = gmail_client
    service.users().messages().get().execute.return_value = {"id": "a"}
    assert client.get_metadata("a", ["Subject", "From"]) == {"id": "a"}
    kwargs = service.users().messages().get.call_args.kwargs
    assert kwargs["format"] == "metadata"
    assert kwargs["metadataHeaders"] == ["Subject", "From"]


def test_get_full_error(gmail_client):
    client, service = gmail_client
    service.users().messages().get().execute.side_effect = HttpError(
        httplib2.Response({"status": 404}), b"not found"
    )
    with pytest.raises(GmailFetchError, match="Failed to fetch message a"):
        client.get_full("a")


def test_async_wrappers(gmail_client):
    client, service = gmail_client
    service.users().messages().get().execute.return_value = {"id": "a", "payload": {}}
    assert asyncio.run(client.aget_full("a")) == {"id": "a", "payload": {}}


def test_transport_error_is_wrapped(gmail_client):
    client, service = gmail_client
    service.users().messages().get().execute.side_effect = TimeoutError("timed out")
    with pytest.raises(GmailFetchError, match="Failed to fetch metadata for a"):
        client.get_metadata("a", ["Subject"])


def test_programming_errors_propagate(gmail_client):
    client, service = gmail_client
    service.users().messages().list().execute.side_effect = AttributeError("bad call")
    with pytest.raises(AttributeError):
        client.search("in:inbox")
