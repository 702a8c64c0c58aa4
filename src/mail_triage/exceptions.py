"""Unified exception hierarchy for mail-triage."""


class MailTriageError(Exception):
    """Base exception for all mail-triage errors."""


# Gmail
class GmailError(MailTriageError):
    """Base exception for Gmail operations."""


class GmailAuthError(GmailError):
    """Gmail authentication or authorization failure."""


class GmailFetchError(GmailError):
    """Failed to search Gmail or fetch a message."""


# LLM
class LLMError(MailTriageError):
    """Base exception for LLM client operations."""


# Classification
class ClassificationError(MailTriageError):
    """The model call failed or returned a payload that does not validate.

    Never propagated out of a triage run; converted into the OTHER fallback.
    """

    def __init__(self, email_id: str, reason: str):
        super().__init__(reason)
        self.email_id = email_id
        self.reason = reason


# Persistence
class PendingStoreError(MailTriageError):
    """The pending triage document could not be read or written."""
