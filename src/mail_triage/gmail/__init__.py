"""Gmail access for triage: query building, paging and parsing.

Google API imports are deferred. Use explicit imports:
    from mail_triage.gmail.auth import AuthManager
    from mail_triage.gmail.client import GmailClient
    from mail_triage.gmail.pager import GmailPager
"""

# Light imports only (no Google deps)
from mail_triage.gmail import query
from mail_triage.gmail.models import EmailFull, EmailSummary, SearchPage
from mail_triage.gmail.query import QueryFilters, build_query


def __getattr__(name):
    """Lazy imports for classes that pull in Google or parsing libraries."""
    if name == "AuthManager":
        from mail_triage.gmail.auth import AuthManager
        return AuthManager
    if name == "GmailClient":
        from mail_triage.gmail.client import GmailClient
        return GmailClient
    if name == "GmailPager":
        from mail_triage.gmail.pager import GmailPager
        return GmailPager
    if name == "parse_metadata":
        from mail_triage.gmail.parser import parse_metadata
        return parse_metadata
    if name == "parse_full":
        from mail_triage.gmail.parser import parse_full
        return parse_full
    raise AttributeError(f"module 'mail_triage.gmail' has no attribute {name!r}")


__all__ = [
    "AuthManager",
    "GmailClient",
    "GmailPager",
    "QueryFilters",
    "build_query",
    "query",
    "parse_metadata",
    "parse_full",
    "EmailSummary",
    "EmailFull",
    "SearchPage",
]
