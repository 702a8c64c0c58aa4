"""OAuth2 token handling for read-only Gmail access."""

from __future__ import annotations

from pathlib import Path

from google.auth.exceptions import RefreshError
from google.auth.transport.requests import Request
from google.oauth2.credentials import Credentials
from google_auth_oauthlib.flow import InstalledAppFlow
from googleapiclient.discovery import build, Resource

from mail_triage.exceptions import GmailAuthError

READONLY_SCOPES = ["https://www.googleapis.com/auth/gmail.readonly"]


class AuthManager:
    """Loads, refreshes and (interactively) creates Gmail OAuth tokens.

    Triage only reads the mailbox, so the default scope is read-only.

    Args:
        credentials_dir: Directory holding ``token_<account>.json`` files.
        client_secret_file: Path to the client secrets JSON from Google
            Cloud Console.
        scopes: OAuth2 scopes to request.
    """

    def __init__(
        self,
        credentials_dir: Path,
        client_secret_file: Path,
        scopes: list[str] | None = None,
    ):
        self.scopes = scopes or list(READONLY_SCOPES)
        self._credentials_dir = Path(credentials_dir)
        self._client_secret = Path(client_secret_file)

    def token_path(self, account_id: str) -> Path:
        return self._credentials_dir / f"token_{account_id}.json"

    def authorize_account(self, account_id: str) -> Credentials:
        """Run the interactive OAuth2 flow. Opens a browser."""
        if not self._client_secret.exists():
            raise GmailAuthError(
                f"Client secret not found at {self._client_secret}. "
                "Download it from Google Cloud Console and place it there."
            )

        flow = InstalledAppFlow.from_client_secrets_file(
            str(self._client_secret), self.scopes,
        )
        creds = flow.run_local_server(port=0)

        token_path = self.token_path(account_id)
        token_path.parent.mkdir(parents=True, exist_ok=True)
        token_path.write_text(creds.to_json())
        return creds

    def get_credentials(self, account_id: str) -> Credentials:
        """Load credentials, refreshing and re-saving them when expired."""
        token_path = self.token_path(account_id)
        if not token_path.exists():
            raise GmailAuthError(
                f"No token found for account '{account_id}' at {token_path}. "
                "Authorize the account first."
            )

        try:
            creds = Credentials.from_authorized_user_file(str(token_path), self.scopes)
            if creds.expired and creds.refresh_token:
                creds.refresh(Request())
                token_path.write_text(creds.to_json())
        except (RefreshError, ValueError, OSError) as e:
            raise GmailAuthError(f"Could not load token for '{account_id}': {e}") from e

        if not creds.valid:
            raise GmailAuthError(
                f"Token for account '{account_id}' is invalid. Re-authorize the account."
            )
        return creds

    def get_gmail_service(self, account_id: str) -> Resource:
        """Return an authenticated Gmail API service for the account."""
        creds = self.get_credentials(account_id)
        return build("gmail", "v1", credentials=creds, cache_discovery=False)
