"""Environment-driven settings for a triage run."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

DEFAULT_MEMORY_DIR = os.environ.get("MAIL_TRIAGE_MEMORY_DIR", "memories")
DEFAULT_TIMEZONE = os.environ.get("MAIL_TRIAGE_TIMEZONE", "America/New_York")

CONFIDENCE_THRESHOLD = 0.7
MAX_BATCH_SIZE = 300
DEFAULT_BATCH_SIZE = 200
LARGE_BATCH_WARNING = 250
DEFAULT_BATCH_LIMIT = 5
MAX_BATCH_LIMIT = 20


@dataclass
class TriageSettings:
    """Paths and knobs for building a triage toolbox.

    Use ``TriageSettings.from_env()`` to pick up ``MAIL_TRIAGE_*`` variables.
    """

    memory_dir: Path = Path(DEFAULT_MEMORY_DIR)
    store_path: Path | None = None
    preferences_path: Path | None = None
    timezone: str = DEFAULT_TIMEZONE
    credentials_dir: Path = Path(".credentials")
    client_secret_file: Path | None = None
    account_id: str = "default"
    model: str | None = None
    concurrency: int = 1

    def __post_init__(self):
        self.memory_dir = Path(self.memory_dir)
        if self.store_path is None:
            self.store_path = self.memory_dir / "triage" / "pending.json"
        if self.preferences_path is None:
            self.preferences_path = self.memory_dir / "email_preferences.md"
        self.credentials_dir = Path(self.credentials_dir)
        if self.client_secret_file is None:
            self.client_secret_file = self.credentials_dir / "client_secret.json"
        if self.concurrency < 1:
            self.concurrency = 1

    @classmethod
    def from_env(cls) -> "TriageSettings":
        env = os.environ
        memory_dir = Path(env.get("MAIL_TRIAGE_MEMORY_DIR", DEFAULT_MEMORY_DIR))
        store_path = env.get("MAIL_TRIAGE_STORE_PATH")
        preferences_path = env.get("MAIL_TRIAGE_PREFERENCES_PATH")
        client_secret = env.get("MAIL_TRIAGE_CLIENT_SECRET")
        return cls(
            memory_dir=memory_dir,
            store_path=Path(store_path) if store_path else None,
            preferences_path=Path(preferences_path) if preferences_path else None,
            timezone=env.get("MAIL_TRIAGE_TIMEZONE", DEFAULT_TIMEZONE),
            credentials_dir=Path(env.get("MAIL_TRIAGE_CREDENTIALS_DIR", ".credentials")),
            client_secret_file=Path(client_secret) if client_secret else None,
            account_id=env.get("MAIL_TRIAGE_ACCOUNT", "default"),
            model=env.get("DEFAULT_LLM_MODEL"),
            concurrency=int(env.get("MAIL_TRIAGE_CONCURRENCY", "1")),
        )
