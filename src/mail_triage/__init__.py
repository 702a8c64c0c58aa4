"""Gmail inbox triage: two-pass LLM classification with a pending-review store."""

__version__ = "0.1.0"
