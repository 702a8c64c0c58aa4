"""Two-pass email triage: classification, persistence and batch read-back."""

from mail_triage.triage.classifier import Classifier
from mail_triage.triage.engine import TriageEngine, TriageReport, TriageState
from mail_triage.triage.models import (
    Category,
    Classification,
    ClassificationResult,
    PendingDocument,
)
from mail_triage.triage.reader import BatchPage, BatchReader
from mail_triage.triage.store import PendingStore

__all__ = [
    "Category",
    "Classification",
    "ClassificationResult",
    "Classifier",
    "PendingDocument",
    "PendingStore",
    "BatchPage",
    "BatchReader",
    "TriageEngine",
    "TriageReport",
    "TriageState",
]
