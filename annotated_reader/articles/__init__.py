"""
Article subsystem exports.
"""

from .engine import AnalysisError, AnalysisRequest, AnalysisService, LlmAnalysisService
from .events import CollectingNotifier, LoggingNotifier, Notifier, ProgressEvents
from .lifecycle import ArticleLifecycle, ArticleNotFoundError, ValidationError, derive_title_and_preview
from .models import (
    Article,
    ArticleStatus,
    Draft,
    ProgressEvent,
    Sentence,
    Settings,
    Snapshot,
    View,
    WordBlock,
)
from .persistence import PersistenceSynchronizer, decode_snapshot, encode_snapshot
from .repository import (
    InMemorySnapshotRepository,
    JsonFileSnapshotRepository,
    SnapshotRepository,
    SqlAlchemySnapshotRepository,
)
from .state import AppState, StateHolder
from .storage import LocalArticleStorage, StoragePaths
from .worker import ParsingQueueWorker

__all__ = [
    "AnalysisError",
    "AnalysisRequest",
    "AnalysisService",
    "AppState",
    "Article",
    "ArticleLifecycle",
    "ArticleNotFoundError",
    "ArticleStatus",
    "CollectingNotifier",
    "Draft",
    "InMemorySnapshotRepository",
    "JsonFileSnapshotRepository",
    "LlmAnalysisService",
    "LocalArticleStorage",
    "LoggingNotifier",
    "Notifier",
    "ParsingQueueWorker",
    "PersistenceSynchronizer",
    "ProgressEvent",
    "ProgressEvents",
    "Sentence",
    "Settings",
    "Snapshot",
    "SnapshotRepository",
    "SqlAlchemySnapshotRepository",
    "StateHolder",
    "StoragePaths",
    "ValidationError",
    "View",
    "WordBlock",
    "decode_snapshot",
    "derive_title_and_preview",
    "encode_snapshot",
]
