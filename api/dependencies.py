from __future__ import annotations

import os
from functools import lru_cache
from pathlib import Path

from annotated_reader.articles import (
    AppState,
    ArticleLifecycle,
    CollectingNotifier,
    JsonFileSnapshotRepository,
    LlmAnalysisService,
    LocalArticleStorage,
    ParsingQueueWorker,
    PersistenceSynchronizer,
    ProgressEvents,
    SnapshotRepository,
    SqlAlchemySnapshotRepository,
    StoragePaths,
)


@lru_cache(maxsize=1)
def get_state() -> AppState:
    return AppState()


@lru_cache(maxsize=1)
def get_events() -> ProgressEvents:
    return ProgressEvents()


@lru_cache(maxsize=1)
def get_notifier() -> CollectingNotifier:
    return CollectingNotifier()


@lru_cache(maxsize=1)
def get_storage() -> LocalArticleStorage:
    root = Path(os.getenv("READER_STORAGE_ROOT", "./data"))
    return LocalArticleStorage(StoragePaths(root))


@lru_cache(maxsize=1)
def get_repo() -> SnapshotRepository:
    db_url = os.getenv("DATABASE_URL")
    if db_url:
        return SqlAlchemySnapshotRepository(db_url)
    return JsonFileSnapshotRepository(get_storage())


@lru_cache(maxsize=1)
def get_synchronizer() -> PersistenceSynchronizer:
    debounce_ms = int(os.getenv("SAVE_DEBOUNCE_MS", "500"))
    return PersistenceSynchronizer(get_state(), get_repo(), debounce_seconds=debounce_ms / 1000.0)


@lru_cache(maxsize=1)
def get_worker() -> ParsingQueueWorker:
    timeout_s = float(os.getenv("ANALYSIS_TIMEOUT_S", "120"))
    service = LlmAnalysisService(get_events(), timeout_s=timeout_s)
    return ParsingQueueWorker(get_state(), service, get_events(), get_notifier())


@lru_cache(maxsize=1)
def get_lifecycle() -> ArticleLifecycle:
    return ArticleLifecycle(get_state(), get_worker(), storage=get_storage())


def reset_dependencies() -> None:
    """Drop every cached component (tests swap environments between apps)."""
    for factory in (
        get_state,
        get_events,
        get_notifier,
        get_storage,
        get_repo,
        get_synchronizer,
        get_worker,
        get_lifecycle,
    ):
        factory.cache_clear()
