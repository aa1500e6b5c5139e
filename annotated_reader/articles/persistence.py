from __future__ import annotations

import asyncio
import json
import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Callable, Dict, List, Optional

from .models import Article, ArticleStatus, Draft, Settings, Snapshot
from .repository import SnapshotRepository
from .state import AppState

logger = logging.getLogger(__name__)

DEFAULT_DEBOUNCE_SECONDS = 0.5


def encode_snapshot(snapshot: Snapshot) -> str:
    return json.dumps(snapshot.to_dict(), ensure_ascii=False)


def decode_snapshot(payload: Optional[str]) -> Snapshot:
    """
    Parse a stored payload. Anything unreadable yields an empty snapshot, and a
    field that fails to deserialize is dropped on its own.
    """
    if not payload or not payload.strip():
        return Snapshot()
    try:
        data = json.loads(payload)
    except (ValueError, RecursionError) as exc:
        logger.warning("Ignoring malformed snapshot payload: %s", exc)
        return Snapshot()
    if not isinstance(data, dict):
        logger.warning("Ignoring snapshot payload of type %s", type(data).__name__)
        return Snapshot()

    return Snapshot(
        articles=_decode_field(data, "articles", lambda raw: [Article.from_dict(a) for a in raw]),
        draft=_decode_field(data, "draft", Draft.from_dict),
        settings=_decode_field(data, "settings", Settings.from_dict),
    )


def _decode_field(data: Dict[str, Any], key: str, parse: Callable[[Any], Any]):
    raw = data.get(key)
    if raw is None:
        return None
    try:
        return parse(raw)
    except (KeyError, TypeError, ValueError, AttributeError) as exc:
        logger.warning("Ignoring unreadable '%s' in snapshot: %s", key, exc)
        return None


class PersistenceSynchronizer:
    """
    Mirrors `articles`, `draft` and `settings` into a snapshot repository.

    Every mutation restarts a quiet window; the write happens once the window
    passes without further mutations and always serializes the values current
    at that moment. Serialization happens on the event loop; the repository
    write itself runs on a single writer thread, so writes land in order.
    """

    def __init__(
        self,
        state: AppState,
        repository: SnapshotRepository,
        debounce_seconds: float = DEFAULT_DEBOUNCE_SECONDS,
    ):
        self.state = state
        self.repository = repository
        self.debounce_seconds = debounce_seconds
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._pending: Optional[asyncio.TimerHandle] = None
        self._unsubscribers: List[Callable[[], None]] = []
        self._writer: Optional[ThreadPoolExecutor] = None

    @property
    def flush_pending(self) -> bool:
        return self._pending is not None

    def restore(self) -> Snapshot:
        """
        Load the stored snapshot once and overwrite the holders for the fields
        it contains. Never raises.
        """
        try:
            payload = self.repository.load()
        except Exception:  # noqa: BLE001
            logger.exception("Failed to read stored snapshot; starting empty")
            return Snapshot()

        snapshot = decode_snapshot(payload)
        if snapshot.articles is not None:
            self.state.articles.set(snapshot.articles)
            stuck = [a.id for a in snapshot.articles if a.status == ArticleStatus.PARSING]
            if stuck:
                logger.warning("Restored %d article(s) still marked parsing and not queued: %s", len(stuck), stuck)
        if snapshot.draft is not None:
            self.state.draft.set(snapshot.draft)
        if snapshot.settings is not None:
            self.state.settings.set(snapshot.settings)
        logger.info(
            "Restored snapshot: %d article(s), draft=%s, settings=%s",
            len(snapshot.articles or []),
            snapshot.draft is not None,
            snapshot.settings is not None,
        )
        return snapshot

    def attach(self, loop: Optional[asyncio.AbstractEventLoop] = None) -> None:
        """
        Start watching the persisted holders. Must run on (or be given) the
        event loop that owns the state.
        """
        if self._unsubscribers:
            return
        self._loop = loop or asyncio.get_running_loop()
        if self._writer is None:
            self._writer = ThreadPoolExecutor(max_workers=1, thread_name_prefix="snapshot-writer")
        for holder in (self.state.articles, self.state.draft, self.state.settings):
            self._unsubscribers.append(holder.subscribe(self.schedule_flush))

    def detach(self) -> None:
        for unsubscribe in self._unsubscribers:
            unsubscribe()
        self._unsubscribers = []

    def schedule_flush(self, *_: Any) -> None:
        if self._loop is None:
            raise RuntimeError("PersistenceSynchronizer.attach() must be called before scheduling flushes")
        if self._pending is not None:
            self._pending.cancel()
        self._pending = self._loop.call_later(self.debounce_seconds, self._flush_in_background)

    def _flush_in_background(self) -> None:
        self._pending = None
        payload = encode_snapshot(self.state.snapshot())
        if self._writer is None:
            self._save(payload)
        else:
            self._writer.submit(self._save, payload)

    def flush(self) -> None:
        """Write the current values now, on the calling thread."""
        self._pending = None
        self._save(encode_snapshot(self.state.snapshot()))

    def _save(self, payload: str) -> None:
        try:
            self.repository.save(payload)
        except Exception:  # noqa: BLE001
            # The next mutation schedules another write.
            logger.exception("Failed to persist snapshot")

    def close(self) -> None:
        """
        Stop watching, wait for background writes, then write out a flush that
        is still waiting, if any.
        """
        self.detach()
        if self._writer is not None:
            self._writer.shutdown(wait=True)
            self._writer = None
        if self._pending is not None:
            self._pending.cancel()
            self.flush()
