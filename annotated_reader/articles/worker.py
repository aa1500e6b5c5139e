from __future__ import annotations

import asyncio
import logging
from dataclasses import replace
from typing import List, Optional

from .engine import AnalysisRequest, AnalysisService
from .events import Notifier, ProgressEvents
from .models import Article, ArticleStatus, ProgressEvent, Sentence
from .state import AppState

logger = logging.getLogger(__name__)


class ParsingQueueWorker:
    """
    Drains the parsing queue one article at a time.

    The head of `state.queue` stays in place while its job runs and is popped
    once the job finishes, whatever the outcome. The `state.processing` flag
    keeps a second run loop from starting, so at most one analysis call is in
    flight and `run_queue()` can be called after every enqueue.
    """

    def __init__(
        self,
        state: AppState,
        service: AnalysisService,
        events: ProgressEvents,
        notifier: Notifier,
    ):
        self.state = state
        self.service = service
        self.events = events
        self.notifier = notifier
        self._task: Optional[asyncio.Task] = None

    def schedule(self) -> Optional[asyncio.Task]:
        """
        Start the run loop on the running event loop unless one is active.
        Returns the task draining the queue, if any.
        """
        if self._task is not None and not self._task.done():
            return self._task
        if self.state.processing.get() or not self.state.queue.get():
            return None
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.debug("No running event loop; queue will be drained by the next run_queue() call")
            return None
        self._task = loop.create_task(self.run_queue())
        return self._task

    async def drain(self) -> None:
        """Wait until the currently scheduled run loop has emptied the queue."""
        while self._task is not None and not self._task.done():
            await self._task

    async def run_queue(self) -> None:
        if self.state.processing.get() or not self.state.queue.get():
            return
        self.state.processing.set(True)
        try:
            while self.state.queue.get():
                article_id = self.state.queue.get()[0]
                article = self.state.find_article(article_id)
                if article is None:
                    logger.info("Skipping queued article %s: it no longer exists", article_id)
                else:
                    await self._run_job(article)
                self._pop_head(article_id)
        finally:
            self.state.processing.set(False)

    async def _run_job(self, article: Article) -> None:
        settings = self.state.settings.get()
        request = AnalysisRequest(
            id=article.id,
            text=article.draft_content,
            language=article.language,
            api_key=settings.api_key,
            api_url=settings.api_url,
            model_name=settings.model_name,
            concurrency=settings.concurrency,
            old_sentences=list(article.sentences),
        )
        # Subscribe before dispatch so early progress is not lost.
        with self.events.subscribe(article.id, self._apply_progress):
            try:
                sentences = await self.service.analyze(request)
            except Exception as exc:  # noqa: BLE001
                logger.warning("Parsing failed for article %s: %s", article.id, exc)
                self.state.replace_article(
                    article.id,
                    lambda a: replace(a, status=ArticleStatus.ERROR, parsing_progress=0),
                )
                self.notifier.alert(f"Parsing failed: {exc}")
            else:
                self._apply_result(article.id, sentences)

    def _apply_progress(self, event: ProgressEvent) -> None:
        percent = max(0, min(100, int(event.percent)))
        self.state.replace_article(event.id, lambda a: replace(a, parsing_progress=percent))

    def _apply_result(self, article_id: str, sentences: List[Sentence]) -> None:
        applied = self.state.replace_article(
            article_id,
            lambda a: replace(a, sentences=list(sentences), status=ArticleStatus.DONE, parsing_progress=100),
        )
        if applied:
            logger.info("Parsed article %s: %d sentence(s)", article_id, len(sentences))
        else:
            logger.info("Discarding result for article %s: deleted while parsing", article_id)

    def _pop_head(self, article_id: str) -> None:
        queue = self.state.queue.get()
        if queue and queue[0] == article_id:
            self.state.queue.set(queue[1:])
        else:
            # The head is only ever removed here.
            logger.warning("Queue head changed while %s was running; removing first occurrence", article_id)
            remaining = list(queue)
            if article_id in remaining:
                remaining.remove(article_id)
            self.state.queue.set(remaining)
