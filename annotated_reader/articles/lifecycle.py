from __future__ import annotations

import logging
import re
import uuid
from dataclasses import replace
from typing import Optional, Tuple

from .models import Article, ArticleStatus, Draft, Settings, View
from .state import AppState
from .storage import LocalArticleStorage
from .worker import ParsingQueueWorker

logger = logging.getLogger(__name__)

TITLE_BOUNDARY_RE = re.compile(r"[.。!?]\n?")
TITLE_FALLBACK_CHARS = 20
PREVIEW_CHARS = 50


class ValidationError(Exception):
    """Submission rejected before any state was touched. The message is user-facing."""


class ArticleNotFoundError(Exception):
    pass


def derive_title_and_preview(text: str) -> Tuple[str, str]:
    """
    Title is the first sentence (through its terminator); preview is the
    following text, capped at 50 characters. Without a terminator the title is
    the first 20 characters and the preview the first 50.
    """
    content = text.strip()
    match = TITLE_BOUNDARY_RE.search(content)
    if match:
        title = content[: match.end()].strip()
        preview = content[match.end():].lstrip()[:PREVIEW_CHARS]
        return title, preview

    title = content[:TITLE_FALLBACK_CHARS]
    if len(content) > TITLE_FALLBACK_CHARS:
        title += "..."
    return title, content[:PREVIEW_CHARS]


class ArticleLifecycle:
    """
    Entry points that create, edit and delete articles and admit them to the
    parsing queue.
    """

    def __init__(
        self,
        state: AppState,
        worker: ParsingQueueWorker,
        storage: Optional[LocalArticleStorage] = None,
    ):
        self.state = state
        self.worker = worker
        self.storage = storage

    def create(self, draft: Draft) -> Article:
        self._validate(draft)
        title, preview = derive_title_and_preview(draft.content)
        article = Article(
            id=str(uuid.uuid4()),
            title=title,
            preview=preview,
            language=draft.language,
            status=ArticleStatus.PARSING,
            parsing_progress=0,
            sentences=[],
            draft_content=draft.content,
        )
        self.state.articles.update(lambda items: [article] + list(items))
        self._enqueue(article.id)
        logger.info("Created article %s (%s)", article.id, article.language)
        return article

    def edit(self, article_id: str, draft: Draft) -> Article:
        existing = self.state.find_article(article_id)
        if existing is None:
            raise ArticleNotFoundError(f"Article not found: {article_id}")
        self._validate(draft)
        title, preview = derive_title_and_preview(draft.content)
        # Existing sentences stay on the article and are sent as the reuse hint.
        updated = replace(
            existing,
            title=title,
            preview=preview,
            language=draft.language,
            status=ArticleStatus.PARSING,
            parsing_progress=0,
            draft_content=draft.content,
        )
        self.state.replace_article(article_id, lambda _: updated)
        self._enqueue(article_id)
        logger.info("Resubmitted article %s", article_id)
        return updated

    def delete(self, article_id: str) -> bool:
        before = self.state.articles.get()
        remaining = [a for a in before if a.id != article_id]
        if len(remaining) == len(before):
            return False
        self.state.articles.set(remaining)
        if self.state.active_article_id.get() == article_id:
            self.state.active_article_id.set(None)
            self.state.current_view.set(View.HOME)
        # A queued id is left alone; the worker skips ids it cannot find.
        if self.storage is not None:
            self.storage.delete_artifacts(article_id)
        logger.info("Deleted article %s", article_id)
        return True

    def open_article(self, article_id: str) -> Article:
        article = self.state.find_article(article_id)
        if article is None:
            raise ArticleNotFoundError(f"Article not found: {article_id}")
        self.state.active_article_id.set(article_id)
        self.state.current_view.set(View.READER)
        return article

    def begin_edit(self, article_id: str) -> Draft:
        article = self.state.find_article(article_id)
        if article is None:
            raise ArticleNotFoundError(f"Article not found: {article_id}")
        draft = Draft(title=article.title, content=article.draft_content, language=article.language)
        self.state.draft.set(draft)
        self.state.active_article_id.set(article_id)
        self.state.current_view.set(View.EDITOR)
        return draft

    def update_draft(self, draft: Draft) -> None:
        self.state.draft.set(draft)

    def update_settings(self, settings: Settings) -> None:
        self.state.settings.set(settings)

    def _validate(self, draft: Draft) -> None:
        if not draft.content.strip():
            raise ValidationError("Please enter some text to analyze.")
        if not self.state.settings.get().api_key:
            raise ValidationError("Please configure an API key in settings first.")

    def _enqueue(self, article_id: str) -> None:
        queue = self.state.queue.get()
        waiting = queue[1:] if self.state.processing.get() else queue
        # Already waiting: the pending job will read the new content.
        if article_id not in waiting:
            self.state.queue.set(queue + [article_id])
        self.worker.schedule()
