from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, Generic, List, Optional, TypeVar

from .models import Article, Draft, Settings, Snapshot, View


T = TypeVar("T")

Subscriber = Callable[[T], None]


class StateHolder(Generic[T]):
    """
    Observable container for a single value.

    Values are replaced as a whole; subscribers are called synchronously with
    the new value after every `set`/`update`.
    """

    def __init__(self, value: T):
        self._value = value
        self._subscribers: List[Subscriber] = []

    def get(self) -> T:
        return self._value

    def set(self, value: T) -> None:
        self._value = value
        for callback in list(self._subscribers):
            callback(value)

    def update(self, fn: Callable[[T], T]) -> None:
        self.set(fn(self._value))

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        self._subscribers.append(callback)

        def unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe


@dataclass
class AppState:
    """
    Context object holding every piece of shared state.

    Components receive an `AppState` instance instead of reaching for
    module-level globals, so tests can build isolated instances.
    """

    articles: StateHolder[List[Article]] = field(default_factory=lambda: StateHolder([]))
    draft: StateHolder[Draft] = field(default_factory=lambda: StateHolder(Draft()))
    settings: StateHolder[Settings] = field(default_factory=lambda: StateHolder(Settings()))
    queue: StateHolder[List[str]] = field(default_factory=lambda: StateHolder([]))
    processing: StateHolder[bool] = field(default_factory=lambda: StateHolder(False))
    active_article_id: StateHolder[Optional[str]] = field(default_factory=lambda: StateHolder(None))
    current_view: StateHolder[View] = field(default_factory=lambda: StateHolder(View.HOME))

    def find_article(self, article_id: str) -> Optional[Article]:
        for article in self.articles.get():
            if article.id == article_id:
                return article
        return None

    def replace_article(self, article_id: str, fn: Callable[[Article], Article]) -> bool:
        """
        Replace the article with `article_id` by `fn(article)`, keeping its
        position. Returns False without touching the holder if it is absent.
        """
        current = self.articles.get()
        if not any(a.id == article_id for a in current):
            return False
        self.articles.set([fn(a) if a.id == article_id else a for a in current])
        return True

    def snapshot(self) -> Snapshot:
        return Snapshot(
            articles=list(self.articles.get()),
            draft=self.draft.get(),
            settings=self.settings.get(),
        )
