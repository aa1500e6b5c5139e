from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional


class ArticleStatus(str, Enum):
    PARSING = "parsing"
    DONE = "done"
    ERROR = "error"


class View(str, Enum):
    HOME = "home"
    EDITOR = "editor"
    READER = "reader"


@dataclass
class WordBlock:
    text: str
    pos: str
    definition: str
    chinese_root: Optional[str] = None
    grammar_note: Optional[str] = None
    audio_path: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "text": self.text,
            "pos": self.pos,
            "definition": self.definition,
            "chinese_root": self.chinese_root,
            "grammar_note": self.grammar_note,
            "audio_path": self.audio_path,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "WordBlock":
        return cls(
            text=str(data.get("text", "")),
            pos=str(data.get("pos", "unknown")),
            definition=str(data.get("definition", "")),
            chinese_root=data.get("chinese_root"),
            grammar_note=data.get("grammar_note"),
            audio_path=data.get("audio_path"),
        )


@dataclass
class Sentence:
    id: str
    original: str
    blocks: List[WordBlock] = field(default_factory=list)
    translation: str = ""
    audio_path: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "original": self.original,
            "blocks": [b.to_dict() for b in self.blocks],
            "translation": self.translation,
            "audio_path": self.audio_path,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Sentence":
        return cls(
            id=str(data["id"]),
            original=str(data.get("original", "")),
            blocks=[WordBlock.from_dict(b) for b in data.get("blocks") or []],
            translation=str(data.get("translation") or ""),
            audio_path=data.get("audio_path"),
        )


@dataclass
class Article:
    """
    A submitted text together with its analysis result.

    `sentences` is replaced as a whole when a parse succeeds; `draft_content`
    keeps the raw input so the article can be edited and resubmitted.
    """

    id: str
    title: str
    preview: str
    language: str
    status: ArticleStatus = ArticleStatus.PARSING
    parsing_progress: int = 0
    sentences: List[Sentence] = field(default_factory=list)
    draft_content: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "preview": self.preview,
            "status": self.status.value,
            "parsingProgress": self.parsing_progress,
            "sentences": [s.to_dict() for s in self.sentences],
            "draftContent": self.draft_content,
            "language": self.language,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Article":
        return cls(
            id=str(data["id"]),
            title=str(data.get("title", "")),
            preview=str(data.get("preview", "")),
            language=str(data.get("language", "")),
            status=ArticleStatus(data.get("status", ArticleStatus.PARSING.value)),
            parsing_progress=int(data.get("parsingProgress", 0)),
            sentences=[Sentence.from_dict(s) for s in data.get("sentences") or []],
            draft_content=str(data.get("draftContent") or ""),
        )


@dataclass
class Draft:
    title: str = ""
    content: str = ""
    language: str = "KR"

    def to_dict(self) -> Dict[str, Any]:
        return {"title": self.title, "content": self.content, "language": self.language}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Draft":
        return cls(
            title=str(data.get("title", "")),
            content=str(data.get("content", "")),
            language=str(data.get("language", "KR")),
        )


@dataclass
class Settings:
    """
    User preferences. `auto_speak`, `pre_cache_audio` and `tts_concurrency` are
    stored and restored for the client only; the analysis pipeline never reads
    them and no audio is generated here.
    """

    api_key: str = ""
    api_url: str = ""
    model_name: str = ""
    concurrency: int = 1
    auto_speak: bool = False
    pre_cache_audio: bool = True
    tts_concurrency: int = 1

    def to_dict(self) -> Dict[str, Any]:
        return {
            "apiKey": self.api_key,
            "apiUrl": self.api_url,
            "modelName": self.model_name,
            "concurrency": self.concurrency,
            "autoSpeak": self.auto_speak,
            "preCacheAudio": self.pre_cache_audio,
            "ttsConcurrency": self.tts_concurrency,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Settings":
        # Older data files only carry the first four keys.
        defaults = cls()
        return cls(
            api_key=str(data.get("apiKey", defaults.api_key)),
            api_url=str(data.get("apiUrl", defaults.api_url)),
            model_name=str(data.get("modelName", defaults.model_name)),
            concurrency=int(data.get("concurrency", defaults.concurrency)),
            auto_speak=bool(data.get("autoSpeak", defaults.auto_speak)),
            pre_cache_audio=bool(data.get("preCacheAudio", defaults.pre_cache_audio)),
            tts_concurrency=int(data.get("ttsConcurrency", defaults.tts_concurrency)),
        )


@dataclass
class Snapshot:
    """
    The unit written to and read from a snapshot repository.

    Each field is optional on load; `None` means "not present in the payload".
    """

    articles: Optional[List[Article]] = None
    draft: Optional[Draft] = None
    settings: Optional[Settings] = None

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {}
        if self.articles is not None:
            payload["articles"] = [a.to_dict() for a in self.articles]
        if self.draft is not None:
            payload["draft"] = self.draft.to_dict()
        if self.settings is not None:
            payload["settings"] = self.settings.to_dict()
        return payload


@dataclass
class ProgressEvent:
    id: str
    current: int
    total: int
    percent: int
