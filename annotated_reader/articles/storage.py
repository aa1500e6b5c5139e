from __future__ import annotations

import logging
import shutil
from dataclasses import dataclass
from pathlib import Path

logger = logging.getLogger(__name__)


@dataclass
class StoragePaths:
    root: Path

    def data_file_path(self) -> Path:
        return self.root / "data.json"

    def audio_dir(self, article_id: str) -> Path:
        return self.root / "audio" / str(article_id)


class LocalArticleStorage:
    """
    Manages the filesystem layout for the snapshot file and per-article media.
    """

    def __init__(self, storage_paths: StoragePaths):
        self.paths = storage_paths

    def ensure_root(self) -> None:
        self.paths.root.mkdir(parents=True, exist_ok=True)

    def has_artifacts(self, article_id: str) -> bool:
        return self.paths.audio_dir(article_id).exists()

    def delete_artifacts(self, article_id: str) -> None:
        """
        Best-effort removal of everything stored for an article. Failures are
        logged and never raised.
        """
        target = self.paths.audio_dir(article_id)
        if not target.exists():
            return
        try:
            shutil.rmtree(target)
        except OSError as exc:
            logger.warning("Failed to remove artifacts for article %s at %s: %s", article_id, target, exc)
