"""
Example: run one text through the full pipeline (queue worker + LLM analysis +
debounced snapshot persistence) and print the annotated sentences.

Usage:
    python3 analysis_demo.py --text-file story.txt --language KR \
        --api-url https://api.example.com/v1/chat/completions --model my-model
    (the API key is read from --api-key or the ANALYSIS_API_KEY environment variable)
"""

import argparse
import asyncio
import logging
import os
from pathlib import Path

from annotated_reader.articles import (
    AppState,
    ArticleLifecycle,
    Draft,
    JsonFileSnapshotRepository,
    LlmAnalysisService,
    LocalArticleStorage,
    LoggingNotifier,
    ParsingQueueWorker,
    PersistenceSynchronizer,
    ProgressEvents,
    Settings,
    SqlAlchemySnapshotRepository,
    StoragePaths,
)


def setup_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        force=True,
    )


async def run(args: argparse.Namespace) -> None:
    storage = LocalArticleStorage(StoragePaths(args.storage_root))
    repo = SqlAlchemySnapshotRepository(f"sqlite+pysqlite:///{args.db}") if args.db else JsonFileSnapshotRepository(storage)

    state = AppState()
    events = ProgressEvents()
    synchronizer = PersistenceSynchronizer(state, repo)
    synchronizer.restore()
    synchronizer.attach()

    state.settings.set(
        Settings(
            api_key=args.api_key,
            api_url=args.api_url,
            model_name=args.model,
            concurrency=args.concurrency,
        )
    )
    worker = ParsingQueueWorker(state, LlmAnalysisService(events), events, LoggingNotifier())
    lifecycle = ArticleLifecycle(state, worker, storage=storage)

    text = args.text_file.read_text(encoding="utf-8")
    article = lifecycle.create(Draft(title="", content=text, language=args.language))
    print(f"Queued article {article.id}: {article.title}")

    await worker.drain()
    synchronizer.close()

    final = state.find_article(article.id)
    print(f"Article finished with status={final.status.value}, progress={final.parsing_progress}")
    for sentence in final.sentences:
        print(f"- {sentence.original}")
        print(f"  {sentence.translation}")
        for block in sentence.blocks:
            print(f"    {block.text} [{block.pos}] {block.definition}")


def main():
    parser = argparse.ArgumentParser()
    parser.add_argument("--text-file", required=True, type=Path, help="UTF-8 text to analyze")
    parser.add_argument("--language", default="KR", help="Language code (KR or RU)")
    parser.add_argument("--api-url", required=True, help="Chat-completions endpoint URL")
    parser.add_argument("--api-key", default=os.getenv("ANALYSIS_API_KEY", ""), help="API key")
    parser.add_argument("--model", required=True, help="Model name")
    parser.add_argument("--concurrency", default=1, type=int, help="Parallel sentence requests")
    parser.add_argument("--storage-root", default=Path("./data"), type=Path, help="Where data.json and media live")
    parser.add_argument("--db", default=None, type=Path, help="Store the snapshot in this SQLite DB instead")
    parser.add_argument("--verbose", action="store_true", help="Debug logging")
    args = parser.parse_args()

    if not args.text_file.exists():
        raise FileNotFoundError(f"Text file not found: {args.text_file}")

    setup_logging(args.verbose)
    asyncio.run(run(args))


if __name__ == "__main__":
    main()
