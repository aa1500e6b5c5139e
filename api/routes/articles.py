from __future__ import annotations

from fastapi import APIRouter, HTTPException

from annotated_reader.articles import ArticleLifecycle, ArticleNotFoundError, ValidationError

from api.dependencies import get_lifecycle, get_state
from api.schemas import DraftBody

router = APIRouter(prefix="/articles", tags=["articles"])


def _get_lifecycle() -> ArticleLifecycle:
    return get_lifecycle()


@router.get("")
def list_articles():
    return [
        {
            "id": a.id,
            "title": a.title,
            "preview": a.preview,
            "status": a.status,
            "parsingProgress": a.parsing_progress,
            "language": a.language,
        }
        for a in get_state().articles.get()
    ]


@router.get("/{article_id}")
def get_article(article_id: str):
    article = get_state().find_article(article_id)
    if not article:
        raise HTTPException(status_code=404, detail=f"Article not found: {article_id}")
    return article.to_dict()


# Mutating routes are async so state changes and queue scheduling run on the event loop.
@router.post("", status_code=201)
async def create_article(body: DraftBody):
    try:
        article = _get_lifecycle().create(body.to_draft())
    except ValidationError as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    return article.to_dict()


@router.put("/{article_id}")
async def edit_article(article_id: str, body: DraftBody):
    try:
        article = _get_lifecycle().edit(article_id, body.to_draft())
    except ArticleNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc))
    except ValidationError as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    return article.to_dict()


@router.delete("/{article_id}")
async def delete_article(article_id: str):
    if not _get_lifecycle().delete(article_id):
        raise HTTPException(status_code=404, detail=f"Article not found: {article_id}")
    return {"status": "deleted", "id": article_id}


@router.post("/{article_id}/open")
async def open_article(article_id: str):
    try:
        article = _get_lifecycle().open_article(article_id)
    except ArticleNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc))
    return article.to_dict()


@router.post("/{article_id}/edit")
async def begin_edit(article_id: str):
    try:
        draft = _get_lifecycle().begin_edit(article_id)
    except ArticleNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc))
    return draft.to_dict()
