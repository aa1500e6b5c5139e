from __future__ import annotations

from fastapi import APIRouter

from api.dependencies import get_notifier, get_state

router = APIRouter(tags=["queue"])


@router.get("/queue")
def get_queue():
    state = get_state()
    return {
        "queue": list(state.queue.get()),
        "processing": state.processing.get(),
        "activeArticleId": state.active_article_id.get(),
        "view": state.current_view.get(),
    }


@router.get("/notifications")
def pop_notifications():
    return {"alerts": get_notifier().drain()}
