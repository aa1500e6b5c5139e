from __future__ import annotations

from fastapi import APIRouter

from api.dependencies import get_lifecycle, get_state
from api.schemas import DraftBody, SettingsBody

router = APIRouter(tags=["editor"])


@router.get("/draft")
def get_draft():
    return get_state().draft.get().to_dict()


@router.put("/draft")
async def put_draft(body: DraftBody):
    draft = body.to_draft()
    get_lifecycle().update_draft(draft)
    return draft.to_dict()


@router.get("/settings")
def get_settings():
    return get_state().settings.get().to_dict()


@router.put("/settings")
async def put_settings(body: SettingsBody):
    settings = body.to_settings()
    get_lifecycle().update_settings(settings)
    return settings.to_dict()
