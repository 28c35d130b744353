from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, Field

from cvrag.core.security import require_api_key
from cvrag.rag.errors import InvalidIdentityError, require_identity
from cvrag.services.profile_service import get_draft_store
from cvrag.store.draft_store import DraftStore

router = APIRouter(dependencies=[Depends(require_api_key)])


class DraftRequest(BaseModel):
    payload: dict[str, Any] = Field(default_factory=dict)


def _draft_key(user_id: str) -> str:
    try:
        return require_identity(user_id)
    except InvalidIdentityError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={"kind": exc.kind, "message": exc.detail},
        ) from exc


@router.put("/drafts/{user_id}")
def save_draft(user_id: str, payload: DraftRequest, store: DraftStore = Depends(get_draft_store)):
    key = _draft_key(user_id)
    expires_at = store.put(key, payload.payload)
    return {"user_id": key, "expires_at": expires_at.isoformat()}


@router.get("/drafts/{user_id}")
def get_draft(user_id: str, store: DraftStore = Depends(get_draft_store)):
    key = _draft_key(user_id)
    draft = store.get(key)
    if draft is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Draft not found or expired.")
    return {"user_id": key, **draft}


@router.delete("/drafts/{user_id}")
def delete_draft(user_id: str, store: DraftStore = Depends(get_draft_store)):
    key = _draft_key(user_id)
    return {"user_id": key, "deleted": store.delete(key)}
