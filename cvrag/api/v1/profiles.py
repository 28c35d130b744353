from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Path, Query, Request, status
from pydantic import BaseModel, Field

from cvrag.core.rate_limit import rate_limit
from cvrag.core.security import require_api_key
from cvrag.rag.errors import (
    ConcurrentUpdateError,
    InvalidIdentityError,
    ProfileMergeError,
    ProfileNotFoundError,
    VersionNotFoundError,
)
from cvrag.services.profile_service import ProfileService, ProfileUpdate, get_profile_service


router = APIRouter(dependencies=[Depends(require_api_key)])


class ProfileUpdateRequest(BaseModel):
    # any shape is accepted; the normalizer reports what it cannot use
    profile: Any = None
    source: str = Field(default="unknown", max_length=200)


class SkillActionRequest(BaseModel):
    name: str = Field(min_length=1, max_length=200)


def _http_error(exc: Exception) -> HTTPException:
    if isinstance(exc, InvalidIdentityError):
        return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail={"kind": exc.kind, "message": exc.detail})
    if isinstance(exc, (ProfileNotFoundError, VersionNotFoundError)):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail={"kind": exc.kind, "message": str(exc)})
    if isinstance(exc, ConcurrentUpdateError):
        return HTTPException(status_code=status.HTTP_409_CONFLICT, detail={"kind": exc.kind, "message": str(exc)})
    if isinstance(exc, ProfileMergeError):
        return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail={"kind": exc.kind, "message": str(exc)})
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail={"kind": "invalid request", "message": str(exc)})


def _update_payload(update: ProfileUpdate) -> dict[str, Any]:
    return {
        "user_id": update.user_id,
        "version": update.version,
        "profile": update.record.model_dump(),
        "history": update.history.model_dump() if update.history else None,
    }


@router.post("/profiles/{user_id}/merge")
@rate_limit()
def merge_profile(
    request: Request,
    user_id: str,
    payload: ProfileUpdateRequest,
    service: ProfileService = Depends(get_profile_service),
):
    _ = request
    try:
        update = service.apply_update(user_id, payload.profile, source=payload.source)
    except ProfileMergeError as exc:
        raise _http_error(exc) from exc
    return _update_payload(update)


@router.post("/profiles/{user_id}/regenerate")
@rate_limit()
def regenerate_profile(
    request: Request,
    user_id: str,
    payload: ProfileUpdateRequest,
    service: ProfileService = Depends(get_profile_service),
):
    _ = request
    source = payload.source if payload.source != "unknown" else "regeneration"
    try:
        update = service.regenerate(user_id, payload.profile, source=source)
    except ProfileMergeError as exc:
        raise _http_error(exc) from exc
    return _update_payload(update)


@router.get("/profiles/{user_id}")
def get_profile(user_id: str, service: ProfileService = Depends(get_profile_service)):
    try:
        stored = service.get_profile(user_id)
    except ProfileMergeError as exc:
        raise _http_error(exc) from exc
    return {
        "user_id": stored.user_id,
        "version": stored.version,
        "updated_at": stored.updated_at,
        "profile": stored.record.model_dump(),
    }


@router.get("/profiles/{user_id}/history")
def get_history(
    user_id: str,
    limit: int | None = Query(default=None, ge=1, le=500),
    service: ProfileService = Depends(get_profile_service),
):
    try:
        entries = service.get_history(user_id, limit=limit)
    except ProfileMergeError as exc:
        raise _http_error(exc) from exc
    return {"user_id": user_id.strip(), "entries": [entry.model_dump() for entry in entries]}


@router.post("/profiles/{user_id}/rejected-skills")
@rate_limit()
def reject_skill(
    request: Request,
    user_id: str,
    payload: SkillActionRequest,
    service: ProfileService = Depends(get_profile_service),
):
    _ = request
    try:
        update = service.reject_skill(user_id, payload.name)
    except (ProfileMergeError, ValueError) as exc:
        raise _http_error(exc) from exc
    return _update_payload(update)


@router.post("/profiles/{user_id}/accepted-skills")
@rate_limit()
def accept_skill(
    request: Request,
    user_id: str,
    payload: SkillActionRequest,
    service: ProfileService = Depends(get_profile_service),
):
    _ = request
    try:
        update = service.accept_skill(user_id, payload.name)
    except (ProfileMergeError, ValueError) as exc:
        raise _http_error(exc) from exc
    return _update_payload(update)


@router.get("/profiles/{user_id}/versions")
def list_versions(
    user_id: str,
    limit: int | None = Query(default=None, ge=1, le=500),
    service: ProfileService = Depends(get_profile_service),
):
    try:
        versions = service.list_versions(user_id, limit=limit)
    except ProfileMergeError as exc:
        raise _http_error(exc) from exc
    return {
        "user_id": user_id.strip(),
        "versions": [
            {"version": item.version, "reason": item.reason, "created_at": item.created_at} for item in versions
        ],
    }


@router.post("/profiles/{user_id}/versions/{version}/restore")
@rate_limit()
def restore_version(
    request: Request,
    user_id: str,
    version: int = Path(ge=1),
    service: ProfileService = Depends(get_profile_service),
):
    _ = request
    try:
        update = service.restore(user_id, version)
    except ProfileMergeError as exc:
        raise _http_error(exc) from exc
    return {**_update_payload(update), "restored_version": version}
