from __future__ import annotations

from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel, Field

from cvrag.core.rate_limit import rate_limit
from cvrag.core.security import require_api_key
from cvrag.normalize.document_type import normalize_document_type
from cvrag.normalize.text import sanitize_text

router = APIRouter(dependencies=[Depends(require_api_key)])


class DocumentTypeRequest(BaseModel):
    filename: str | None = None
    mime_type: str | None = Field(default=None, alias="mimeType")
    stored_file_type: str | None = Field(default=None, alias="storedFileType")

    model_config = {"populate_by_name": True}


class SanitizeRequest(BaseModel):
    text: str = Field(default="", max_length=100_000)


@router.post("/documents/type")
def document_type(payload: DocumentTypeRequest):
    return {
        "document_type": normalize_document_type(
            filename=payload.filename,
            mime_type=payload.mime_type,
            stored_file_type=payload.stored_file_type,
        )
    }


@router.post("/text/sanitize")
@rate_limit()
def sanitize(request: Request, payload: SanitizeRequest):
    _ = request
    return {"text": sanitize_text(payload.text)}
