from __future__ import annotations

from typing import Literal

DocumentType = Literal["pdf", "docx", "doc", "txt", "rtf", "odt", "unknown"]

UNKNOWN_DOCUMENT_TYPE: DocumentType = "unknown"

_SUPPORTED_EXTENSIONS: set[str] = {"pdf", "docx", "doc", "txt", "rtf", "odt"}
_EXTENSION_ALIASES: dict[str, DocumentType] = {
    "md": "txt",
    "markdown": "txt",
}
_MIME_TO_TYPE: dict[str, DocumentType] = {
    "application/pdf": "pdf",
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document": "docx",
    "application/msword": "doc",
    "application/rtf": "rtf",
    "text/rtf": "rtf",
    "application/vnd.oasis.opendocument.text": "odt",
    "text/plain": "txt",
    "text/markdown": "txt",
    "text/x-markdown": "txt",
}


def document_type_from_mime(mime_type: str | None) -> DocumentType:
    if not isinstance(mime_type, str):
        return UNKNOWN_DOCUMENT_TYPE
    # drop parameters such as "; charset=utf-8"
    key = mime_type.split(";", 1)[0].strip().lower()
    return _MIME_TO_TYPE.get(key, UNKNOWN_DOCUMENT_TYPE)


def document_type_from_filename(filename: str | None) -> DocumentType:
    if not isinstance(filename, str):
        return UNKNOWN_DOCUMENT_TYPE
    name = filename.strip().lower()
    index = name.rfind(".")
    if index <= 0 or index == len(name) - 1:
        return UNKNOWN_DOCUMENT_TYPE
    extension = name[index + 1 :]
    if extension in _SUPPORTED_EXTENSIONS:
        return extension  # type: ignore[return-value]
    return _EXTENSION_ALIASES.get(extension, UNKNOWN_DOCUMENT_TYPE)


def document_type_from_stored(stored_file_type: str | None) -> DocumentType:
    """Legacy stored values may hold a bare tag or contain a MIME fragment."""
    if not isinstance(stored_file_type, str):
        return UNKNOWN_DOCUMENT_TYPE
    value = stored_file_type.strip().lower()
    if not value:
        return UNKNOWN_DOCUMENT_TYPE
    if "pdf" in value:
        return "pdf"
    if value == "docx" or "wordprocessingml" in value:
        return "docx"
    if value == "doc" or "msword" in value:
        return "doc"
    if value in {"txt", "plain", "text"} or "text/plain" in value or "markdown" in value:
        return "txt"
    if "rtf" in value:
        return "rtf"
    if value == "odt" or "opendocument.text" in value:
        return "odt"
    return UNKNOWN_DOCUMENT_TYPE


def normalize_document_type(
    *,
    filename: str | None = None,
    mime_type: str | None = None,
    stored_file_type: str | None = None,
) -> DocumentType:
    """Resolve a canonical document type: MIME, then extension, then stored type."""
    for resolved in (
        document_type_from_mime(mime_type),
        document_type_from_filename(filename),
        document_type_from_stored(stored_file_type),
    ):
        if resolved != UNKNOWN_DOCUMENT_TYPE:
            return resolved
    return UNKNOWN_DOCUMENT_TYPE
