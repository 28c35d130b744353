from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Union

from cvrag.core.config import settings


@dataclass(frozen=True, slots=True)
class DurablePhotoRef:
    """Storage-backed photo pointer, serialized as '<scheme>:<bucket>:<path>'."""

    bucket: str
    path: str
    scheme: str = "storage"

    def __str__(self) -> str:
        return f"{self.scheme}:{self.bucket}:{self.path}"


@dataclass(frozen=True, slots=True)
class TransientPhotoRef:
    """Any other photo value, typically an expiring signed URL."""

    url: str

    def __str__(self) -> str:
        return self.url


PhotoReference = Union[DurablePhotoRef, TransientPhotoRef]


def parse_photo_reference(value: Any, *, scheme: str | None = None) -> PhotoReference | None:
    if not isinstance(value, str):
        return None
    text = value.strip()
    if not text:
        return None

    scheme = scheme or settings.durable_photo_scheme
    prefix = f"{scheme}:"
    if text.startswith(prefix):
        bucket, sep, path = text[len(prefix) :].partition(":")
        if sep and bucket.strip() and path.strip():
            return DurablePhotoRef(bucket=bucket.strip(), path=path.strip(), scheme=scheme)
    return TransientPhotoRef(url=text)


def is_durable_photo(value: Any) -> bool:
    return isinstance(parse_photo_reference(value), DurablePhotoRef)


def resolve_photo(existing: Any, incoming: Any) -> tuple[str | None, str]:
    """Pick the photo value to keep.

    Returns (value, outcome) where outcome is 'incoming', 'existing' or
    'preserved' (an incoming transient value was refused in favour of a
    durable one). A durable incoming value always wins; a transient incoming
    value never displaces a durable existing one.
    """
    current = parse_photo_reference(existing)
    candidate = parse_photo_reference(incoming)

    if candidate is None:
        return (existing.strip() if current else None), "existing"
    if isinstance(candidate, DurablePhotoRef):
        return incoming.strip(), "incoming"
    if isinstance(current, DurablePhotoRef):
        return existing.strip(), "preserved"
    return incoming.strip(), "incoming"
