from .deduplicate import consolidate_clients, deduplicate_profile
from .errors import (
    ConcurrentUpdateError,
    InvalidIdentityError,
    ProfileMergeError,
    ProfileNotFoundError,
    VersionNotFoundError,
    require_identity,
)
from .history import HistoryRecorder, MergeResult
from .merge import merge_profiles
from .photo import DurablePhotoRef, PhotoReference, TransientPhotoRef, is_durable_photo, parse_photo_reference
from .skills import accept_inferred_skill, reject_inferred_skill
from .sticky import apply_sticky_fields, preserve_on_regeneration, regenerate_profile
from .versioning import SectionDiff, diff_sections, restore_profile

__all__ = [
    "ConcurrentUpdateError",
    "DurablePhotoRef",
    "HistoryRecorder",
    "InvalidIdentityError",
    "MergeResult",
    "PhotoReference",
    "ProfileMergeError",
    "ProfileNotFoundError",
    "SectionDiff",
    "TransientPhotoRef",
    "VersionNotFoundError",
    "accept_inferred_skill",
    "apply_sticky_fields",
    "consolidate_clients",
    "deduplicate_profile",
    "diff_sections",
    "is_durable_photo",
    "merge_profiles",
    "parse_photo_reference",
    "preserve_on_regeneration",
    "regenerate_profile",
    "reject_inferred_skill",
    "require_identity",
    "restore_profile",
]
