from __future__ import annotations

from datetime import datetime
from typing import Any

from cvrag.normalize.profile import normalize_profile
from cvrag.normalize.utils import dedupe_texts
from cvrag.schemas.profile import InferredCompetences, ProfileRecord, References

from .history import HistoryRecorder, MergeResult
from .identity import skill_key
from .photo import resolve_photo

_INFERRED_CATEGORIES = ("techniques", "tools", "soft_skills")
# sections the regenerated record replaces wholesale
_REPLACED_SECTIONS = ("experiences", "formations", "langues", "certifications", "projets")


def _as_record(value: Any) -> ProfileRecord:
    return normalize_profile(value).record


def guard_incoming(
    existing: ProfileRecord,
    incoming: ProfileRecord,
    recorder: HistoryRecorder | None = None,
) -> ProfileRecord:
    """Correct sticky fields on an already-normalized incoming record."""
    photo, outcome = resolve_photo(existing.profil.photo_url, incoming.profil.photo_url)
    if outcome != "preserved":
        return incoming

    if recorder is not None:
        recorder.record(
            "profil",
            "photo_url",
            "preserved",
            "transient photo refused in favour of durable reference",
        )
    profil = incoming.profil.model_copy(update={"photo_url": photo})
    return incoming.model_copy(update={"profil": profil})


def apply_sticky_fields(existing: Any, incoming: Any) -> ProfileRecord:
    """Return a corrected copy of ``incoming`` ready for merging.

    The result is projected onto the canonical schema, so ad hoc top-level
    keys such as scores or job lists are gone. A transient incoming photo
    never displaces a durable existing one; a durable incoming photo always
    wins.
    """
    return guard_incoming(_as_record(existing), _as_record(incoming))


def drop_rejected_skills(
    inferred: InferredCompetences,
    rejected: set[str],
    recorder: HistoryRecorder | None,
) -> InferredCompetences:
    values = {}
    for category in _INFERRED_CATEGORIES:
        kept = []
        for skill in getattr(inferred, category):
            if skill_key(skill) in rejected:
                if recorder is not None:
                    recorder.record(
                        f"competences.inferred.{category}",
                        skill_key(skill),
                        "dropped",
                        "skill was rejected by the user",
                    )
                continue
            kept.append(skill)
        values[category] = kept
    return InferredCompetences(**values)


def preserve_on_regeneration(
    previous: Any,
    generated: Any,
    recorder: HistoryRecorder | None = None,
) -> ProfileRecord:
    """Replace-or-keep pass for a freshly regenerated record.

    Client references and the photo are carried forward when the new record
    has nothing for them and replaced otherwise. ``rejected_inferred`` is
    always carried forward since the generator has no view of past
    rejections.
    """
    prev = previous if isinstance(previous, ProfileRecord) else _as_record(previous)
    record = generated.model_copy(deep=True) if isinstance(generated, ProfileRecord) else _as_record(generated)

    clients = record.references.clients
    if not clients and prev.references.clients:
        clients = [client.model_copy(deep=True) for client in prev.references.clients]
        if recorder is not None:
            recorder.record(
                "references",
                "clients",
                "preserved",
                f"{len(clients)} client reference(s) carried forward",
            )
    elif clients and recorder is not None:
        recorder.record("references", "clients", "merged", f"replaced by {len(clients)} regenerated client(s)")

    photo, outcome = resolve_photo(prev.profil.photo_url, record.profil.photo_url)
    if recorder is not None and record.profil.photo_url != photo:
        recorder.record("profil", "photo_url", "preserved", f"previous photo kept ({outcome})")

    rejected = dedupe_texts([*prev.rejected_inferred, *record.rejected_inferred])
    if recorder is not None and len(rejected) > len(record.rejected_inferred):
        recorder.record(
            "rejected_inferred",
            "rejected_inferred",
            "preserved",
            f"{len(rejected) - len(record.rejected_inferred)} rejection(s) carried forward",
        )

    rejected_keys = {skill_key(name) for name in rejected}
    competences = record.competences.model_copy(
        update={"inferred": drop_rejected_skills(record.competences.inferred, rejected_keys, recorder)}
    )

    return record.model_copy(
        update={
            "profil": record.profil.model_copy(update={"photo_url": photo}),
            "references": References(clients=clients),
            "competences": competences,
            "rejected_inferred": rejected,
        }
    )


def regenerate_profile(
    previous: Any,
    generated: Any,
    *,
    source: str = "regeneration",
    now: datetime | None = None,
) -> MergeResult:
    recorder = HistoryRecorder()
    previous_result = normalize_profile(previous)
    generated_result = normalize_profile(generated)
    recorder.record_issues("previous", previous_result.issues)
    recorder.record_issues("generated", generated_result.issues)

    record = preserve_on_regeneration(previous_result.record, generated_result.record, recorder)
    for section in _REPLACED_SECTIONS:
        items = getattr(generated_result.record, section)
        if items:
            recorder.record(section, section, "merged", f"replaced by {len(items)} regenerated item(s)")

    return MergeResult(merged=record, history=recorder.build(source=source, action="regenerate", now=now))
