from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime
from typing import Any, TypeVar

from pydantic import BaseModel

from cvrag.normalize.company import normalize_company_name
from cvrag.normalize.profile import normalize_profile
from cvrag.normalize.utils import dedupe_texts, is_blank, text_key
from cvrag.schemas.profile import (
    ClientReference,
    Competences,
    Contact,
    ExplicitCompetences,
    InferredCompetences,
    InferredSkill,
    Profil,
    ProfileRecord,
    Realisation,
    References,
)

from .history import HistoryRecorder, MergeResult
from .identity import (
    certification_key,
    client_key,
    experience_key,
    formation_key,
    langue_key,
    projet_key,
    realisation_key,
    skill_key,
)
from .sticky import guard_incoming

logger = logging.getLogger(__name__)

Entity = TypeVar("Entity", bound=BaseModel)

# free-text fields where the more detailed value wins instead of conflicting
NARRATIVE_FIELDS = frozenset({"contexte", "description", "resultats", "details", "impact", "reasoning"})
# compared through the company alias table
_ORGANIZATION_FIELDS = frozenset({"entreprise", "ecole", "organisme", "client"})
_DEFAULT_WEIGHT = "inclus"
_INFERRED_CATEGORIES = ("techniques", "tools", "soft_skills")
_EXPLICIT_CATEGORIES = ("techniques", "soft_skills", "methodologies")
_PROFIL_SCALARS = (
    "nom",
    "prenom",
    "titre_principal",
    "localisation",
    "elevator_pitch",
    "disponibilite",
    "teletravail",
)


def _longer(current: str | None, update: str | None) -> str | None:
    if is_blank(update):
        return current
    if is_blank(current):
        return update
    return update if len(update) > len(current) else current


def _same_value(entity: BaseModel, name: str, mine: Any, theirs: Any) -> bool:
    if name in _ORGANIZATION_FIELDS or (name == "nom" and isinstance(entity, ClientReference)):
        return normalize_company_name(mine) == normalize_company_name(theirs)
    return text_key(mine) == text_key(theirs)


def merge_realisations(current: list[Realisation], update: list[Realisation]) -> list[Realisation]:
    """Union achievements by normalized description, enriching matches."""
    merged: dict[str, Realisation] = {}
    for item in [*current, *update]:
        key = realisation_key(item) or f"#{len(merged)}"
        found = merged.get(key)
        if found is None:
            merged[key] = item.model_copy(deep=True)
            continue
        merged[key] = found.model_copy(
            update={
                "impact": _longer(found.impact, item.impact),
                "quantification": found.quantification or item.quantification,
                "sources": dedupe_texts([*found.sources, *item.sources]),
            }
        )
    return list(merged.values())


def merge_entity(current: Entity, update: Entity) -> tuple[Entity, list[str]]:
    """Field-wise merge of two records sharing one identity.

    Existing non-empty scalars are kept and gaps are filled from ``update``;
    narrative fields keep the longer text; list fields are unioned. Returns
    the merged entity and one line per conflicting scalar.
    """
    values: dict[str, Any] = {}
    conflicts: list[str] = []

    for name in type(current).model_fields:
        mine = getattr(current, name)
        theirs = getattr(update, name)

        if name == "realisations":
            values[name] = merge_realisations(mine, theirs)
        elif isinstance(mine, list):
            values[name] = dedupe_texts([*mine, *theirs])
        elif isinstance(mine, bool):
            values[name] = mine or bool(theirs)
        elif isinstance(mine, float):
            values[name] = max(mine, theirs)
        elif name == "weight":
            values[name] = theirs if mine == _DEFAULT_WEIGHT else mine
        elif name in NARRATIVE_FIELDS:
            values[name] = _longer(mine, theirs)
        elif is_blank(mine):
            values[name] = theirs
        else:
            values[name] = mine
            if not is_blank(theirs) and not _same_value(current, name, mine, theirs):
                conflicts.append(f"{name}: kept {mine!r} over {theirs!r}")

    if isinstance(current, InferredSkill) and update.confidence > current.confidence:
        values["reasoning"] = update.reasoning or values["reasoning"]
    if "actuel" in values:
        values["actuel"] = values["fin"] is None and values["actuel"]

    return type(current)(**values), conflicts


def merge_collection(
    section: str,
    current: list[Entity],
    update: list[Entity],
    key_fn: Callable[[Entity], str],
    recorder: HistoryRecorder,
    *,
    skip: Callable[[Entity], bool] | None = None,
) -> list[Entity]:
    """Fold both sides into a mapping keyed by identity, then linearize.

    Existing items keep their order, new identities follow in arrival order.
    """
    merged: dict[str, Entity] = {}
    existing_keys: list[str] = []

    for index, item in enumerate(current):
        key = key_fn(item) or f"#existing-{index}"
        found = merged.get(key)
        if found is None:
            merged[key] = item
            existing_keys.append(key)
            continue
        merged[key], _ = merge_entity(found, item)
        recorder.record(section, key, "merged", "duplicate entry folded in existing record")

    touched: set[str] = set()
    for index, item in enumerate(update):
        key = key_fn(item) or f"#incoming-{index}"
        found = merged.get(key)
        if found is None:
            if skip is not None and skip(item):
                recorder.record(section, key, "dropped", "skill was rejected by the user")
                continue
            merged[key] = item
            touched.add(key)
            recorder.record(section, key, "added")
            continue

        combined, conflicts = merge_entity(found, item)
        for conflict in conflicts:
            recorder.record(section, key, "conflict", conflict)
        if combined != found:
            merged[key] = combined
            recorder.record(section, key, "merged")
        elif key not in touched:
            recorder.record(section, key, "kept", "no new information")
        touched.add(key)

    for key in existing_keys:
        if key not in touched:
            recorder.record(section, key, "kept")

    return [item.model_copy(deep=True) for item in merged.values()]


def _start_sort_key(debut: str | None) -> str:
    return debut or ""


def _merge_profil(current: Profil, update: Profil, recorder: HistoryRecorder) -> Profil:
    values: dict[str, Any] = {}
    replaced_title: str | None = None

    for name in _PROFIL_SCALARS:
        mine = getattr(current, name)
        theirs = getattr(update, name)
        if is_blank(theirs) or mine == theirs:
            values[name] = mine
            continue
        values[name] = theirs
        if is_blank(mine):
            recorder.record("profil", name, "added", field=f"profil.{name}")
        else:
            recorder.record("profil", name, "merged", f"{mine!r} -> {theirs!r}", field=f"profil.{name}")
            if name == "titre_principal" and text_key(mine) != text_key(theirs):
                replaced_title = mine

    main_key = text_key(values["titre_principal"])
    alternates = dedupe_texts(
        [*current.titres_alternatifs, *update.titres_alternatifs, *([replaced_title] if replaced_title else [])]
    )
    values["titres_alternatifs"] = [title for title in alternates if text_key(title) != main_key]
    if len(values["titres_alternatifs"]) > len(current.titres_alternatifs):
        recorder.touch("profil.titres_alternatifs")

    contact: dict[str, Any] = {}
    for name in Contact.model_fields:
        mine = getattr(current.contact, name)
        theirs = getattr(update.contact, name)
        contact[name] = mine if is_blank(theirs) else theirs
        if not is_blank(theirs) and mine != theirs:
            recorder.record("profil.contact", name, "merged" if mine else "added", field="profil.contact")
    values["contact"] = Contact(**contact)

    # the incoming photo has already been through the sticky guard
    photo = update.photo_url or current.photo_url
    if photo != current.photo_url:
        recorder.record("profil", "photo_url", "merged" if current.photo_url else "added", field="profil.photo_url")
    values["photo_url"] = photo

    return Profil(**values)


def _merge_explicit(
    current: ExplicitCompetences,
    update: ExplicitCompetences,
    recorder: HistoryRecorder,
) -> ExplicitCompetences:
    values: dict[str, list[str]] = {}
    for category in _EXPLICIT_CATEGORIES:
        mine = getattr(current, category)
        known = {text_key(item) for item in mine}
        for item in dedupe_texts(getattr(update, category)):
            if text_key(item) not in known:
                recorder.record(f"competences.explicit.{category}", text_key(item), "added")
        values[category] = dedupe_texts([*mine, *getattr(update, category)])
    return ExplicitCompetences(**values)


def _merge_competences(
    current: Competences,
    update: Competences,
    rejected: set[str],
    recorder: HistoryRecorder,
) -> Competences:
    inferred: dict[str, list[InferredSkill]] = {}
    for category in _INFERRED_CATEGORIES:
        inferred[category] = merge_collection(
            f"competences.inferred.{category}",
            getattr(current.inferred, category),
            getattr(update.inferred, category),
            skill_key,
            recorder,
            skip=lambda skill: skill_key(skill) in rejected,
        )
    return Competences(
        explicit=_merge_explicit(current.explicit, update.explicit, recorder),
        inferred=InferredCompetences(**inferred),
    )


def _stamp_sources(record: ProfileRecord, source: str) -> ProfileRecord:
    """Add the source document to every incoming entity that tracks sources."""
    if is_blank(source) or source == "unknown":
        return record

    def stamp(items: list[Entity]) -> list[Entity]:
        return [item.model_copy(update={"sources": dedupe_texts([*item.sources, source])}) for item in items]

    return record.model_copy(
        update={
            "experiences": stamp(record.experiences),
            "formations": stamp(record.formations),
            "certifications": stamp(record.certifications),
            "projets": stamp(record.projets),
            "references": References(clients=stamp(record.references.clients)),
        }
    )


def merge_records(
    existing: ProfileRecord,
    incoming: ProfileRecord,
    recorder: HistoryRecorder,
) -> ProfileRecord:
    """Merge two canonical records; ``incoming`` must already be guarded."""
    rejected_inferred = dedupe_texts([*existing.rejected_inferred, *incoming.rejected_inferred])
    rejected = {skill_key(name) for name in rejected_inferred}
    if len(rejected_inferred) > len(existing.rejected_inferred):
        recorder.touch("rejected_inferred")

    experiences = merge_collection(
        "experiences", existing.experiences, incoming.experiences, experience_key, recorder
    )
    # most recent first; entries without a start date go last
    experiences.sort(key=lambda item: _start_sort_key(item.debut), reverse=True)

    return ProfileRecord(
        profil=_merge_profil(existing.profil, incoming.profil, recorder),
        experiences=experiences,
        competences=_merge_competences(existing.competences, incoming.competences, rejected, recorder),
        formations=merge_collection(
            "formations", existing.formations, incoming.formations, formation_key, recorder
        ),
        langues=merge_collection("langues", existing.langues, incoming.langues, langue_key, recorder),
        references=References(
            clients=merge_collection(
                "references.clients",
                existing.references.clients,
                incoming.references.clients,
                client_key,
                recorder,
            )
        ),
        certifications=merge_collection(
            "certifications", existing.certifications, incoming.certifications, certification_key, recorder
        ),
        projets=merge_collection("projets", existing.projets, incoming.projets, projet_key, recorder),
        rejected_inferred=rejected_inferred,
    )


def merge_profiles(
    existing: Any,
    incoming: Any,
    *,
    source: str = "unknown",
    now: datetime | None = None,
) -> MergeResult:
    """Merge a partial extraction into an accumulated profile record.

    Both inputs may be raw mappings of any shape or ``ProfileRecord``
    instances; neither is mutated. Malformed fragments never abort the
    merge, they are reported as ``issue`` changes in the history entry.
    """
    recorder = HistoryRecorder()
    existing_result = normalize_profile(existing)
    incoming_result = normalize_profile(incoming)
    recorder.record_issues("existing", existing_result.issues)
    recorder.record_issues("incoming", incoming_result.issues)

    base = existing_result.record
    update = guard_incoming(base, incoming_result.record, recorder)
    update = _stamp_sources(update, source)

    merged = merge_records(base, update, recorder)
    action = "create" if base == ProfileRecord() else "merge"
    history = recorder.build(source=source, action=action, now=now)

    logger.info(
        "profile_merge_completed action=%s source=%s changes=%s counts=%s",
        action,
        source,
        len(history.changes),
        history.counts,
    )
    return MergeResult(merged=merged, history=history)
