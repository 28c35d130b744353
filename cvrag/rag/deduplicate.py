from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime
from difflib import SequenceMatcher
from typing import Any

from cvrag.core.rules import get_rule_value
from cvrag.normalize.company import normalize_company_name
from cvrag.normalize.dates import normalize_date
from cvrag.normalize.profile import normalize_profile
from cvrag.normalize.utils import text_key
from cvrag.schemas.profile import (
    ClientReference,
    Experience,
    ExplicitCompetences,
    Formation,
    ProfileRecord,
    Realisation,
    References,
)

from .history import HistoryRecorder, MergeResult
from .identity import client_key
from .merge import Entity, merge_entity, merge_realisations

logger = logging.getLogger(__name__)


def similarity(first: Any, second: Any) -> float:
    """SequenceMatcher ratio on normalized text, 0.0 when either side is empty."""
    left = text_key(first)
    right = text_key(second)
    if not left or not right:
        return 0.0
    if left == right:
        return 1.0
    return SequenceMatcher(None, left, right).ratio()


def _threshold(name: str, default: float) -> float:
    return float(get_rule_value(f"dedup.{name}", default))


def _months(value: Any) -> int | None:
    normalized = normalize_date(value)
    if normalized is None:
        return None
    year, _, month = normalized.partition("-")
    return int(year) * 12 + (int(month) if month else 1)


def _same_company(first: Any, second: Any) -> bool:
    left = normalize_company_name(first)
    right = normalize_company_name(second)
    if not left or not right:
        return False
    return left == right or similarity(left, right) >= _threshold("company_similarity", 0.85)


def _is_current(experience: Experience) -> bool:
    return experience.actuel or experience.fin is None


def experiences_match(first: Experience, second: Experience) -> bool:
    if not _same_company(first.entreprise, second.entreprise):
        return False
    if similarity(first.poste, second.poste) < _threshold("title_similarity", 0.8):
        return False
    if first.debut and second.debut:
        start, other = _months(first.debut), _months(second.debut)
        if start is None or other is None:
            return False
        tolerance = int(get_rule_value("dedup.start_date_tolerance_months", 3))
        return abs(start - other) <= tolerance
    if not first.debut and not second.debut:
        return True
    return _is_current(first) and _is_current(second)


def formations_match(first: Formation, second: Formation) -> bool:
    if first.annee and second.annee and first.annee != second.annee:
        return False
    if first.ecole and second.ecole and not _same_company(first.ecole, second.ecole):
        return False
    return similarity(first.diplome, second.diplome) >= _threshold("title_similarity", 0.8)


def _names_match(first: str | None, second: str | None) -> bool:
    return similarity(first, second) >= _threshold("name_similarity", 0.9)


def _collapse(
    section: str,
    items: list[Entity],
    matches: Callable[[Entity, Entity], bool],
    label: Callable[[Entity], str],
    recorder: HistoryRecorder,
) -> list[Entity]:
    kept: list[Entity] = []
    for item in items:
        for index, candidate in enumerate(kept):
            if matches(candidate, item):
                kept[index], _ = merge_entity(candidate, item)
                recorder.record(section, label(candidate), "merged", f"near-duplicate {label(item)!r} folded in")
                break
        else:
            kept.append(item)
    return kept


def _collapse_texts(section: str, items: list[str], recorder: HistoryRecorder) -> list[str]:
    kept: list[str] = []
    for item in items:
        match = next((candidate for candidate in kept if _names_match(candidate, item)), None)
        if match is None:
            kept.append(item)
        else:
            recorder.record(section, text_key(match), "merged", f"near-duplicate {item!r} folded in")
    return kept


def _collapse_realisations(experience: Experience, recorder: HistoryRecorder) -> Experience:
    threshold = _threshold("realisation_similarity", 0.85)
    kept: list[Realisation] = []
    for item in experience.realisations:
        for index, candidate in enumerate(kept):
            if similarity(candidate.description, item.description) >= threshold:
                # the longer description survives, details are pooled
                primary, secondary = (
                    (item, candidate) if len(item.description) > len(candidate.description) else (candidate, item)
                )
                secondary = secondary.model_copy(update={"description": primary.description})
                kept[index] = merge_realisations([primary], [secondary])[0]
                recorder.record("experiences.realisations", text_key(primary.description), "merged")
                break
        else:
            kept.append(item)
    return experience.model_copy(update={"realisations": kept})


def consolidate_clients(record: ProfileRecord, recorder: HistoryRecorder | None = None) -> ProfileRecord:
    """Promote client names cited in experiences into references.clients."""
    clients = list(record.references.clients)
    known = {client_key(client) for client in clients}
    for experience in record.experiences:
        for name in experience.clients_references:
            client = ClientReference(nom=name, sources=list(experience.sources))
            key = client_key(client)
            if not key or key in known:
                continue
            known.add(key)
            clients.append(client)
            if recorder is not None:
                recorder.record("references.clients", key, "added", "cited in an experience")
    return record.model_copy(update={"references": References(clients=clients)})


def deduplicate_profile(
    record: Any,
    *,
    source: str = "deduplicate",
    now: datetime | None = None,
) -> MergeResult:
    """Collapse near-duplicate entities inside one record.

    Identity-keyed merging only catches exact key matches; this pass uses
    fuzzy similarity with the thresholds in merge_rules.yaml. Matched
    entities are merged with the same field rules as merge_profiles, so
    nothing is lost.
    """
    recorder = HistoryRecorder()
    normalized = normalize_profile(record)
    recorder.record_issues("record", normalized.issues)
    current = normalized.record

    experiences = _collapse(
        "experiences",
        current.experiences,
        experiences_match,
        lambda item: f"{item.poste or ''} @ {item.entreprise or ''}",
        recorder,
    )
    experiences = [_collapse_realisations(item, recorder) for item in experiences]

    inferred = {
        category: _collapse(
            f"competences.inferred.{category}",
            getattr(current.competences.inferred, category),
            lambda a, b: _names_match(a.name, b.name),
            lambda item: item.name,
            recorder,
        )
        for category in ("techniques", "tools", "soft_skills")
    }
    explicit = ExplicitCompetences(
        **{
            category: _collapse_texts(
                f"competences.explicit.{category}",
                getattr(current.competences.explicit, category),
                recorder,
            )
            for category in ("techniques", "soft_skills", "methodologies")
        }
    )

    deduplicated = current.model_copy(
        update={
            "experiences": experiences,
            "competences": current.competences.model_copy(
                update={
                    "explicit": explicit,
                    "inferred": current.competences.inferred.model_copy(update=inferred),
                }
            ),
            "formations": _collapse(
                "formations",
                current.formations,
                formations_match,
                lambda item: item.diplome or item.ecole or "",
                recorder,
            ),
            "langues": _collapse(
                "langues",
                current.langues,
                lambda a, b: _names_match(a.langue, b.langue),
                lambda item: item.langue,
                recorder,
            ),
            "references": References(
                clients=_collapse(
                    "references.clients",
                    current.references.clients,
                    lambda a, b: _same_company(a.nom, b.nom),
                    lambda item: item.nom,
                    recorder,
                )
            ),
            "certifications": _collapse(
                "certifications",
                current.certifications,
                lambda a, b: _names_match(a.nom, b.nom),
                lambda item: item.nom,
                recorder,
            ),
            "projets": _collapse(
                "projets",
                current.projets,
                lambda a, b: _names_match(a.nom, b.nom),
                lambda item: item.nom,
                recorder,
            ),
        }
    )
    deduplicated = consolidate_clients(deduplicated, recorder)
    history = recorder.build(source=source, action="merge", now=now)

    logger.info("profile_deduplicate_completed changes=%s counts=%s", len(history.changes), history.counts)
    return MergeResult(merged=deduplicated, history=history)
