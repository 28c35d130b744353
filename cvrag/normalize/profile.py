from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Literal

from cvrag.core.rules import get_rule_value
from cvrag.schemas.profile import (
    CANONICAL_SECTIONS,
    Certification,
    ClientReference,
    Competences,
    Contact,
    Experience,
    ExplicitCompetences,
    Formation,
    InferredCompetences,
    InferredSkill,
    Langue,
    Profil,
    ProfileRecord,
    Projet,
    Realisation,
    References,
)

from .dates import is_present_marker, normalize_date, year_of
from .utils import as_text, dedupe_texts
from .values import coerce_boolean

IssueKind = Literal["issue", "dropped"]

_WEIGHTS = {"important", "inclus", "exclu"}
_LEGACY_COMPETENCE_KEYS = {"techniques", "soft_skills", "methodologies"}
# extra explicit categories folded into explicit.techniques
_EXPLICIT_TECH_EXTRAS = ("langages_programmation", "frameworks", "outils", "cloud_devops")
_NAME_KEYS = ("nom", "name", "label", "titre", "title", "skill")


@dataclass(slots=True, frozen=True)
class NormalizationIssue:
    section: str
    detail: str
    kind: IssueKind = "issue"


@dataclass(slots=True)
class NormalizationResult:
    record: ProfileRecord
    issues: list[NormalizationIssue] = field(default_factory=list)


class _Issues:
    def __init__(self) -> None:
        self.items: list[NormalizationIssue] = []

    def add(self, path: str, detail: str, kind: IssueKind = "issue") -> None:
        section = path.split(".", 1)[0].split("[", 1)[0]
        self.items.append(NormalizationIssue(section=section, detail=f"{path}: {detail}", kind=kind))


def _mapping(value: Any, path: str, issues: _Issues) -> dict[str, Any]:
    if value is None:
        return {}
    if isinstance(value, Mapping):
        return dict(value)
    issues.add(path, f"expected an object, got {type(value).__name__}")
    return {}


def _sequence(value: Any, path: str, issues: _Issues) -> list[Any]:
    if value is None:
        return []
    if isinstance(value, (list, tuple)):
        return list(value)
    issues.add(path, f"expected a list, got {type(value).__name__}")
    return []


def _first(data: Mapping[str, Any], *keys: str) -> Any:
    for key in keys:
        value = data.get(key)
        if value is None:
            continue
        if isinstance(value, str) and not value.strip():
            continue
        return value
    return None


def _text(data: Mapping[str, Any], *keys: str) -> str | None:
    return as_text(_first(data, *keys))


def _name_of(item: Any) -> str | None:
    if isinstance(item, Mapping):
        return _text(item, *_NAME_KEYS)
    return as_text(item)


def _text_list(value: Any, path: str, issues: _Issues) -> list[str]:
    if isinstance(value, str):
        # a lone string where a list is expected is a one-item contribution
        value = [value]
    output: list[str] = []
    for index, item in enumerate(_sequence(value, path, issues)):
        name = _name_of(item)
        if name is None:
            issues.add(f"{path}[{index}]", "unreadable item dropped")
            continue
        output.append(name)
    return dedupe_texts(output)


def _sources(data: Mapping[str, Any], path: str, issues: _Issues) -> list[str]:
    return _text_list(data.get("sources"), f"{path}.sources", issues)


# ---------------------------------------------------------------------------
# profil


def _profil(raw: Any, issues: _Issues) -> Profil:
    data = _mapping(raw, "profil", issues)
    contact = _mapping(data.get("contact"), "profil.contact", issues)
    return Profil(
        nom=_text(data, "nom", "last_name", "lastname"),
        prenom=_text(data, "prenom", "first_name", "firstname"),
        titre_principal=_text(data, "titre_principal", "titre", "title", "headline"),
        titres_alternatifs=_text_list(data.get("titres_alternatifs"), "profil.titres_alternatifs", issues),
        localisation=_text(data, "localisation", "location"),
        elevator_pitch=_text(data, "elevator_pitch", "pitch", "summary", "resume"),
        disponibilite=_text(data, "disponibilite", "availability"),
        teletravail=_text(data, "teletravail", "remote"),
        photo_url=_text(data, "photo_url", "photoUrl", "photo"),
        contact=Contact(
            email=_text(contact, "email") or _text(data, "email"),
            telephone=_text(contact, "telephone", "phone", "tel") or _text(data, "telephone", "phone"),
            linkedin=_text(contact, "linkedin") or _text(data, "linkedin"),
            github=_text(contact, "github") or _text(data, "github"),
            portfolio=_text(contact, "portfolio", "website", "site"),
            ville=_text(contact, "ville", "city"),
            pays=_text(contact, "pays", "country"),
        ),
    )


# ---------------------------------------------------------------------------
# experiences


def _realisation(item: Any, path: str, issues: _Issues) -> Realisation | None:
    if isinstance(item, Mapping):
        description = _text(item, "description", "texte", "text", "achievement")
        if description is None:
            issues.add(path, "achievement without description dropped")
            return None
        quantification = item.get("quantification")
        if isinstance(quantification, Mapping):
            quantification = _text(quantification, "display", "valeur", "value")
        return Realisation(
            description=description,
            impact=_text(item, "impact", "resultat"),
            quantification=as_text(quantification),
            sources=_sources(item, path, issues),
        )
    description = as_text(item)
    if description is None:
        issues.add(path, "unreadable achievement dropped")
        return None
    return Realisation(description=description)


def _weight(value: Any, path: str, issues: _Issues) -> str:
    default = str(get_rule_value("experiences.default_weight", "inclus"))
    if value is None:
        return default
    token = as_text(value)
    if token and token.lower() in _WEIGHTS:
        return token.lower()
    issues.add(path, f"unknown weight {value!r}, using '{default}'")
    return default


def _experience(item: Any, path: str, issues: _Issues) -> Experience | None:
    if not isinstance(item, Mapping):
        issues.add(path, f"expected an object, got {type(item).__name__}")
        return None

    poste = _text(item, "poste", "titre", "title", "role", "position")
    entreprise = _text(item, "entreprise", "company", "organisation", "organization", "employeur", "employer")
    if poste is None and entreprise is None:
        issues.add(path, "experience without title or organization dropped")
        return None

    start_raw = _first(item, "debut", "date_debut", "start_date", "start")
    end_raw = _first(item, "fin", "date_fin", "end_date", "end")
    ends_now = is_present_marker(end_raw)
    fin = None if ends_now else normalize_date(end_raw)
    current_flag = coerce_boolean(_first(item, "actuel", "current", "is_current"))
    actuel = fin is None and (ends_now or current_flag is True)
    debut = normalize_date(start_raw)
    if start_raw is not None and debut is None:
        issues.add(f"{path}.debut", f"unreadable start date {start_raw!r} dropped")
    if end_raw is not None and not ends_now and fin is None:
        issues.add(f"{path}.fin", f"unreadable end date {end_raw!r} dropped")

    realisations: list[Realisation] = []
    for index, raw_real in enumerate(_sequence(item.get("realisations"), f"{path}.realisations", issues)):
        realisation = _realisation(raw_real, f"{path}.realisations[{index}]", issues)
        if realisation is not None:
            realisations.append(realisation)

    return Experience(
        poste=poste,
        entreprise=entreprise,
        debut=debut,
        fin=fin,
        actuel=actuel,
        lieu=_text(item, "lieu", "location", "ville"),
        secteur=_text(item, "secteur", "sector", "industry"),
        type_contrat=_text(item, "type_contrat", "contract_type"),
        contexte=_text(item, "contexte", "context", "description"),
        realisations=realisations,
        technologies=_text_list(item.get("technologies"), f"{path}.technologies", issues),
        outils=_text_list(item.get("outils"), f"{path}.outils", issues),
        methodologies=_text_list(item.get("methodologies"), f"{path}.methodologies", issues),
        clients_references=_text_list(item.get("clients_references"), f"{path}.clients_references", issues),
        sources=_sources(item, path, issues),
        weight=_weight(_first(item, "weight", "poids"), f"{path}.weight", issues),
    )


# ---------------------------------------------------------------------------
# competences


def _confidence(value: Any, path: str, issues: _Issues) -> float:
    if value is None:
        return 0.0
    if isinstance(value, bool):
        issues.add(path, "boolean confidence ignored")
        return 0.0
    try:
        number = float(value)
    except (TypeError, ValueError):
        issues.add(path, f"non-numeric confidence {value!r} ignored")
        return 0.0
    return min(100.0, max(0.0, number))


def _inferred_list(value: Any, path: str, issues: _Issues) -> list[InferredSkill]:
    output: list[InferredSkill] = []
    for index, item in enumerate(_sequence(value, path, issues)):
        item_path = f"{path}[{index}]"
        name = _name_of(item)
        if name is None:
            issues.add(item_path, "inferred skill without name dropped")
            continue
        if not isinstance(item, Mapping):
            output.append(InferredSkill(name=name))
            continue
        output.append(
            InferredSkill(
                name=name,
                confidence=_confidence(item.get("confidence"), f"{item_path}.confidence", issues),
                reasoning=_text(item, "reasoning", "raison"),
                sources=_sources(item, item_path, issues),
                added_to_profile=coerce_boolean(_first(item, "added_to_profile", "addedToProfile")) is True,
            )
        )
    return output


def _explicit(data: Mapping[str, Any], path: str, issues: _Issues) -> ExplicitCompetences:
    techniques = _text_list(data.get("techniques"), f"{path}.techniques", issues)
    for extra in _EXPLICIT_TECH_EXTRAS:
        techniques.extend(_text_list(data.get(extra), f"{path}.{extra}", issues))
    return ExplicitCompetences(
        techniques=dedupe_texts(techniques),
        soft_skills=_text_list(data.get("soft_skills"), f"{path}.soft_skills", issues),
        methodologies=_text_list(data.get("methodologies"), f"{path}.methodologies", issues),
    )


def _competences(raw: Any, issues: _Issues) -> Competences:
    data = _mapping(raw, "competences", issues)
    if not data:
        return Competences()

    if "explicit" in data or "inferred" in data:
        explicit = _mapping(data.get("explicit"), "competences.explicit", issues)
        inferred = _mapping(data.get("inferred"), "competences.inferred", issues)
        return Competences(
            explicit=_explicit(explicit, "competences.explicit", issues),
            inferred=InferredCompetences(
                techniques=_inferred_list(inferred.get("techniques"), "competences.inferred.techniques", issues),
                tools=_inferred_list(inferred.get("tools"), "competences.inferred.tools", issues),
                soft_skills=_inferred_list(inferred.get("soft_skills"), "competences.inferred.soft_skills", issues),
            ),
        )

    # legacy flat shape: no confidence or provenance, so explicit only
    if not (_LEGACY_COMPETENCE_KEYS | set(_EXPLICIT_TECH_EXTRAS)) & set(data):
        issues.add("competences", "unrecognized competences shape ignored")
        return Competences()
    return Competences(explicit=_explicit(data, "competences", issues))


def normalize_competences(raw: Any) -> Competences:
    """Return the {explicit, inferred} shape for new, legacy or missing input."""
    return _competences(raw, _Issues())


# ---------------------------------------------------------------------------
# secondary collections


def _formation(item: Any, path: str, issues: _Issues) -> Formation | None:
    if isinstance(item, str):
        diplome = as_text(item)
        return Formation(diplome=diplome) if diplome else None
    if not isinstance(item, Mapping):
        issues.add(path, f"expected an object, got {type(item).__name__}")
        return None
    diplome = _text(item, "diplome", "titre", "degree", "diploma", "title")
    ecole = _text(item, "ecole", "organisme", "institution", "school", "etablissement")
    if diplome is None and ecole is None:
        issues.add(path, "formation without diploma or institution dropped")
        return None
    annee = _first(item, "annee", "year", "date_fin", "date", "annee_obtention")
    return Formation(
        diplome=diplome,
        ecole=ecole,
        annee=year_of(annee) or as_text(annee),
        lieu=_text(item, "lieu", "location"),
        mention=_text(item, "mention", "honors"),
        specialite=_text(item, "specialite", "field", "major"),
        details=_text(item, "details"),
        sources=_sources(item, path, issues),
    )


def _langues(raw: Any, issues: _Issues) -> list[Langue]:
    if isinstance(raw, Mapping):
        # legacy {"anglais": "courant"} mapping
        return [
            Langue(langue=name, niveau=as_text(level))
            for name, level in ((as_text(key), value) for key, value in raw.items())
            if name
        ]
    output: list[Langue] = []
    for index, item in enumerate(_sequence(raw, "langues", issues)):
        path = f"langues[{index}]"
        if isinstance(item, Mapping):
            name = _text(item, "langue", "language", "nom", "name")
            if name is None:
                issues.add(path, "language without name dropped")
                continue
            output.append(
                Langue(
                    langue=name,
                    niveau=_text(item, "niveau", "level"),
                    niveau_cecrl=_text(item, "niveau_cecrl", "cefr"),
                    certifications=_text_list(item.get("certifications"), f"{path}.certifications", issues),
                )
            )
            continue
        name = as_text(item)
        if name is None:
            issues.add(path, "unreadable language dropped")
            continue
        output.append(Langue(langue=name))
    return output


def _years(value: Any, path: str, issues: _Issues) -> list[str]:
    if isinstance(value, (int, str)) and not isinstance(value, bool):
        value = [value]
    return dedupe_texts(
        text for text in (as_text(item) for item in _sequence(value, path, issues)) if text
    )


def _client(item: Any, path: str, issues: _Issues) -> ClientReference | None:
    if isinstance(item, Mapping):
        name = _text(item, "nom", "name", "client")
        if name is None:
            issues.add(path, "client without name dropped")
            return None
        return ClientReference(
            nom=name,
            secteur=_text(item, "secteur", "sector"),
            annees=_years(item.get("annees"), f"{path}.annees", issues),
            contexte=_text(item, "contexte", "context"),
            sources=_sources(item, path, issues),
        )
    name = as_text(item)
    if name is None:
        issues.add(path, "unreadable client dropped")
        return None
    return ClientReference(nom=name)


def _certification(item: Any, path: str, issues: _Issues) -> Certification | None:
    if isinstance(item, Mapping):
        name = _text(item, "nom", "name", "titre", "title")
        if name is None:
            issues.add(path, "certification without name dropped")
            return None
        return Certification(
            nom=name,
            organisme=_text(item, "organisme", "issuer", "organization"),
            date_obtention=normalize_date(_first(item, "date_obtention", "date", "annee", "year")),
            numero=_text(item, "numero", "id", "credential_id"),
            url_verification=_text(item, "url_verification", "url"),
            sources=_sources(item, path, issues),
        )
    name = as_text(item)
    if name is None:
        issues.add(path, "unreadable certification dropped")
        return None
    return Certification(nom=name)


def _projet(item: Any, path: str, issues: _Issues) -> Projet | None:
    if isinstance(item, Mapping):
        name = _text(item, "nom", "name", "titre", "title")
        if name is None:
            issues.add(path, "project without name dropped")
            return None
        return Projet(
            nom=name,
            description=_text(item, "description"),
            client=_text(item, "client"),
            annee=year_of(_first(item, "annee", "year", "date")),
            technologies=_text_list(item.get("technologies"), f"{path}.technologies", issues),
            resultats=_text(item, "resultats", "results", "impact"),
            sources=_sources(item, path, issues),
        )
    name = as_text(item)
    if name is None:
        issues.add(path, "unreadable project dropped")
        return None
    return Projet(nom=name)


def _collect(raw: Any, path: str, builder, issues: _Issues) -> list:
    output = []
    for index, item in enumerate(_sequence(raw, path, issues)):
        built = builder(item, f"{path}[{index}]", issues)
        if built is not None:
            output.append(built)
    return output


# ---------------------------------------------------------------------------
# entry point


def normalize_profile(raw: Any) -> NormalizationResult:
    """Canonicalize a full or partial profile fragment.

    Never raises on malformed input: wrong-shape fields become empty
    contributions and are reported as issues. Top-level keys outside the
    canonical schema are dropped and reported with kind 'dropped'.
    """
    if isinstance(raw, ProfileRecord):
        # records built elsewhere may hold non-canonical values, so both
        # merge sides go through the same rules
        raw = raw.model_dump()

    issues = _Issues()
    if raw is None:
        return NormalizationResult(record=ProfileRecord())
    if not isinstance(raw, Mapping):
        issues.add("profile", f"expected an object, got {type(raw).__name__}")
        return NormalizationResult(record=ProfileRecord(), issues=issues.items)

    for key in sorted(str(key) for key in raw if key not in CANONICAL_SECTIONS):
        if key == "projets_marquants":
            continue
        issues.add(key, "not part of the profile schema", kind="dropped")

    references = _mapping(raw.get("references"), "references", issues)
    projets = _collect(raw.get("projets"), "projets", _projet, issues)
    projets.extend(_collect(references.get("projets_marquants"), "references.projets_marquants", _projet, issues))
    projets.extend(_collect(raw.get("projets_marquants"), "projets_marquants", _projet, issues))

    record = ProfileRecord(
        profil=_profil(raw.get("profil"), issues),
        experiences=_collect(raw.get("experiences"), "experiences", _experience, issues),
        competences=_competences(raw.get("competences"), issues),
        formations=_collect(raw.get("formations"), "formations", _formation, issues),
        langues=_langues(raw.get("langues"), issues),
        references=References(clients=_collect(references.get("clients"), "references.clients", _client, issues)),
        certifications=_collect(raw.get("certifications"), "certifications", _certification, issues),
        projets=projets,
        rejected_inferred=_text_list(raw.get("rejected_inferred"), "rejected_inferred", issues),
    )
    return NormalizationResult(record=record, issues=issues.items)
