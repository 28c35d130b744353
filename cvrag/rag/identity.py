from __future__ import annotations

from cvrag.normalize.company import normalize_company_name
from cvrag.normalize.utils import normalize_key, text_key
from cvrag.schemas.profile import (
    Certification,
    ClientReference,
    Experience,
    Formation,
    InferredSkill,
    Langue,
    Projet,
    Realisation,
)

# Identity keys are computed identically for both sides of a merge, so two
# entities differing only by case, accents or spacing share one key.

_SEP = "|"


def _name_key(value: str | None) -> str:
    # a name made only of punctuation still needs a stable key
    return text_key(value) or normalize_key(value)


def _join(*parts: str | None) -> str:
    return _SEP.join(part or "" for part in parts)


def experience_key(experience: Experience) -> str:
    return _join(
        text_key(experience.poste),
        normalize_company_name(experience.entreprise),
        experience.debut,
    )


def formation_key(formation: Formation) -> str:
    return _join(
        normalize_company_name(formation.ecole),
        formation.annee,
        text_key(formation.diplome),
    )


def client_key(client: ClientReference) -> str:
    return normalize_company_name(client.nom)


def certification_key(certification: Certification) -> str:
    return _name_key(certification.nom)


def projet_key(projet: Projet) -> str:
    return _name_key(projet.nom)


def langue_key(langue: Langue) -> str:
    return _name_key(langue.langue)


def skill_key(skill: InferredSkill | str) -> str:
    if isinstance(skill, InferredSkill):
        return _name_key(skill.name)
    return _name_key(skill)


def realisation_key(realisation: Realisation) -> str:
    return _name_key(realisation.description)
