from .history import MergeAction, MergeChange, MergeDecision, MergeHistoryEntry
from .profile import (
    CANONICAL_SECTIONS,
    Certification,
    ClientReference,
    Competences,
    Contact,
    Experience,
    ExperienceWeight,
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

__all__ = [
    "CANONICAL_SECTIONS",
    "Certification",
    "ClientReference",
    "Competences",
    "Contact",
    "Experience",
    "ExperienceWeight",
    "ExplicitCompetences",
    "Formation",
    "InferredCompetences",
    "InferredSkill",
    "Langue",
    "MergeAction",
    "MergeChange",
    "MergeDecision",
    "MergeHistoryEntry",
    "Profil",
    "ProfileRecord",
    "Projet",
    "Realisation",
    "References",
]
