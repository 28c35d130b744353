from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field, field_validator

ExperienceWeight = Literal["important", "inclus", "exclu"]

CANONICAL_SECTIONS: tuple[str, ...] = (
    "profil",
    "experiences",
    "competences",
    "formations",
    "langues",
    "references",
    "certifications",
    "projets",
    "rejected_inferred",
)


class Contact(BaseModel):
    email: str | None = None
    telephone: str | None = None
    linkedin: str | None = None
    github: str | None = None
    portfolio: str | None = None
    ville: str | None = None
    pays: str | None = None


class Profil(BaseModel):
    nom: str | None = None
    prenom: str | None = None
    titre_principal: str | None = None
    titres_alternatifs: list[str] = Field(default_factory=list)
    localisation: str | None = None
    elevator_pitch: str | None = None
    disponibilite: str | None = None
    teletravail: str | None = None
    photo_url: str | None = None
    contact: Contact = Field(default_factory=Contact)


class Realisation(BaseModel):
    description: str
    impact: str | None = None
    quantification: str | None = None
    sources: list[str] = Field(default_factory=list)


class Experience(BaseModel):
    poste: str | None = None
    entreprise: str | None = None
    debut: str | None = None
    fin: str | None = None
    actuel: bool = False
    lieu: str | None = None
    secteur: str | None = None
    type_contrat: str | None = None
    contexte: str | None = None
    realisations: list[Realisation] = Field(default_factory=list)
    technologies: list[str] = Field(default_factory=list)
    outils: list[str] = Field(default_factory=list)
    methodologies: list[str] = Field(default_factory=list)
    clients_references: list[str] = Field(default_factory=list)
    sources: list[str] = Field(default_factory=list)
    weight: ExperienceWeight = "inclus"


class InferredSkill(BaseModel):
    name: str
    confidence: float = 0.0
    reasoning: str | None = None
    sources: list[str] = Field(default_factory=list)
    added_to_profile: bool = False

    @field_validator("confidence")
    @classmethod
    def _validate_confidence(cls, value: float) -> float:
        if value < 0 or value > 100:
            raise ValueError("confidence must be between 0 and 100")
        return value


class ExplicitCompetences(BaseModel):
    techniques: list[str] = Field(default_factory=list)
    soft_skills: list[str] = Field(default_factory=list)
    methodologies: list[str] = Field(default_factory=list)


class InferredCompetences(BaseModel):
    techniques: list[InferredSkill] = Field(default_factory=list)
    tools: list[InferredSkill] = Field(default_factory=list)
    soft_skills: list[InferredSkill] = Field(default_factory=list)


class Competences(BaseModel):
    explicit: ExplicitCompetences = Field(default_factory=ExplicitCompetences)
    inferred: InferredCompetences = Field(default_factory=InferredCompetences)


class Formation(BaseModel):
    diplome: str | None = None
    ecole: str | None = None
    annee: str | None = None
    lieu: str | None = None
    mention: str | None = None
    specialite: str | None = None
    details: str | None = None
    sources: list[str] = Field(default_factory=list)


class Langue(BaseModel):
    langue: str
    niveau: str | None = None
    niveau_cecrl: str | None = None
    certifications: list[str] = Field(default_factory=list)


class ClientReference(BaseModel):
    nom: str
    secteur: str | None = None
    annees: list[str] = Field(default_factory=list)
    contexte: str | None = None
    sources: list[str] = Field(default_factory=list)


class References(BaseModel):
    clients: list[ClientReference] = Field(default_factory=list)


class Certification(BaseModel):
    nom: str
    organisme: str | None = None
    date_obtention: str | None = None
    numero: str | None = None
    url_verification: str | None = None
    sources: list[str] = Field(default_factory=list)


class Projet(BaseModel):
    nom: str
    description: str | None = None
    client: str | None = None
    annee: str | None = None
    technologies: list[str] = Field(default_factory=list)
    resultats: str | None = None
    sources: list[str] = Field(default_factory=list)


class ProfileRecord(BaseModel):
    profil: Profil = Field(default_factory=Profil)
    experiences: list[Experience] = Field(default_factory=list)
    competences: Competences = Field(default_factory=Competences)
    formations: list[Formation] = Field(default_factory=list)
    langues: list[Langue] = Field(default_factory=list)
    references: References = Field(default_factory=References)
    certifications: list[Certification] = Field(default_factory=list)
    projets: list[Projet] = Field(default_factory=list)
    rejected_inferred: list[str] = Field(default_factory=list)
