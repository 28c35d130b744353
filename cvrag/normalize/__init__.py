from .company import are_same_company, normalize_company_name
from .dates import is_present_marker, normalize_date, year_of
from .document_type import (
    UNKNOWN_DOCUMENT_TYPE,
    DocumentType,
    document_type_from_filename,
    document_type_from_mime,
    document_type_from_stored,
    normalize_document_type,
)
from .profile import NormalizationIssue, NormalizationResult, normalize_competences, normalize_profile
from .text import sanitize_text
from .values import coerce_boolean

__all__ = [
    "UNKNOWN_DOCUMENT_TYPE",
    "DocumentType",
    "NormalizationIssue",
    "NormalizationResult",
    "are_same_company",
    "coerce_boolean",
    "document_type_from_filename",
    "document_type_from_mime",
    "document_type_from_stored",
    "is_present_marker",
    "normalize_company_name",
    "normalize_competences",
    "normalize_date",
    "normalize_document_type",
    "normalize_profile",
    "sanitize_text",
    "year_of",
]
