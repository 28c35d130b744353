from __future__ import annotations

import re
from typing import Any

from .utils import normalize_key

# Keys and values are accent-folded lowercase; only exact matches resolve.
_COMPANY_ALIASES: dict[str, str] = {
    "vw": "volkswagen",
    "vw fs": "volkswagen financial services",
    "vwfs": "volkswagen financial services",
    "volkswagen fs": "volkswagen financial services",
    "mercedes": "mercedes-benz",
    "daimler": "mercedes-benz",
    "bnp": "bnp paribas",
    "bnpp": "bnp paribas",
    "sg": "societe generale",
    "socgen": "societe generale",
    "ca": "credit agricole",
    "bpce": "groupe bpce",
    "cap": "capgemini",
    "sopra": "sopra steria",
    "steria": "sopra steria",
    "ey": "ernst & young",
    "ernst young": "ernst & young",
    "pwc": "pricewaterhousecoopers",
    "mckinsey": "mckinsey & company",
    "bcg": "boston consulting group",
    "ms": "microsoft",
    "msft": "microsoft",
    "goog": "google",
    "fb": "meta",
    "facebook": "meta",
    "amzn": "amazon",
    "aws": "amazon web services",
    "total": "totalenergies",
    "akka": "akka technologies",
    "altran": "capgemini engineering",
    "segula": "segula technologies",
}

_LEGAL_SUFFIX_RE = re.compile(
    r"(?:[\s,]+(?:sa|sas|sasu|sarl|inc|ltd|llc|gmbh|ag|corp|corporation|group|groupe|france))+\.?$"
)


def normalize_company_name(name: Any) -> str:
    """Comparison key for an organization name.

    normalize_company_name("VW") == normalize_company_name("Volkswagen")
    normalize_company_name("BNP Paribas SA") == "bnp paribas"
    """
    normalized = normalize_key(name)
    if not normalized:
        return ""
    stripped = _LEGAL_SUFFIX_RE.sub("", normalized).strip() or normalized
    return _COMPANY_ALIASES.get(stripped, stripped)


def are_same_company(first: Any, second: Any) -> bool:
    left = normalize_company_name(first)
    right = normalize_company_name(second)
    return bool(left) and left == right
