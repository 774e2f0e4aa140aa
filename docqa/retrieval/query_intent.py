"""Identity detection, short-query expansion and positional boosting."""
from __future__ import annotations

import re
from typing import Dict, Optional

from docqa.core.types import Chunk

# Short questions asking who a document is about or how to reach them.
IDENTITY_RE = re.compile(
    r"^(?:what(?:'s|\s+is)?\s+(?:the\s+|his\s+|her\s+|their\s+|your\s+)?)?"
    r"(?:(?:full\s+)?name|author|contact(?:\s+(?:info|details))?|email"
    r"|who(?:\s+is\s+(?:this|it|the\s+author))?|who\s+wrote\s+(?:this|it))"
    r"\s*[?.!:]*$"
)

# Identity information sits at the top of a document (title block, letterhead).
DOCUMENT_START_BOOST = 0.15
EARLY_PAGE_ONE_BOOST = DOCUMENT_START_BOOST / 2

# Trigger -> related terms appended before embedding. Terse queries embed close to
# everything; the extra vocabulary pulls them towards the section they mean.
EXPANSIONS: Dict[str, str] = {
    "name": "full name person candidate author title",
    "who": "name person author candidate profile",
    "contact": "contact email phone address linkedin website",
    "email": "email address contact mail",
    "phone": "phone number mobile telephone contact",
    "address": "address location city street contact",
    "experience": "work experience employment history positions roles responsibilities",
    "skills": "skills technologies tools languages competencies expertise",
    "education": "education degree university college school graduated studies",
    "projects": "projects built developed implemented portfolio",
    "summary": "summary overview profile about introduction",
    "certifications": "certifications certificates licenses credentials",
    "languages": "languages spoken fluent native proficiency",
}

MAX_EXPANSION_WORDS = 3

_NORMALIZE_RE = re.compile(r"[^a-z0-9'\s]+")


def normalize_query(text: str) -> str:
    return " ".join(_NORMALIZE_RE.sub(" ", text.lower()).split())


def is_identity_query(text: str) -> bool:
    return bool(IDENTITY_RE.match(" ".join(text.lower().split())))


def expansion_for(text: str) -> Optional[str]:
    """Expansion terms for ``text``, or None when the query is left as is."""
    norm = normalize_query(text)
    if not norm:
        return None
    if norm in EXPANSIONS:
        return EXPANSIONS[norm]

    words = norm.split()
    if len(words) > MAX_EXPANSION_WORDS:
        return None
    for trigger, terms in EXPANSIONS.items():
        if trigger in words:
            return terms
    return None


def expand_query(text: str) -> str:
    terms = expansion_for(text)
    if terms is None:
        return text
    return f"{text} {terms}"


def positional_boost(chunk: Chunk) -> float:
    if chunk.is_document_start:
        return DOCUMENT_START_BOOST
    if chunk.is_early_page_one:
        return EARLY_PAGE_ONE_BOOST
    return 0.0
