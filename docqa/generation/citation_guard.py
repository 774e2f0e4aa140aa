from __future__ import annotations

import re
from typing import Any, Dict, List, Optional, Set

from docqa.core.types import ScoredCandidate
from docqa.generation.prompting import ABSTENTION_MESSAGE


_CIT_RE = re.compile(r"\[S(\d+)\]")
_ABSTAIN_RE = re.compile(r"i don['’]t have that information(?: in the provided documents)?\.?", re.IGNORECASE)

# Only short answers (a name, a date, a figure) are looked up verbatim in the sources.
VERBATIM_MATCH_MAX_CHARS = 80
# Text around an abstention longer than this means the model answered anyway.
CONTRADICTION_MIN_CHARS = 50


def extract_citations(text: str) -> List[int]:
    return [int(n) for n in _CIT_RE.findall(text)]


def allowed_indices(sources: List[ScoredCandidate]) -> Set[int]:
    return set(range(1, len(sources) + 1))


def validate_citations(answer: str, sources: List[ScoredCandidate]) -> bool:
    # Must cite at least one labeled source
    allowed = allowed_indices(sources)
    return any(n in allowed for n in extract_citations(answer))


def strip_invalid_citations(answer: str, sources: List[ScoredCandidate]) -> str:
    allowed = allowed_indices(sources)
    if all(n in allowed for n in extract_citations(answer)):
        return answer

    def _keep(m: "re.Match[str]") -> str:
        return m.group(0) if int(m.group(1)) in allowed else ""

    # drop the space the removed marker leaves before punctuation
    return re.sub(r"[ \t]+(?=[.,;:!?]|$)", "", _CIT_RE.sub(_keep, answer), flags=re.MULTILINE).strip()


def is_abstention(text: str) -> bool:
    return bool(_ABSTAIN_RE.search(text))


def is_contradictory(text: str) -> bool:
    """Abstains and still says something substantial."""
    if not is_abstention(text):
        return False
    remainder = _ABSTAIN_RE.sub("", text).strip()
    return len(remainder) > CONTRADICTION_MIN_CHARS


def safe_fallback() -> str:
    return ABSTENTION_MESSAGE


def attach_verbatim_citation(answer: str, sources: List[ScoredCandidate]) -> Optional[str]:
    """Cite the first source containing the (short) answer verbatim, else None."""
    needle = answer.strip()
    if not needle or len(needle) > VERBATIM_MATCH_MAX_CHARS:
        return None
    probe = needle.rstrip(".").strip().lower()
    if not probe:
        return None
    for src in sources:
        if probe in src.text.lower():
            return f"{needle} [{src.source_id}]"
    return None


def citations_with_pages(answer: str, sources: List[ScoredCandidate]) -> List[Dict[str, Any]]:
    by_index = {i: s for i, s in enumerate(sources, start=1)}
    out: List[Dict[str, Any]] = []
    for n in sorted(set(extract_citations(answer))):
        src = by_index.get(n)
        if src is None:
            continue
        out.append({
            "source_id": src.source_id,
            "doc_id": src.chunk.doc_id,
            "chunk_id": src.chunk_id,
            "page": src.chunk.page,
        })
    return out
