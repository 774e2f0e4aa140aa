"""Answers assembled from verbatim source text when generation is skipped or unusable."""
from __future__ import annotations

import math
import re
from collections import Counter
from typing import List, Optional, Sequence, Tuple

from docqa.core.types import ScoredCandidate
from docqa.indexing.bm25_index import simple_tokenize


MAX_SUMMARY_SENTENCES = 3
MIN_SENTENCE_CHARS = 20
# Share of the shorter sentence's tokens found in a kept one that marks a repeat.
DUPLICATE_OVERLAP = 0.6

NAME_SCAN_LINES = 5
NAME_MIN_CHARS = 3
NAME_MAX_CHARS = 50
NAME_MAX_WORDS = 4

_SENTENCE_SPLIT_RE = re.compile(r"(?<=[.!?])\s+")
_NAME_LINE_RE = re.compile(r"^[A-Za-z][A-Za-z '\-]*$")

# Headings that open resumes and reports and look like names.
NAME_DENYLIST = frozenset({
    "resume", "cv", "curriculum", "vitae", "summary", "profile", "objective",
    "contact", "experience", "education", "skills", "projects", "references",
    "certifications", "languages", "about", "professional", "employment",
    "history", "personal", "details", "information", "introduction", "contents",
    "abstract", "chapter", "report", "page", "table",
})

QUERY_STOPWORDS = frozenset({
    "what", "who", "whom", "whose", "where", "when", "which", "why", "how",
    "the", "and", "for", "are", "was", "were", "does", "did", "this", "that",
    "with", "from", "about", "into", "your", "you", "his", "her", "their",
    "they", "them", "there", "have", "has", "had", "can", "could", "would",
    "should", "tell", "give", "list", "please", "any", "all", "its", "document",
})


def query_terms(query: str) -> List[str]:
    seen: List[str] = []
    for t in simple_tokenize(query):
        if t not in QUERY_STOPWORDS and t not in seen:
            seen.append(t)
    return seen


def split_sentences(text: str) -> List[str]:
    out = []
    for raw in _SENTENCE_SPLIT_RE.split(text):
        sentence = " ".join(raw.split())
        if len(sentence) >= MIN_SENTENCE_CHARS:
            out.append(sentence)
    return out


def _is_near_duplicate(a: Sequence[str], b: Sequence[str]) -> bool:
    sa, sb = set(a), set(b)
    shorter = min(len(sa), len(sb))
    if shorter == 0:
        return False
    return len(sa & sb) / shorter > DUPLICATE_OVERLAP


def rank_sentences(query: str, sources: Sequence[ScoredCandidate]) -> List[Tuple[float, str, ScoredCandidate]]:
    """(score, sentence, source) with a positive TF-IDF score, best first."""
    terms = query_terms(query)
    if not terms:
        return []

    sentences: List[Tuple[str, ScoredCandidate, Counter]] = []
    for src in sources:
        for sentence in split_sentences(src.text):
            sentences.append((sentence, src, Counter(simple_tokenize(sentence))))
    if not sentences:
        return []

    n = len(sentences)
    df = {t: sum(1 for _, _, tf in sentences if t in tf) for t in terms}
    idf = {t: math.log((1 + n) / (1 + df[t])) + 1.0 for t in terms}
    norm = math.sqrt(len(terms))

    scored = []
    for sentence, src, tf in sentences:
        score = sum(tf[t] * idf[t] for t in terms if tf[t] > 0) / norm
        if score > 0:
            scored.append((score, sentence, src))

    # stable: ties keep source then sentence order
    scored.sort(key=lambda x: x[0], reverse=True)
    return scored


def extractive_summary(query: str, sources: Sequence[ScoredCandidate]) -> Optional[str]:
    """Up to three cited, non-repeating sentences, or None if nothing matches."""
    kept: List[Tuple[str, ScoredCandidate, List[str]]] = []
    for _, sentence, src in rank_sentences(query, sources):
        tokens = simple_tokenize(sentence)
        if any(_is_near_duplicate(tokens, k_tokens) for _, _, k_tokens in kept):
            continue
        kept.append((sentence, src, tokens))
        if len(kept) >= MAX_SUMMARY_SENTENCES:
            break

    if not kept:
        return None
    return " ".join(f"{sentence} [{src.source_id}]" for sentence, src, _ in kept)


def looks_like_name(line: str) -> bool:
    if not (NAME_MIN_CHARS <= len(line) <= NAME_MAX_CHARS):
        return False
    if not _NAME_LINE_RE.match(line):
        return False
    words = line.split()
    if not 1 <= len(words) <= NAME_MAX_WORDS:
        return False
    return not any(w.lower().strip("'-") in NAME_DENYLIST for w in words)


def _likely_first_sources(sources: Sequence[ScoredCandidate]) -> List[ScoredCandidate]:
    starts = [s for s in sources if s.chunk.is_document_start]
    early = [s for s in sources if s.chunk.is_early_page_one]
    picked = starts + early
    if not picked and sources:
        picked = [sources[0]]
    return picked


def extract_name(sources: Sequence[ScoredCandidate]) -> Optional[str]:
    """Name-like line from the top of the first chunks, cited, or None."""
    for src in _likely_first_sources(sources):
        lines = [ln.strip() for ln in src.text.splitlines() if ln.strip()]
        for line in lines[:NAME_SCAN_LINES]:
            if looks_like_name(line):
                return f"{line} [{src.source_id}]"
    return None
