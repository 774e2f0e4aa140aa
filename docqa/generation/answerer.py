from __future__ import annotations

import logging
import re
from typing import List, Optional

from docqa.core.types import ScoredCandidate
from docqa.generation.citation_guard import (
    attach_verbatim_citation,
    is_abstention,
    is_contradictory,
    safe_fallback,
    strip_invalid_citations,
    validate_citations,
)
from docqa.generation.extractive import extractive_summary
from docqa.generation.llm import Generator, PartialCallback, SamplingConfig
from docqa.generation.prompting import CONTEXT_CHAR_BUDGET, ChatPrompt, build_prompt, strip_prompt_echo

logger = logging.getLogger(__name__)

_ANSWER_PREFIX_RE = re.compile(r"^\s*answer:\s*", re.IGNORECASE)


def fallback_answer(query: str, sources: List[ScoredCandidate]) -> str:
    """Extractive summary when any sentence matches, otherwise abstain."""
    return extractive_summary(query, sources) or safe_fallback()


def clean_generated(text: str, prompt: ChatPrompt) -> str:
    text = strip_prompt_echo(text or "", prompt).strip()
    return _ANSWER_PREFIX_RE.sub("", text).strip()


def enforce_citations(query: str, answer: str, sources: List[ScoredCandidate]) -> str:
    """Return a cited answer, an abstention, or an extractive substitute."""
    if not answer:
        logger.info("Generation returned nothing; using extractive fallback")
        return fallback_answer(query, sources)

    if is_contradictory(answer):
        logger.info("Generated answer abstains and answers at once; abstaining")
        return safe_fallback()
    if is_abstention(answer):
        # a bare abstention needs no citation
        return strip_invalid_citations(answer, sources)

    answer = strip_invalid_citations(answer, sources)
    if validate_citations(answer, sources):
        return answer

    cited = attach_verbatim_citation(answer, sources)
    if cited is not None:
        return cited

    logger.info("Generated answer has no usable citation; using extractive fallback")
    return fallback_answer(query, sources)


class Answerer:
    def __init__(
        self,
        llm: Generator,
        sampling: SamplingConfig = SamplingConfig(),
        context_char_budget: int = CONTEXT_CHAR_BUDGET,
    ):
        self.llm = llm
        self.sampling = sampling
        self.context_char_budget = context_char_budget

    def answer(self, query: str, sources: List[ScoredCandidate], on_partial: Optional[PartialCallback] = None) -> str:
        prompt = build_prompt(query, sources, self.context_char_budget)

        forward = None
        if on_partial is not None:
            def forward(partial: str) -> None:
                cleaned = strip_prompt_echo(partial, prompt)
                if cleaned:
                    on_partial(cleaned)

        resp = self.llm.generate(prompt, self.sampling, on_partial=forward)
        return enforce_citations(query, clean_generated(resp.text, prompt), sources)
