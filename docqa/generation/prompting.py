from __future__ import annotations

import re
from dataclasses import dataclass
from typing import List

from docqa.core.types import ScoredCandidate


ABSTENTION_MESSAGE = "I don't have that information in the provided documents."
NO_DOCUMENTS_MESSAGE = "No documents found."

# Keeps the prompt inside a small model's context window.
CONTEXT_CHAR_BUDGET = 2600
CONTEXT_SEPARATOR = "\n\n---\n\n"

SYSTEM_PROMPT = f"""You are a document assistant.

You MUST follow these rules:
1) Answer in English only.
2) Use ONLY the provided CONTEXT. Do not use outside knowledge.
3) If the CONTEXT does not contain the answer, reply exactly:
   {ABSTENTION_MESSAGE}
4) End every factual sentence with the citation of the source it came from,
   in the exact format [S1], [S2], ...
5) Be concise.
"""

# ChatML control tokens; some local models echo them back.
IM_START = "<|im_start|>"
IM_END = "<|im_end|>"
CONTROL_TOKEN_RE = re.compile(r"<\|[a-z_]+\|>")


@dataclass(frozen=True)
class ChatPrompt:
    system: str
    user: str

    def render(self) -> str:
        """Single-string ChatML form, for completion-style generators."""
        return (
            f"{IM_START}system\n{self.system}{IM_END}\n"
            f"{IM_START}user\n{self.user}{IM_END}\n"
            f"{IM_START}assistant\n"
        )


def source_header(src: ScoredCandidate) -> str:
    parts = [f"[{src.source_id}]"]
    if src.chunk.page is not None:
        parts.append(f"[Page {src.chunk.page}]")
    if src.chunk.is_document_start:
        parts.append("[Start of Document]")
    return " ".join(parts)


def build_context(sources: List[ScoredCandidate], budget: int = CONTEXT_CHAR_BUDGET) -> str:
    blocks = [f"{source_header(s)}\n{s.text}" for s in sources]
    context = CONTEXT_SEPARATOR.join(blocks)
    if len(context) > budget:
        context = context[:budget]
    return context


def build_user_prompt(query: str, context: str) -> str:
    return f"""CONTEXT:
{context}

QUESTION:
{query}
"""


def build_prompt(query: str, sources: List[ScoredCandidate], budget: int = CONTEXT_CHAR_BUDGET) -> ChatPrompt:
    return ChatPrompt(system=SYSTEM_PROMPT, user=build_user_prompt(query, build_context(sources, budget)))


def strip_prompt_echo(text: str, prompt: ChatPrompt) -> str:
    """Remove an echoed prompt prefix and any control tokens."""
    rendered = prompt.render()
    if text.startswith(rendered):
        text = text[len(rendered):]
    elif text and rendered.startswith(text):
        # a streamed partial that is still inside the echo
        return ""
    return CONTROL_TOKEN_RE.sub("", text)
