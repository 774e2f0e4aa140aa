from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, List, Optional, Protocol

from docqa.generation.prompting import ChatPrompt


@dataclass
class LLMResponse:
    text: str


@dataclass(frozen=True)
class SamplingConfig:
    # near-greedy decoding keeps reruns (and their citations) reproducible
    temperature: float = 0.1
    max_new_tokens: int = 256
    do_sample: bool = False
    repetition_penalty: float = 1.1


PartialCallback = Callable[[str], None]


class Generator(Protocol):
    def generate(
        self,
        prompt: ChatPrompt,
        sampling: SamplingConfig,
        on_partial: Optional[PartialCallback] = None,
    ) -> LLMResponse:
        """on_partial receives the full text generated so far, in order."""
        ...


class Embedder(Protocol):
    def embed(self, text: str) -> List[float]: ...
