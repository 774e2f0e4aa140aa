from __future__ import annotations

from typing import List, Optional

from openai import OpenAI, OpenAIError

from docqa.core.errors import EmbeddingError, GenerationError
from docqa.generation.llm import LLMResponse, PartialCallback, SamplingConfig
from docqa.generation.prompting import ChatPrompt


class OpenAILLM:
    def __init__(self, api_key: Optional[str], model: str, client: Optional[OpenAI] = None):
        self.client = client or OpenAI(api_key=api_key)
        self.model = model

    def generate(
        self,
        prompt: ChatPrompt,
        sampling: SamplingConfig,
        on_partial: Optional[PartialCallback] = None,
    ) -> LLMResponse:
        messages = [
            {"role": "system", "content": prompt.system},
            {"role": "user", "content": prompt.user},
        ]
        try:
            if on_partial is None:
                resp = self.client.chat.completions.create(
                    model=self.model,
                    messages=messages,
                    temperature=sampling.temperature,
                    max_tokens=sampling.max_new_tokens,
                )
                return LLMResponse(text=resp.choices[0].message.content or "")

            stream = self.client.chat.completions.create(
                model=self.model,
                messages=messages,
                temperature=sampling.temperature,
                max_tokens=sampling.max_new_tokens,
                stream=True,
            )
            text = ""
            for event in stream:
                if not event.choices:
                    continue
                delta = event.choices[0].delta.content or ""
                if delta:
                    text += delta
                    on_partial(text)
            return LLMResponse(text=text)
        except OpenAIError as exc:
            raise GenerationError(f"Generation failed: {exc}") from exc


class OpenAIEmbedder:
    """OpenAI embeddings come back L2-normalized, which the cosine scoring assumes."""

    def __init__(self, api_key: Optional[str], model: str, client: Optional[OpenAI] = None):
        self.client = client or OpenAI(api_key=api_key)
        self.model = model

    def embed(self, text: str) -> List[float]:
        return self.embed_batch([text])[0]

    def embed_batch(self, texts: List[str]) -> List[List[float]]:
        try:
            resp = self.client.embeddings.create(model=self.model, input=texts)
        except OpenAIError as exc:
            raise EmbeddingError(f"Embedding failed: {exc}") from exc
        return [d.embedding for d in resp.data]
