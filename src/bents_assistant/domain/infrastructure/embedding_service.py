"""OpenAI embedding service."""

from __future__ import annotations

from openai import AsyncOpenAI


class OpenAIEmbeddingService:
    """Async OpenAI implementation of ``IEmbeddingService``.

    Timeouts and retries are applied by the caller's call policy, so the
    client is expected to be created with ``max_retries=0``.
    """

    def __init__(self, client: AsyncOpenAI, model: str, dimensions: int = 1536) -> None:
        self.client = client
        self.model = model
        self._dimensions = dimensions

    async def embed_text(self, text: str) -> list[float]:
        """Generate an embedding vector for a single text."""
        response = await self.client.embeddings.create(model=self.model, input=text)
        return [float(x) for x in response.data[0].embedding]

    @property
    def dimension(self) -> int:
        return self._dimensions
