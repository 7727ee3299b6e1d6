"""Chat completions through a PydanticAI agent backed by OpenAI."""

from __future__ import annotations

from collections.abc import AsyncIterator, Sequence

from openai import AsyncOpenAI
from pydantic_ai import Agent, ModelRequest, ModelResponse, TextPart, UserPromptPart
from pydantic_ai.messages import SystemPromptPart
from pydantic_ai.models.instrumented import InstrumentationSettings
from pydantic_ai.models.openai import OpenAIChatModel
from pydantic_ai.providers.openai import OpenAIProvider
from pydantic_ai.settings import ModelSettings

from bents_assistant.config import Settings
from bents_assistant.domain.models import ChatTurn


def create_completion_agent(
    settings: Settings,
    client: AsyncOpenAI,
    *,
    instrument: InstrumentationSettings | None = None,
) -> Agent[None, str]:
    """Create the plain-text agent every pipeline stage talks through.

    Prompts are supplied per call, so the agent carries no system prompt
    and no tools.
    """
    model = OpenAIChatModel(
        settings.openai_chat_model,
        provider=OpenAIProvider(openai_client=client),
    )
    return Agent(model=model, output_type=str, instrument=instrument)


class PydanticAICompletionService:
    """``ICompletionService`` over a PydanticAI agent.

    The last message becomes the user prompt; everything before it is
    replayed as message history (system turns as system prompt parts).
    """

    def __init__(self, agent: Agent[None, str]) -> None:
        self.agent = agent

    async def complete(
        self, messages: Sequence[ChatTurn], *, temperature: float | None = None
    ) -> str:
        history, prompt = self._split(messages)
        result = await self.agent.run(
            prompt,
            message_history=history or None,
            model_settings=self._model_settings(temperature),
        )
        return result.output

    async def stream(
        self, messages: Sequence[ChatTurn], *, temperature: float | None = None
    ) -> AsyncIterator[str]:
        history, prompt = self._split(messages)
        async with self.agent.run_stream(
            prompt,
            message_history=history or None,
            model_settings=self._model_settings(temperature),
        ) as result:
            async for delta in result.stream_text(delta=True):
                if delta:
                    yield delta

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    @classmethod
    def _split(
        cls, messages: Sequence[ChatTurn]
    ) -> tuple[list[ModelRequest | ModelResponse], str]:
        if not messages:
            raise ValueError("at least one message is required")
        return cls._build_history(messages[:-1]), messages[-1].content

    @staticmethod
    def _build_history(prior: Sequence[ChatTurn]) -> list[ModelRequest | ModelResponse]:
        """Convert prior turns into PydanticAI message-history objects."""
        history: list[ModelRequest | ModelResponse] = []
        for msg in prior:
            if msg.role == "system":
                history.append(ModelRequest(parts=[SystemPromptPart(content=msg.content)]))
            elif msg.role == "user":
                history.append(ModelRequest(parts=[UserPromptPart(content=msg.content)]))
            else:
                history.append(ModelResponse(parts=[TextPart(content=msg.content)]))
        return history

    @staticmethod
    def _model_settings(temperature: float | None) -> ModelSettings | None:
        if temperature is None:
            return None
        return ModelSettings(temperature=temperature)
