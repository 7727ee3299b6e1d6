"""Use-case layer: business logic decoupled from the HTTP transport."""

from bents_assistant.application.use_cases.chat import ChatUseCase
from bents_assistant.application.use_cases.links import LinksUseCase

__all__ = ["ChatUseCase", "LinksUseCase"]
