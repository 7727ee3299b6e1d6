"""API routers."""

from bents_assistant.presentation.routes.chat import router as chat_router
from bents_assistant.presentation.routes.links import router as links_router
from bents_assistant.presentation.routes.users import router as users_router

__all__ = ["chat_router", "links_router", "users_router"]
