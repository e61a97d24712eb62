"""API routers."""

from askpages.routers.ai import router as ai_router

__all__ = ["ai_router"]
