"""FastAPI routers for the distribution service."""

from .distributions import router as distributions_router

__all__ = ["distributions_router"]
