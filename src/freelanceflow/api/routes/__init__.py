from .projects import router as projects_router
from .proposals import router as proposals_router

__all__ = ["projects_router", "proposals_router"]
