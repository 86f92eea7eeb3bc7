# launchkit/routers/__init__.py
from .projects import router as projects_router

__all__ = ["projects_router"]
