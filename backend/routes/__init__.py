"""API routers"""
from .tasks import router as task_router

__all__ = ["task_router"]
