"""Tiffin Response Engine - API Routers"""
from .responses import router as responses_router
from .preferences import router as preferences_router
from .scheduler import router as scheduler_router

__all__ = [
    "responses_router",
    "preferences_router",
    "scheduler_router",
]
