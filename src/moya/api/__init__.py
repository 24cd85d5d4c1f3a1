"""API module."""

from fastapi import APIRouter

from .endpoints import continuation, memory, novels

router = APIRouter()

# Include endpoint routers
router.include_router(novels.router, tags=["novels"])
router.include_router(memory.router, tags=["memory"])
router.include_router(continuation.router, tags=["continuation"])
