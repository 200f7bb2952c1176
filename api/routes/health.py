"""
Health check endpoint.
"""

import time

from fastapi import APIRouter, Depends

from api.deps import SessionStore, get_store, start_time

router = APIRouter(tags=["Health"])


@router.get("/health")
async def health_check(store: SessionStore = Depends(get_store)):
    """Basic health check endpoint"""
    return {
        "status": "healthy",
        "version": "1.0.0",
        "timestamp": time.time(),
        "uptime_seconds": round(time.time() - start_time, 1),
        "sessions": len(store),
    }
