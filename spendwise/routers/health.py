"""
Health Check Router
Liveness plus a storage connectivity check
"""
from datetime import datetime
import logging

from fastapi import APIRouter, Depends

from spendwise.core.config import settings
from spendwise.db.base import ExpenseStore, StorageError
from spendwise.deps import get_store

router = APIRouter()
logger = logging.getLogger(__name__)


@router.get("/health")
def health_check():
    """
    Health check endpoint.
    Returns API status.
    """
    return {
        "status": "healthy",
        "service": settings.PROJECT_NAME,
        "timestamp": datetime.utcnow().isoformat()
    }


@router.get("/status")
def storage_status(store: ExpenseStore = Depends(get_store)):
    """
    Check connectivity of the configured storage backend and whether the
    AI provider is configured.
    """
    storage = {
        "backend": settings.STORAGE_BACKEND,
        "connected": False,
        "error": None,
    }
    try:
        storage["connected"] = store.ping()
    except StorageError as e:
        storage["error"] = str(e)
        logger.error(f"Storage check failed: {str(e)}")

    return {
        "timestamp": datetime.utcnow().isoformat(),
        "services": {
            "storage": storage,
            "ai": {"configured": bool(settings.OPENAI_API_KEY), "model": settings.OPENAI_MODEL},
        },
        "overall_status": "healthy" if storage["connected"] else "degraded",
    }
