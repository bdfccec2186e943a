"""Health check endpoint for casefile.

Returns server status along with document and subject counts and which
lookup providers have credentials configured.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter

from casefile.config import get_github_token, get_hibp_api_key, get_mapbox_token
from casefile.storage.filesystem import get_profile_store, list_documents

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/api/health")
async def health():
    """Health check endpoint."""
    try:
        documents_count = len(list_documents())
    except OSError as exc:
        logger.warning("Failed to list documents: %s", exc)
        documents_count = 0

    try:
        subjects_count = len(get_profile_store().list_subjects())
    except OSError as exc:
        logger.warning("Failed to list subjects: %s", exc)
        subjects_count = 0

    return {
        "status": "ok",
        "documents_count": documents_count,
        "subjects_count": subjects_count,
        "providers": {
            "breaches": get_hibp_api_key() is not None,
            "geocoding": get_mapbox_token() is not None,
            "github": get_github_token() is not None,
        },
    }
