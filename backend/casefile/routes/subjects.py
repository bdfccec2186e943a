"""Subject profile endpoints.

- GET  /api/subjects                      -> list stored subjects
- GET  /api/subjects/{id}/profile         -> open the subject and return its profile
- PUT  /api/subjects/{id}/profile         -> replace the profile (autosaved)
- POST /api/subjects/{id}/profile/flush   -> save the profile now
- DELETE /api/subjects/{id}/session       -> flush and close the subject
"""

from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, HTTPException
from pydantic import ValidationError

from casefile.merge import load_profile
from casefile.session import ProfileSession, close_session, open_session
from casefile.storage.filesystem import get_profile_store, validate_subject_id

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/subjects", tags=["subjects"])


def open_subject(subject_id: str) -> ProfileSession:
    """Open the session for *subject_id*, mapping a bad id to a 400."""
    try:
        validate_subject_id(subject_id)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return open_session(subject_id)


def session_payload(session: ProfileSession) -> dict[str, Any]:
    return {
        "subject_id": session.subject_id,
        "profile": session.profile.to_dict(),
        "completeness": session.completeness.model_dump(),
        "save_status": session.save_status.value,
    }


@router.get("")
async def list_subjects():
    subjects = get_profile_store().list_subjects()
    return {"subjects": subjects, "total": len(subjects)}


@router.get("/{subject_id}/profile")
async def get_profile(subject_id: str):
    return session_payload(open_subject(subject_id))


@router.put("/{subject_id}/profile")
async def replace_profile(subject_id: str, profile_data: dict[str, Any]):
    """Replace the subject's profile.

    Missing sections fall back to the schema default.  The save is
    debounced; call the flush endpoint to write immediately.
    """
    session = open_subject(subject_id)
    try:
        profile = load_profile(profile_data)
    except ValidationError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc
    session.replace(profile)
    return session_payload(session)


@router.post("/{subject_id}/profile/flush")
async def flush_profile(subject_id: str):
    session = open_subject(subject_id)
    if not session.flush():
        raise HTTPException(
            status_code=500,
            detail=f"Failed to save subject {subject_id!r}: {session.last_error}",
        )
    return session_payload(session)


@router.delete("/{subject_id}/session")
async def close_subject(subject_id: str):
    try:
        validate_subject_id(subject_id)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    close_session(subject_id)
    return {"ok": True}
