"""Document extraction endpoints.

A client can start an extraction, disconnect, and reconnect later to the
same job; the job lives in the process-wide job manager, not the request.

- POST   /api/subjects/{id}/extraction        -> start extracting a document
- GET    /api/subjects/{id}/extraction        -> current job state (``?wait=true`` blocks)
- POST   /api/subjects/{id}/extraction/apply  -> merge the reviewed result into the profile
- DELETE /api/subjects/{id}/extraction        -> discard the job
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel

from casefile.errors import JobNotReadyError
from casefile.extraction.jobs import ExtractionJobManager, JobSnapshot, get_job_manager
from casefile.merge import MergeResult
from casefile.models.profile import Profile
from casefile.routes.subjects import open_subject, session_payload
from casefile.storage.filesystem import resolve_document

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/subjects", tags=["extraction"])


class SubmitRequest(BaseModel):
    filename: str


@router.post("/{subject_id}/extraction", response_model=JobSnapshot)
async def submit_extraction(
    subject_id: str,
    req: SubmitRequest,
    manager: ExtractionJobManager = Depends(get_job_manager),
):
    """Start extracting ``filename`` from the documents directory."""
    open_subject(subject_id)
    path = resolve_document(req.filename)
    if path is None:
        raise HTTPException(status_code=404, detail=f"Document not found: {req.filename!r}")
    try:
        data = path.read_bytes()
    except OSError as exc:
        logger.exception("Could not read document %s", path)
        raise HTTPException(status_code=500, detail=f"Could not read document: {exc}") from exc
    return manager.submit(subject_id, path.name, data)


@router.get("/{subject_id}/extraction", response_model=JobSnapshot)
async def get_extraction(
    subject_id: str,
    wait: bool = False,
    manager: ExtractionJobManager = Depends(get_job_manager),
):
    """Reconnect to the subject's extraction job."""
    if wait:
        return await manager.wait(subject_id)
    return manager.reconnect(subject_id)


@router.post("/{subject_id}/extraction/apply")
async def apply_extraction(
    subject_id: str,
    manager: ExtractionJobManager = Depends(get_job_manager),
):
    """Merge the reviewed extraction into the subject's live profile."""
    session = open_subject(subject_id)
    try:
        instruction = manager.apply(subject_id)
    except JobNotReadyError as exc:
        raise HTTPException(status_code=409, detail=exc.message) from exc

    outcome: list[MergeResult] = []

    def merge(profile: Profile) -> Profile:
        result = instruction.merge(profile)
        outcome.append(result)
        return result.merged

    session.apply_update(merge)
    payload = session_payload(session)
    payload["tagged_paths"] = sorted(outcome[0].tagged_paths)
    payload["summary"] = instruction.result.summary.model_dump()
    logger.info(
        "Applied extraction of %s to subject %s", instruction.result.file_name, subject_id
    )
    return payload


@router.delete("/{subject_id}/extraction")
async def discard_extraction(
    subject_id: str,
    manager: ExtractionJobManager = Depends(get_job_manager),
):
    manager.discard(subject_id)
    return {"ok": True}
