"""Enrichment endpoints.

- POST /api/subjects/{id}/enrichment -> run every enrichment group over the profile
- POST /api/breaches/check           -> batch breach check for a list of emails
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel

from casefile.config import get_hibp_api_key
from casefile.enrichment.breaches import BreachClient, get_default_limiter
from casefile.enrichment.orchestrator import EnrichmentOrchestrator, build_clients
from casefile.routes.subjects import open_subject, session_payload

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["enrichment"])

MAX_BATCH_EMAILS = 25


class BreachCheckRequest(BaseModel):
    emails: list[str]


_orchestrator: EnrichmentOrchestrator | None = None


def get_orchestrator() -> EnrichmentOrchestrator:
    global _orchestrator
    if _orchestrator is None:
        _orchestrator = EnrichmentOrchestrator(build_clients())
    return _orchestrator


def get_breach_client() -> BreachClient:
    return BreachClient(api_key=get_hibp_api_key(), limiter=get_default_limiter())


@router.post("/subjects/{subject_id}/enrichment")
async def run_enrichment(
    subject_id: str,
    orchestrator: EnrichmentOrchestrator = Depends(get_orchestrator),
):
    """Run geocoding, breach checks, social verification, company lookup and
    broker URL generation over the subject's profile.

    Results are folded into the live profile as they land; the response
    carries the run counters and the updated profile.
    """
    session = open_subject(subject_id)
    result = await orchestrator.run_all(session.profile, session.apply_update)
    payload = session_payload(session)
    payload["enrichment"] = result.model_dump(mode="json")
    return payload


@router.post("/breaches/check")
async def check_breaches(
    req: BreachCheckRequest,
    client: BreachClient = Depends(get_breach_client),
):
    emails = [e.strip() for e in req.emails if e and e.strip()]
    if not emails:
        raise HTTPException(status_code=400, detail="No emails provided.")
    if len(emails) > MAX_BATCH_EMAILS:
        raise HTTPException(
            status_code=400,
            detail=f"At most {MAX_BATCH_EMAILS} emails can be checked per request.",
        )

    outcomes = await client.check_multiple(emails)
    return {
        "results": {email: outcome.model_dump(mode="json", by_alias=True) for email, outcome in outcomes.items()},
        "total": len(outcomes),
    }
