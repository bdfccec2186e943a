"""FastAPI application for casefile.

Run with: uvicorn casefile.server:app --host 127.0.0.1 --port 8395 --reload
Or: casefile start
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from casefile.routes import documents, enrichment, extraction, health, subjects
from casefile.session import close_all_sessions
from casefile.storage.filesystem import ensure_directories

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    ensure_directories()
    logger.info("casefile server started.")
    yield
    # Write out any debounced profile saves before the process exits.
    close_all_sessions()
    logger.info("casefile server stopped.")


app = FastAPI(
    title="casefile",
    description="Profile extraction, merge and enrichment pipeline",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        "http://localhost",
        "http://localhost:3000",
        "http://localhost:5173",
        "http://localhost:8395",
        "http://127.0.0.1",
        "http://127.0.0.1:3000",
        "http://127.0.0.1:5173",
        "http://127.0.0.1:8395",
    ],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(health.router)
app.include_router(subjects.router)
app.include_router(extraction.router)
app.include_router(enrichment.router)
app.include_router(documents.router)
