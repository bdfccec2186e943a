"""Extraction job manager.

Keeps at most one document-extraction job per subject, independent of any
observer.  A client can submit a file, go away, and later reconnect to the
same job: the running ``asyncio.Task`` lives in the manager's keyed cache,
not in the request that started it, so reconnecting never re-issues the
provider call.

State machine per subject::

    idle -> extracting -> review | error

``apply`` consumes a ``review`` entry and returns a merge instruction for
the caller's profile; ``discard`` drops the entry (an in-flight result is
thrown away when it lands).
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from pydantic import BaseModel

from casefile.errors import CasefileError, JobNotReadyError
from casefile.extraction.provider import AgentExtractionProvider, ExtractionProvider
from casefile.extraction.summary import ExtractionSummary, build_extraction_summary
from casefile.extraction.text import UNSUPPORTED_MESSAGE, extract_text, is_accepted_file
from casefile.merge import MergeResult, merge_extraction
from casefile.models.outcomes import ErrorCode
from casefile.models.profile import Profile

logger = logging.getLogger(__name__)


class JobState(str, Enum):
    IDLE = "idle"
    EXTRACTING = "extracting"
    REVIEW = "review"
    ERROR = "error"


class ExtractionResult(BaseModel):
    extracted: dict[str, Any]
    summary: ExtractionSummary
    file_name: str


class JobSnapshot(BaseModel):
    """What an observer sees for one subject's extraction."""

    subject_id: str
    state: JobState = JobState.IDLE
    file_name: str | None = None
    result: ExtractionResult | None = None
    error: str | None = None
    error_code: ErrorCode | None = None
    started_at: str | None = None


class ExtractionJob:
    """One extraction run; owned by :class:`ExtractionJobManager`."""

    def __init__(self, subject_id: str, file_name: str, state: JobState = JobState.EXTRACTING) -> None:
        self.subject_id = subject_id
        self.file_name = file_name
        self.state = state
        self.started_at = datetime.now(timezone.utc).isoformat()
        self.task: asyncio.Task[None] | None = None
        self.result: ExtractionResult | None = None
        self.error: str | None = None
        self.error_code: ErrorCode | None = None

    def fail(self, message: str, code: ErrorCode) -> None:
        self.state = JobState.ERROR
        self.error = message
        self.error_code = code

    def snapshot(self) -> JobSnapshot:
        return JobSnapshot(
            subject_id=self.subject_id,
            state=self.state,
            file_name=self.file_name,
            result=self.result,
            error=self.error,
            error_code=self.error_code,
            started_at=self.started_at,
        )


@dataclass
class MergeInstruction:
    """A reviewed extraction, ready to be folded into the caller's profile."""

    subject_id: str
    result: ExtractionResult

    def merge(self, profile: Profile) -> MergeResult:
        return merge_extraction(profile, self.result.extracted)


class ExtractionJobManager:
    """Keyed cache of extraction jobs, one per subject."""

    def __init__(
        self,
        provider: ExtractionProvider | None = None,
        text_extractor: Callable[[str, bytes], str] = extract_text,
    ) -> None:
        self._provider = provider
        self._text_extractor = text_extractor
        self._jobs: dict[str, ExtractionJob] = {}

    @property
    def provider(self) -> ExtractionProvider:
        if self._provider is None:
            self._provider = AgentExtractionProvider()
        return self._provider

    def submit(self, subject_id: str, file_name: str, data: bytes) -> JobSnapshot:
        """Start extracting *file_name* for *subject_id*.

        Must be called from a running event loop.  While a job for the same
        subject is still extracting, that job's snapshot is returned and no
        new work starts.
        """
        current = self._jobs.get(subject_id)
        if current is not None and current.state == JobState.EXTRACTING:
            logger.info("Extraction already running for subject %s (%s)", subject_id, current.file_name)
            return current.snapshot()

        job = ExtractionJob(subject_id, file_name)
        self._jobs[subject_id] = job

        if not is_accepted_file(file_name):
            logger.warning("Rejected %s for subject %s: unsupported file type", file_name, subject_id)
            job.fail(UNSUPPORTED_MESSAGE, ErrorCode.UNSUPPORTED_FILE_TYPE)
            return job.snapshot()

        job.task = asyncio.get_running_loop().create_task(
            self._run(job, data), name=f"extract-{subject_id}"
        )
        logger.info("Started extraction of %s for subject %s", file_name, subject_id)
        return job.snapshot()

    def reconnect(self, subject_id: str) -> JobSnapshot:
        job = self._jobs.get(subject_id)
        if job is None:
            return JobSnapshot(subject_id=subject_id)
        return job.snapshot()

    async def wait(self, subject_id: str) -> JobSnapshot:
        """Wait for the subject's job to leave ``extracting``.

        The job is shielded: cancelling the waiter leaves the job running.
        """
        job = self._jobs.get(subject_id)
        if job is not None and job.task is not None and not job.task.done():
            await asyncio.shield(job.task)
        return self.reconnect(subject_id)

    def apply(self, subject_id: str) -> MergeInstruction:
        job = self._jobs.get(subject_id)
        if job is None or job.state != JobState.REVIEW or job.result is None:
            state = job.state.value if job else JobState.IDLE.value
            raise JobNotReadyError(
                f"No extraction awaiting review for subject {subject_id!r} (state: {state})"
            )
        del self._jobs[subject_id]
        return MergeInstruction(subject_id=subject_id, result=job.result)

    def discard(self, subject_id: str) -> None:
        job = self._jobs.pop(subject_id, None)
        if job is not None and job.state == JobState.EXTRACTING:
            logger.info("Discarded in-flight extraction for subject %s", subject_id)

    async def _run(self, job: ExtractionJob, data: bytes) -> None:
        try:
            text = await asyncio.to_thread(self._text_extractor, job.file_name, data)
            extracted = await self.provider.extract(text)
            summary = build_extraction_summary(extracted)
        except CasefileError as exc:
            logger.warning("Extraction failed for subject %s: %s", job.subject_id, exc.message)
            self._settle(job, error=exc.message, code=exc.code)
        except Exception as exc:
            logger.exception("Extraction crashed for subject %s", job.subject_id)
            self._settle(job, error=str(exc) or exc.__class__.__name__, code=ErrorCode.EXTRACTION_FAILED)
        else:
            result = ExtractionResult(extracted=extracted, summary=summary, file_name=job.file_name)
            self._settle(job, result=result)

    def _settle(
        self,
        job: ExtractionJob,
        result: ExtractionResult | None = None,
        error: str | None = None,
        code: ErrorCode | None = None,
    ) -> None:
        if result is not None:
            job.result = result
            job.state = JobState.REVIEW
        else:
            job.fail(error or "Extraction failed", code or ErrorCode.EXTRACTION_FAILED)
        if self._jobs.get(job.subject_id) is not job:
            logger.info("Dropping result for discarded extraction of subject %s", job.subject_id)
            return
        logger.info("Extraction for subject %s finished in state %s", job.subject_id, job.state.value)


_manager: ExtractionJobManager | None = None


def get_job_manager() -> ExtractionJobManager:
    global _manager
    if _manager is None:
        _manager = ExtractionJobManager()
    return _manager
