"""
Tests for the extraction job manager.
"""

import asyncio

import pytest

from casefile.errors import ExtractionParseError, JobNotReadyError
from casefile.extraction.jobs import ExtractionJobManager, JobState
from casefile.merge import load_profile
from casefile.models.outcomes import ErrorCode

EXTRACTED = {
    "identity": {"full_name": "Jane Roe"},
    "contact": {"email_addresses": [{"address": "jane@acme.com"}]},
}


class FakeProvider:
    """Extraction provider that can be held open with a gate."""

    def __init__(self, result=None, error=None, gated=False):
        self.result = result if result is not None else EXTRACTED
        self.error = error
        self.gate = asyncio.Event() if gated else None
        self.texts = []

    @property
    def calls(self):
        return len(self.texts)

    async def extract(self, text):
        self.texts.append(text)
        if self.gate is not None:
            await self.gate.wait()
        if self.error is not None:
            raise self.error
        return self.result


class TestExtractionJobManager:
    """Test job lifecycle, resumption and discard."""

    @pytest.mark.asyncio
    async def test_reconnect_unknown_subject_is_idle(self):
        manager = ExtractionJobManager(provider=FakeProvider())

        snapshot = manager.reconnect("s1")

        assert snapshot.state == JobState.IDLE
        assert snapshot.result is None

    @pytest.mark.asyncio
    async def test_submit_runs_to_review(self):
        provider = FakeProvider()
        manager = ExtractionJobManager(provider=provider)

        started = manager.submit("s1", "report.txt", b"Jane Roe, CFO")
        finished = await manager.wait("s1")

        assert started.state == JobState.EXTRACTING
        assert finished.state == JobState.REVIEW
        assert finished.result.file_name == "report.txt"
        assert finished.result.extracted == EXTRACTED
        assert finished.result.summary.counts == ["Identity", "0 phones, 1 email"]
        assert provider.texts == ["Jane Roe, CFO"]

    @pytest.mark.asyncio
    async def test_reattach_mid_flight_does_not_repeat_work(self):
        provider = FakeProvider(gated=True)
        manager = ExtractionJobManager(provider=provider)

        manager.submit("s1", "report.md", b"# Jane Roe")
        await asyncio.sleep(0.05)

        # Observer detaches and reattaches, then resubmits the same file.
        assert manager.reconnect("s1").state == JobState.EXTRACTING
        again = manager.submit("s1", "report.md", b"# Jane Roe")
        assert again.state == JobState.EXTRACTING

        provider.gate.set()
        final = await manager.wait("s1")

        assert final.state == JobState.REVIEW
        assert provider.calls == 1
        assert manager.reconnect("s1").state == JobState.REVIEW

    @pytest.mark.asyncio
    async def test_cancelled_observer_does_not_cancel_job(self):
        provider = FakeProvider(gated=True)
        manager = ExtractionJobManager(provider=provider)
        manager.submit("s1", "report.txt", b"Jane Roe")

        waiter = asyncio.create_task(manager.wait("s1"))
        await asyncio.sleep(0.05)
        waiter.cancel()
        with pytest.raises(asyncio.CancelledError):
            await waiter

        provider.gate.set()
        final = await manager.wait("s1")

        assert final.state == JobState.REVIEW

    @pytest.mark.asyncio
    async def test_unsupported_extension_never_calls_provider(self):
        provider = FakeProvider()
        manager = ExtractionJobManager(provider=provider)

        snapshot = manager.submit("s1", "photo.png", b"\x89PNG")

        assert snapshot.state == JobState.ERROR
        assert snapshot.error_code == ErrorCode.UNSUPPORTED_FILE_TYPE
        assert "PDF, DOCX, TXT, CSV, MD" in snapshot.error
        assert provider.calls == 0
        assert manager.reconnect("s1").state == JobState.ERROR

    @pytest.mark.asyncio
    async def test_parse_error_captured(self):
        provider = FakeProvider(error=ExtractionParseError("Failed to parse extraction output"))
        manager = ExtractionJobManager(provider=provider)

        manager.submit("s1", "report.txt", b"Jane Roe")
        final = await manager.wait("s1")

        assert final.state == JobState.ERROR
        assert final.error_code == ErrorCode.PARSE_ERROR
        with pytest.raises(JobNotReadyError):
            manager.apply("s1")

    @pytest.mark.asyncio
    async def test_unexpected_exception_captured(self):
        manager = ExtractionJobManager(provider=FakeProvider(error=RuntimeError("upstream 500")))

        manager.submit("s1", "report.txt", b"Jane Roe")
        final = await manager.wait("s1")

        assert final.state == JobState.ERROR
        assert final.error == "upstream 500"
        assert final.error_code == ErrorCode.EXTRACTION_FAILED

    @pytest.mark.asyncio
    async def test_unreadable_document_captured(self):
        provider = FakeProvider()
        manager = ExtractionJobManager(provider=provider)

        manager.submit("s1", "notes.txt", b"\xff\xfe\xfa")
        final = await manager.wait("s1")

        assert final.state == JobState.ERROR
        assert provider.calls == 0

    @pytest.mark.asyncio
    async def test_discard_drops_late_result(self):
        provider = FakeProvider(gated=True)
        manager = ExtractionJobManager(provider=provider)
        manager.submit("s1", "report.txt", b"Jane Roe")
        task = manager._jobs["s1"].task
        await asyncio.sleep(0.05)

        manager.discard("s1")
        provider.gate.set()
        await task

        assert manager.reconnect("s1").state == JobState.IDLE

    @pytest.mark.asyncio
    async def test_resubmit_after_error_starts_new_job(self):
        provider = FakeProvider()
        manager = ExtractionJobManager(provider=provider)

        manager.submit("s1", "photo.png", b"")
        manager.submit("s1", "report.txt", b"Jane Roe")
        final = await manager.wait("s1")

        assert final.state == JobState.REVIEW
        assert provider.calls == 1

    @pytest.mark.asyncio
    async def test_apply_consumes_review_and_merges(self):
        manager = ExtractionJobManager(provider=FakeProvider())
        manager.submit("s1", "report.txt", b"Jane Roe")
        await manager.wait("s1")
        profile = load_profile({"identity": {"full_name": "Jane Q. Roe"}})

        instruction = manager.apply("s1")
        result = instruction.merge(profile)

        assert manager.reconnect("s1").state == JobState.IDLE
        assert result.merged.identity.full_name == "Jane Q. Roe"
        assert result.merged.contact.email_addresses[0].ai_extracted is True
        assert result.tagged_paths == {"contact.email_addresses"}
        with pytest.raises(JobNotReadyError):
            manager.apply("s1")

    @pytest.mark.asyncio
    async def test_apply_while_extracting_rejected(self):
        provider = FakeProvider(gated=True)
        manager = ExtractionJobManager(provider=provider)
        manager.submit("s1", "report.txt", b"Jane Roe")

        with pytest.raises(JobNotReadyError):
            manager.apply("s1")

        provider.gate.set()
        await manager.wait("s1")

    @pytest.mark.asyncio
    async def test_subjects_are_independent(self):
        provider = FakeProvider()
        manager = ExtractionJobManager(provider=provider)

        manager.submit("s1", "a.txt", b"one")
        manager.submit("s2", "b.txt", b"two")
        await manager.wait("s1")
        await manager.wait("s2")

        assert provider.calls == 2
        assert manager.reconnect("s1").result.file_name == "a.txt"
        assert manager.reconnect("s2").result.file_name == "b.txt"

    @pytest.mark.asyncio
    async def test_non_object_section_still_reaches_review(self):
        answer = {"identity": {"full_name": "Jane Roe"}, "locations": ["1 Elm St, Springfield"]}
        manager = ExtractionJobManager(provider=FakeProvider(result=answer))

        manager.submit("s1", "report.txt", b"Jane Roe lives at 1 Elm St")
        final = await manager.wait("s1")

        assert final.state == JobState.REVIEW
        assert final.result.summary.counts == ["Identity"]
        result = manager.apply("s1").merge(load_profile(None))
        assert result.merged.identity.full_name == "Jane Roe"
        assert result.merged.locations.addresses == []
