"""Profile sessions with debounced autosave.

A ``ProfileSession`` owns the live profile of one open subject.  Every
change goes through :meth:`ProfileSession.apply_update`, which hands the
update the *current* profile and keeps whatever it returns; this is the
``apply_update`` the enrichment orchestrator and extraction merges use.

Saves are debounced: each update (re)starts a short timer and only the
last one writes.  ``flush`` writes immediately, e.g. when the subject is
closed.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from enum import Enum

from casefile.completeness import Completeness, calculate_completeness
from casefile.config import AUTOSAVE_DELAY
from casefile.merge import load_profile
from casefile.models.profile import Profile
from casefile.storage.filesystem import ProfileStore, get_profile_store

logger = logging.getLogger(__name__)


class SaveStatus(str, Enum):
    IDLE = "idle"
    SAVING = "saving"
    SAVED = "saved"
    ERROR = "error"


class ProfileSession:
    """Live profile of one subject plus its autosave timer."""

    def __init__(
        self,
        subject_id: str,
        profile: Profile,
        store: ProfileStore,
        delay: float = AUTOSAVE_DELAY,
    ) -> None:
        self.subject_id = subject_id
        self.profile = profile
        self.store = store
        self.delay = delay
        self.save_status: SaveStatus = SaveStatus.IDLE
        self.completeness: Completeness = calculate_completeness(profile)
        self.last_error: str | None = None
        self._timer: asyncio.TimerHandle | None = None

    @property
    def pending(self) -> bool:
        return self._timer is not None

    def apply_update(self, update: Callable[[Profile], Profile]) -> Profile:
        self.profile = update(self.profile)
        self._schedule_save()
        return self.profile

    def replace(self, profile: Profile) -> Profile:
        return self.apply_update(lambda _current: profile)

    def flush(self) -> bool:
        """Cancel any pending timer and save now.  Returns ``True`` on success."""
        self._cancel_timer()
        return self._save()

    def _schedule_save(self) -> None:
        self._cancel_timer()
        self.save_status = SaveStatus.SAVING
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            # No event loop (CLI use): nothing to debounce against.
            self._save()
            return
        self._timer = loop.call_later(self.delay, self._save)

    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def _save(self) -> bool:
        self._timer = None
        completeness = calculate_completeness(self.profile)
        try:
            self.store.save(self.subject_id, self.profile, completeness)
        except OSError as exc:
            logger.exception("Autosave failed for subject %s", self.subject_id)
            self.save_status = SaveStatus.ERROR
            self.last_error = str(exc)
            return False
        self.completeness = completeness
        self.save_status = SaveStatus.SAVED
        self.last_error = None
        return True


_sessions: dict[str, ProfileSession] = {}


def open_session(subject_id: str, store: ProfileStore | None = None) -> ProfileSession:
    """Return the open session for *subject_id*, loading it if needed."""
    session = _sessions.get(subject_id)
    if session is None:
        store = store or get_profile_store()
        profile = load_profile(store.load(subject_id))
        session = ProfileSession(subject_id, profile, store)
        _sessions[subject_id] = session
        logger.info("Opened session for subject %s", subject_id)
    return session


def get_session(subject_id: str) -> ProfileSession:
    session = _sessions.get(subject_id)
    if session is None:
        raise ValueError(f"Session for subject {subject_id!r} not found")
    return session


def close_session(subject_id: str) -> None:
    """Flush and forget the session for *subject_id*."""
    session = _sessions.pop(subject_id, None)
    if session is not None:
        if session.pending:
            session.flush()
        logger.info("Closed session for subject %s", subject_id)


def close_all_sessions() -> None:
    for subject_id in list(_sessions):
        close_session(subject_id)
