"""Filesystem helpers for the ~/.casefile/ directory tree.

Provides path resolution, directory creation, document listing, and the
JSON-file profile store used as the persistence collaborator.
"""

from __future__ import annotations

import json
import logging
import re
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from casefile.completeness import Completeness
from casefile.config import DIR_DOCUMENTS, DIR_SUBJECTS, ENV_FILENAME, get_base_dir
from casefile.models.profile import Profile

logger = logging.getLogger(__name__)

_SUBJECT_ID = re.compile(r"^[A-Za-z0-9][A-Za-z0-9_.-]{0,127}$")


def ensure_directories() -> None:
    """Create the full ~/.casefile/ directory tree if it does not exist."""
    for directory in (get_documents_dir(), get_subjects_dir()):
        directory.mkdir(parents=True, exist_ok=True)


def get_documents_dir() -> Path:
    """Return the path to ~/.casefile/documents/."""
    return get_base_dir() / DIR_DOCUMENTS


def get_subjects_dir() -> Path:
    """Return the path to ~/.casefile/subjects/."""
    return get_base_dir() / DIR_SUBJECTS


def get_env_path() -> Path:
    """Return the path to ~/.casefile/.env."""
    return get_base_dir() / ENV_FILENAME


def validate_subject_id(subject_id: str) -> str:
    if not _SUBJECT_ID.match(subject_id) or ".." in subject_id:
        raise ValueError(f"Invalid subject id: {subject_id!r}")
    return subject_id


def get_subject_path(subject_id: str) -> Path:
    """Return the path to one subject's JSON file."""
    return get_subjects_dir() / f"{validate_subject_id(subject_id)}.json"


def list_documents() -> list[Path]:
    """Return a sorted list of all file paths inside the documents directory.

    Only regular files are included (hidden files and subdirectories are
    skipped).
    """
    docs_dir = get_documents_dir()
    if not docs_dir.exists():
        return []
    return sorted(
        p for p in docs_dir.iterdir() if p.is_file() and not p.name.startswith(".")
    )


def resolve_document(filename: str) -> Path | None:
    """Return the documents-dir file called *filename*, or ``None``.

    Only bare file names are accepted; anything that would escape the
    documents directory resolves to ``None``.
    """
    if not filename or Path(filename).name != filename or filename.startswith("."):
        return None
    path = get_documents_dir() / filename
    return path if path.is_file() else None


class ProfileStore:
    """Stores one JSON document per subject under ``subjects/``.

    Each file holds ``profile_data`` (the profile in wire form),
    ``data_completeness`` (the score) and ``updated_at``.
    """

    def load_raw(self, subject_id: str) -> dict[str, Any] | None:
        path = get_subject_path(subject_id)
        if not path.exists():
            return None
        try:
            record = json.loads(path.read_text(encoding="utf-8"))
        except (json.JSONDecodeError, OSError) as exc:
            logger.warning("Corrupted subject file at %s: %s", path, exc)
            return None
        if not isinstance(record, dict):
            logger.warning("Subject file at %s is not a JSON object", path)
            return None
        return record

    def load(self, subject_id: str) -> dict[str, Any] | None:
        """Return the stored profile data for *subject_id*, if any."""
        record = self.load_raw(subject_id)
        if record is None:
            return None
        data = record.get("profile_data")
        return data if isinstance(data, dict) else None

    def save(self, subject_id: str, profile: Profile, completeness: Completeness) -> Path:
        path = get_subject_path(subject_id)
        path.parent.mkdir(parents=True, exist_ok=True)
        record = {
            "profile_data": profile.to_dict(),
            "data_completeness": completeness.score,
            "updated_at": datetime.now(timezone.utc).isoformat(),
        }
        tmp = path.with_suffix(".json.tmp")
        tmp.write_text(json.dumps(record, indent=2), encoding="utf-8")
        tmp.replace(path)
        logger.info("Saved subject %s (completeness %d)", subject_id, completeness.score)
        return path

    def list_subjects(self) -> list[str]:
        subjects_dir = get_subjects_dir()
        if not subjects_dir.exists():
            return []
        return sorted(p.stem for p in subjects_dir.glob("*.json"))


_store: ProfileStore | None = None


def get_profile_store() -> ProfileStore:
    global _store
    if _store is None:
        _store = ProfileStore()
    return _store
