"""Document listing endpoint for casefile.

Lists the files in ``~/.casefile/documents/`` that can be submitted for
extraction.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from fastapi import APIRouter

from casefile.extraction.text import get_file_extension, is_accepted_file
from casefile.storage.filesystem import list_documents

logger = logging.getLogger(__name__)

router = APIRouter()


def _describe(path: Path) -> dict[str, Any]:
    entry: dict[str, Any] = {
        "filename": path.name,
        "extension": get_file_extension(path.name),
        "accepted": is_accepted_file(path.name),
        "size": 0,
        "modified": None,
    }
    try:
        stat = path.stat()
    except OSError as exc:
        logger.warning("Could not stat %s: %s", path, exc)
        return entry
    entry["size"] = stat.st_size
    entry["modified"] = datetime.fromtimestamp(stat.st_mtime, tz=timezone.utc).isoformat()
    return entry


@router.get("/api/documents")
async def list_all_documents():
    """List the documents directory.

    ``accepted`` tells whether the file type can be extracted; everything
    else is listed but rejected on submit.
    """
    documents = [_describe(path) for path in list_documents()]
    return {"documents": documents, "total": len(documents)}
