"""
Persisted status document store.

The document lives in a single JSON file. Writes go to a temporary file
in the same directory and are moved into place with os.replace, so a
failed run leaves the previous document untouched.
"""

from __future__ import annotations

import os
import tempfile
from pathlib import Path
from typing import Optional

from statussync.document import dumps_document, loads_document
from statussync.errors import StoreError
from statussync.models import StatusDocument


def load_document(path: str | Path) -> Optional[StatusDocument]:
    """
    Read the persisted document.

    Returns None when the file does not exist yet.

    Raises:
        StoreError: if the file exists but cannot be read or decoded.
    """
    doc_path = Path(path)
    if not doc_path.exists():
        return None

    try:
        text = doc_path.read_text(encoding="utf-8")
    except OSError as exc:
        raise StoreError(f"Cannot read {doc_path}: {exc}") from exc

    if not text.strip():
        return None

    try:
        return loads_document(text)
    except ValueError as exc:
        raise StoreError(f"Malformed status document {doc_path}: {exc}") from exc


def save_document(path: str | Path, doc: StatusDocument) -> None:
    """
    Atomically write ``doc`` to ``path``.

    Raises:
        StoreError: if the file cannot be written.
    """
    doc_path = Path(path)
    text = dumps_document(doc)

    tmp_name = None
    try:
        doc_path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(
            prefix=f".{doc_path.name}.", suffix=".tmp", dir=doc_path.parent
        )
        with os.fdopen(fd, "w", encoding="utf-8") as fh:
            fh.write(text)
        os.chmod(tmp_name, 0o644)
        os.replace(tmp_name, doc_path)
    except OSError as exc:
        if tmp_name and os.path.exists(tmp_name):
            os.unlink(tmp_name)
        raise StoreError(f"Cannot write {doc_path}: {exc}") from exc
