"""Load, save and back up the links JSON document."""

from __future__ import annotations

import json
import logging
import os
import shutil
from datetime import datetime, timezone
from pathlib import Path

from pydantic import ValidationError

from .models import LinksDocument, LinksDocumentModel

LOGGER = logging.getLogger(__name__)

BACKUP_DIR_NAME = "backups"


class DocumentError(RuntimeError):
    """Raised when the links document cannot be read, parsed or written."""


def load_document(path: Path) -> LinksDocument:
    """Load and validate the links document at ``path``."""
    try:
        raw_text = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        msg = f"Cannot read links document {path}: {exc}"
        raise DocumentError(msg) from exc
    try:
        model = LinksDocumentModel.model_validate_json(raw_text)
    except ValidationError as exc:
        msg = f"Invalid links document {path}: {exc}"
        raise DocumentError(msg) from exc
    document = LinksDocument.from_model(model)
    LOGGER.info(
        "Loaded %d links in %d categories from %s",
        len(document.links),
        len(document.categories),
        path,
    )
    return document


def save_document(document: LinksDocument, path: Path) -> None:
    """Write ``document`` to ``path`` via a temporary sibling file.

    The target is only replaced once the whole payload has been written, so a
    failure never leaves a truncated document behind.
    """
    payload = document.to_model().model_dump(mode="json", by_alias=True)
    text = json.dumps(payload, indent=2, ensure_ascii=False)
    tmp_path = path.with_name(f".{path.name}.tmp")
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path.write_text(text + "\n", encoding="utf-8")
        os.replace(tmp_path, path)
    except OSError as exc:
        tmp_path.unlink(missing_ok=True)
        msg = f"Cannot write links document {path}: {exc}"
        raise DocumentError(msg) from exc
    LOGGER.info("Wrote %d links to %s", len(document.links), path)


def backup_document(path: Path, backup_dir: Path | None = None) -> Path:
    """Copy the document into a timestamped file under ``backups/`` and return its path."""
    if not path.exists():
        msg = f"Links document not found: {path}"
        raise DocumentError(msg)
    target_dir = backup_dir or path.parent / BACKUP_DIR_NAME
    stamp = datetime.now(timezone.utc).strftime("%Y-%m-%dT%H-%M-%S-%fZ")
    target = target_dir / f"{path.stem}-{stamp}{path.suffix}"
    try:
        target_dir.mkdir(parents=True, exist_ok=True)
        shutil.copy2(path, target)
    except OSError as exc:
        msg = f"Cannot back up {path} to {target}: {exc}"
        raise DocumentError(msg) from exc
    LOGGER.info("Created backup %s", target)
    return target
