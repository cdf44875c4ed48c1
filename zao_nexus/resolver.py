"""Map a link's tags to a (category, subcategory) placement."""

from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING

from pydantic import TypeAdapter, ValidationError

from .config import DEFAULT_SUBCATEGORY
from .links import normalize_tag
from .models import CategoryMapping, Placement

if TYPE_CHECKING:  # pragma: no cover
    from collections.abc import Iterable, Sequence
    from pathlib import Path

LOGGER = logging.getLogger(__name__)

_MAPPING_LIST = TypeAdapter(list[CategoryMapping])


def sort_mappings(mappings: Iterable[CategoryMapping]) -> list[CategoryMapping]:
    """Order mappings by descending priority; equal priorities keep their listed order."""
    return sorted(mappings, key=lambda mapping: mapping.priority, reverse=True)


def matching_mappings(
    tags: Iterable[str],
    sorted_mappings: Sequence[CategoryMapping],
) -> list[CategoryMapping]:
    """All mappings (in priority order) whose tag the link carries."""
    present = {normalize_tag(tag) for tag in tags}
    return [mapping for mapping in sorted_mappings if mapping.tag in present]


def resolve_category(
    tags: Iterable[str],
    mappings: Sequence[CategoryMapping],
    *,
    presorted: bool = False,
) -> Placement:
    """Propose a placement for a link carrying ``tags``.

    The highest-priority matching mapping wins (first listed on ties); without any
    match the link belongs in ``Uncategorized / General``. Tags are never modified.
    """
    ordered = list(mappings) if presorted else sort_mappings(mappings)
    matches = matching_mappings(tags, ordered)
    if not matches:
        return Placement()
    best = matches[0]
    return Placement(category=best.category, subcategory=best.subcategory or DEFAULT_SUBCATEGORY)


def load_mappings(path: Path) -> list[CategoryMapping]:
    """Load a JSON array of tag mappings.

    Raises FileNotFoundError when the file is absent and ValueError when it is not a
    valid mapping list.
    """
    if not path.exists():
        msg = f"Tag mapping file not found: {path}"
        raise FileNotFoundError(msg)
    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
        mappings = _MAPPING_LIST.validate_python(raw)
    except (json.JSONDecodeError, ValidationError) as exc:
        msg = f"Invalid tag mapping file {path}: {exc}"
        raise ValueError(msg) from exc
    LOGGER.info("Loaded %d tag mappings from %s", len(mappings), path)
    return mappings
