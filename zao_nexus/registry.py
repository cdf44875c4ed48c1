"""Tag registry maintenance: colours, counts and co-occurrence based related tags."""

from __future__ import annotations

import logging
import struct
from collections import Counter
from typing import TYPE_CHECKING

from .config import RELATED_TAG_LIMIT
from .keywords import TAG_COLORS
from .models import TagMeta

if TYPE_CHECKING:  # pragma: no cover
    from collections.abc import Iterable, Mapping, MutableMapping

    from .models import Link

LOGGER = logging.getLogger(__name__)

_INT32_MASK = 0xFFFFFFFF
_INT32_SIGN = 0x80000000
_COLOR_MASK = 0x00FFFFFF


def _to_int32(value: int) -> int:
    value &= _INT32_MASK
    return value - (1 << 32) if value & _INT32_SIGN else value


def _utf16_code_units(text: str) -> tuple[int, ...]:
    data = text.encode("utf-16-le", "surrogatepass")
    return struct.unpack(f"<{len(data) // 2}H", data)


def color_for_tag(tag: str, palette: Mapping[str, str] = TAG_COLORS) -> str:
    """Return the display colour for ``tag``.

    Palette entries win. Otherwise the classic ``hash * 31 + char`` string hash is
    computed over UTF-16 code units with 32-bit signed wrap-around after every
    step, masked to 24 bits and formatted as ``#RRGGBB`` (uppercase).
    """
    if tag in palette:
        return palette[tag]
    value = 0
    for unit in _utf16_code_units(tag):
        value = _to_int32(unit + (_to_int32(value << 5) - value))
    return f"#{value & _COLOR_MASK:06X}"


def apply_tag(
    registry: MutableMapping[str, TagMeta],
    tag: str,
    palette: Mapping[str, str] = TAG_COLORS,
) -> TagMeta:
    """Register one more link carrying ``tag``, creating the entry on first sight."""
    meta = registry.get(tag)
    if meta is None:
        meta = TagMeta(count=1, color=color_for_tag(tag, palette), related=[])
        registry[tag] = meta
        LOGGER.debug("Registered new tag %r (%s)", tag, meta.color)
    else:
        meta.count += 1
    return meta


def recount_tags(
    registry: MutableMapping[str, TagMeta],
    links: Iterable[Link],
    palette: Mapping[str, str] = TAG_COLORS,
) -> None:
    """Set every registry count from a full scan of ``links``.

    Tags seen on links but missing from the registry are added. Registry entries
    no link carries any more are kept with a count of zero.
    """
    counts: Counter[str] = Counter()
    for link in links:
        counts.update(set(link.tags))
    for tag in counts:
        if tag not in registry:
            registry[tag] = TagMeta(color=color_for_tag(tag, palette))
    for tag, meta in registry.items():
        meta.count = counts.get(tag, 0)
        if not meta.color:
            meta.color = color_for_tag(tag, palette)


def recompute_related(
    registry: MutableMapping[str, TagMeta],
    links: Iterable[Link],
    limit: int = RELATED_TAG_LIMIT,
) -> None:
    """Recompute ``related`` for every registry tag from scratch.

    Co-occurrence counts are collected in first-seen order (links in document order,
    tags in link order); the descending sort is stable, so ties keep that order.
    """
    link_tags = [list(dict.fromkeys(link.tags)) for link in links]
    for tag, meta in registry.items():
        co_occurrence: dict[str, int] = {}
        for tags in link_tags:
            if tag not in tags:
                continue
            for other in tags:
                if other != tag:
                    co_occurrence[other] = co_occurrence.get(other, 0) + 1
        ranked = sorted(co_occurrence.items(), key=lambda item: item[1], reverse=True)
        meta.related = [name for name, _ in ranked[: max(0, limit)]]
