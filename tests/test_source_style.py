"""Keep source lines within the project's line length."""

from __future__ import annotations

from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parent.parent
MAX_LINE_LENGTH = 100
SOURCES = sorted([ROOT / "main.py", *(ROOT / "zao_nexus").glob("*.py")])


@pytest.mark.parametrize("source", SOURCES, ids=lambda path: path.name)
def test_lines_fit_line_length(source: Path) -> None:
    lines = source.read_text(encoding="utf-8").splitlines()
    long_lines = [
        number for number, line in enumerate(lines, start=1) if len(line) > MAX_LINE_LENGTH
    ]
    if long_lines:
        msg = f"{source.name} has lines over {MAX_LINE_LENGTH} characters: {long_lines}"
        raise AssertionError(msg)
