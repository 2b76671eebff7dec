"""Input sanitization for values used as store keys and prompt content."""

from __future__ import annotations

import re

_MARKUP_CONTROL = re.compile(r"[<>{}]")


def strip_markup(value: str | None) -> str:
    """Remove `<`, `>`, `{` and `}` and surrounding whitespace."""
    if value is None:
        return ""
    return _MARKUP_CONTROL.sub("", value).strip()
