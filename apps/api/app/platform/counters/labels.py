from __future__ import annotations

import re


_ENTRY_LABEL_RE = re.compile(r"\s*(\d+)\s*/\s*(\d+)\s*")


def parse_entry_number(label: str | None) -> int | None:
    """Leading sequence number of an entry label such as ``"12/50"``."""
    if label is None:
        return None
    match = _ENTRY_LABEL_RE.fullmatch(label)
    if match is None:
        return None
    return int(match.group(1))
