"""
Format version check.

Only documents declaring one of the supported format versions may be
signed and sent. Comparison is exact: no trimming, no case folding, no
version parsing.
"""

from __future__ import annotations

from dispatcher.app.schemas.models import Document

ACCEPTED_FORMATS = frozenset({"4.0", "3.1"})


def is_acceptable_format(document: Document) -> bool:
    return document.format in ACCEPTED_FORMATS
