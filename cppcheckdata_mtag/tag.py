"""
cppcheckdata_mtag/tag.py
════════════════════════

Tag derivation: context string → 63-bit memory tag.

A *tag* names a memory location (a global object, the result of an
allocation call) by hashing a textual description of where it came from.
Because the value depends only on that text, two independent analysis
runs, or two translation units that see the same ``extern`` object,
arrive at the same number without sharing any counter.

    >>> derive_tag("extern jiffies") == derive_tag("extern jiffies")
    True
    >>> derive_tag("drv.c probe d alloc_dev()") < 2 ** 63
    True

The decimal text form of a tag is used only where tags cross into
persisted summaries (:func:`format_tag` / :func:`parse_tag`).
"""

from __future__ import annotations

import hashlib
from dataclasses import dataclass

__all__ = [
    "MAX_TAG",
    "TagState",
    "derive_tag",
    "format_tag",
    "parse_tag",
]

#: Largest value a tag can take (bit 63 is always clear).
MAX_TAG: int = (1 << 63) - 1


def derive_tag(context: str) -> int:
    """Return the tag for *context*.

    The first 8 bytes of the MD5 digest are read little-endian and the
    sign bit is cleared, so the value fits a signed 64-bit column and never
    collides with an all-ones sentinel.
    """
    digest = hashlib.md5(context.encode("utf-8")).digest()
    return int.from_bytes(digest[:8], "little") & MAX_TAG


def format_tag(tag: int) -> str:
    """Decimal text of *tag*, as stored in summary rows."""
    return str(tag)


def parse_tag(text: str) -> int:
    """Decode the decimal text of a stored tag.

    Raises ``ValueError`` when *text* is not an ASCII decimal integer in
    ``[0, MAX_TAG]``.
    """
    text = text.strip()
    if not (text.isascii() and text.isdigit()):
        raise ValueError(f"not a decimal tag: {text!r}")
    tag = int(text)
    if tag > MAX_TAG:
        raise ValueError(f"tag out of range: {text}")
    return tag


@dataclass(frozen=True)
class TagState:
    """Per-variable state carrying a tag.

    ``display`` is the decimal text of ``tag``; it is what gets written
    into caller summaries.
    """

    tag: int
    display: str

    @classmethod
    def from_tag(cls, tag: int) -> TagState:
        return cls(tag=tag, display=format_tag(tag))

    @classmethod
    def from_text(cls, text: str) -> TagState:
        """Rebuild a state from stored decimal text (no re-hashing)."""
        return cls.from_tag(parse_tag(text))

    def __str__(self) -> str:
        return self.display
