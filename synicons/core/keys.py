"""
Cache key derivation.

Keys are ``<slug>_<hash>``: a readable slug of the display name plus an
8-digit djb2 hash of ``"<context>|<name>"``. Two items with the same name in
different folders (or layers) get different keys, and the result is always
``[a-z0-9_]+`` so it can be used as a filename and embedded unescaped in a
single-quoted shell string.
"""
from __future__ import annotations

import re
import secrets
import string
from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional

from synicons.utils.paths import POSIX, normalize

PLACEHOLDER = "item"
SUFFIX_LENGTH = 10

_NON_ALNUM = re.compile(r"[^a-z0-9]+")
_SUFFIX_CHARS = string.digits + string.ascii_uppercase + string.ascii_lowercase


def slugify(name: str) -> str:
    slug = _NON_ALNUM.sub("_", (name or "").lower()).strip("_")
    return slug or PLACEHOLDER


def short_hash(text: str) -> str:
    h = 5381
    for byte in text.encode("utf-8"):
        h = (h * 33 + byte) % 4294967295
    return f"{h:08x}"


def derive_key(display_name: str, context_locator: str) -> str:
    name = display_name or ""
    return f"{slugify(name)}_{short_hash((context_locator or '') + '|' + name)}"


def random_suffix(length: int = SUFFIX_LENGTH) -> str:
    return "".join(secrets.choice(_SUFFIX_CHARS) for _ in range(length))


class SizeClass(Enum):
    LARGE = "lg"
    SMALL = "sm"
    CUSTOM = "user"

    @classmethod
    def from_pixels(cls, size: int) -> "SizeClass":
        if size == 64:
            return cls.LARGE
        if size == 36:
            return cls.SMALL
        return cls.CUSTOM


@dataclass(frozen=True)
class Item:
    """One thing that needs a thumbnail: a switch sub-layer or a character folder."""

    display_name: str
    locator: Any
    size_class: Optional[SizeClass] = None
    group: Optional[str] = None

    def context(self) -> str:
        locator = normalize(str(self.locator), POSIX)
        parts = [locator.rstrip("/") or locator]
        if self.group:
            parts.append(self.group)
        if self.size_class is not None:
            parts.append(self.size_class.value)
        return "|".join(parts)

    def key(self) -> str:
        return derive_key(self.display_name, self.context())
