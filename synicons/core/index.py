"""
Cache index: existence checks by directory enumeration.

Opening a file to see whether it exists gives false negatives on virtual
and network drives, so every check here goes through a directory listing
and a case-insensitive name comparison. A directory that cannot be listed
is reported as empty.
"""
from __future__ import annotations

import logging
import os
import re
from typing import Callable, Iterable, List, Optional

from synicons.core.keys import SUFFIX_LENGTH
from synicons.utils.paths import CacheRoot, strip_ext

logger = logging.getLogger(__name__)

Lister = Callable[[str], Iterable[str]]

IMAGE_EXTS = ("png", "jpg", "jpeg")


def list_directory(path: str) -> List[str]:
    try:
        return os.listdir(path)
    except OSError as exc:
        logger.debug("Listing unavailable for %s: %s", path, exc)
        return []


def entries(root_abs: str, lister: Lister) -> Iterable[str]:
    try:
        return lister(root_abs) or []
    except OSError as exc:
        logger.debug("Listing unavailable for %s: %s", root_abs, exc)
        return []


def exists(root_abs: str, filename: str, lister: Lister = list_directory) -> bool:
    wanted = filename.lower()
    return any(entry.lower() == wanted for entry in entries(root_abs, lister))


def lookup(root_abs: str, key: str, lister: Lister = list_directory) -> Optional[str]:
    prefix = key.lower() + "."
    for entry in entries(root_abs, lister):
        if entry.lower().startswith(prefix):
            return entry
    return None


def _regenerated_pattern(key: str) -> "re.Pattern[str]":
    exts = "|".join(IMAGE_EXTS)
    return re.compile(
        rf"^{re.escape(key.lower())}_[0-9a-z]{{{SUFFIX_LENGTH}}}\.(?:{exts})$",
    )


def lookup_regenerated(root_abs: str, key: str, lister: Lister = list_directory) -> Optional[str]:
    """First ``<key>_<suffix>.<ext>`` entry, as written by the thumbnail builder."""
    pattern = _regenerated_pattern(key)
    for entry in entries(root_abs, lister):
        if pattern.match(entry.lower()):
            return entry
    return None


def regenerated_entries(root_abs: str, key: str, lister: Lister = list_directory) -> List[str]:
    pattern = _regenerated_pattern(key)
    return [entry for entry in entries(root_abs, lister) if pattern.match(entry.lower())]


def relative_path(root: CacheRoot, filename: str) -> str:
    return strip_ext(f"{root.rel_dir}/{filename}" if root.rel_dir else filename)
