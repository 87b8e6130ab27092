"""
Preview resolver for character-setting folders.

No rendering happens here: each folder is expected to carry a preview image.
The image is copied once into the cache root under a key derived from the
folder name and path; later runs find it through the cache index.
"""
from __future__ import annotations

import logging
import os
from typing import List, Optional, Tuple

from synicons.core import index
from synicons.core.errors import CopyError
from synicons.core.keys import Item
from synicons.core.render import probe_image
from synicons.core.transfer import StagedTransfer
from synicons.utils.paths import CacheRoot, get_ext

logger = logging.getLogger(__name__)

PREVIEW_DIR = "preview"


def preview_candidates(name: str) -> List[str]:
    lowered = (name or "").lower()
    names = []
    for base in (f"{lowered}_preview", lowered):
        for ext in index.IMAGE_EXTS:
            names.append(f"{base}.{ext}")
    return names


def _is_image(filename: str) -> bool:
    return get_ext(filename) in index.IMAGE_EXTS


def list_character_folders(
    root: str,
    marker: Optional[str] = None,
    lister: index.Lister = index.list_directory,
) -> List[Tuple[str, str]]:
    """Return ``(name, path)`` pairs for the character folders under ``root``, sorted by name."""
    folders = []
    for entry in index.entries(root, lister):
        if entry.startswith(".") or "[" in entry or "]" in entry:
            continue
        if marker and marker not in entry:
            continue
        path = os.path.join(root, entry)
        if os.path.isdir(path):
            folders.append((entry, path))
    folders.sort(key=lambda pair: pair[0])
    return folders


class PreviewResolver:
    def __init__(
        self,
        transfer: StagedTransfer,
        preview_dir: str = PREVIEW_DIR,
    ) -> None:
        self.transfer = transfer
        self.preview_dir = preview_dir

    @property
    def lister(self) -> index.Lister:
        return self.transfer.lister

    def find_preview(self, folder: str, name: str) -> Optional[str]:
        preview_dir = os.path.join(folder, self.preview_dir)
        targets = preview_candidates(name)

        fallback = None
        for directory in (preview_dir, folder):
            entries = list(index.entries(directory, self.lister))
            by_name = {entry.lower(): entry for entry in entries}
            for target in targets:
                if target in by_name:
                    return os.path.join(directory, by_name[target])
            if directory == preview_dir and fallback is None:
                fallback = next(
                    (os.path.join(directory, entry) for entry in entries if _is_image(entry)),
                    None,
                )
        return fallback

    def resolve(self, item: Item, root: CacheRoot) -> Optional[str]:
        folder = str(item.locator)
        key = item.key()

        existing = index.lookup(root.path, key, self.lister)
        if existing:
            rel_path = index.relative_path(root, existing)
            logger.info("Cache hit: %s -> %s", item.display_name, rel_path)
            return rel_path

        source = self.find_preview(folder, item.display_name)
        if not source:
            logger.info("No preview found for %s in %s", item.display_name, folder)
            return None

        filename = f"{key}.{get_ext(source)}"
        try:
            rel_path = self.transfer.transfer(source, root, filename)
        except CopyError as exc:
            logger.error("%s", exc)
            return None
        cached = os.path.join(root.path, filename)
        if not probe_image(cached):
            logger.warning("Cached preview does not load as an image: %s", cached)
        return rel_path
