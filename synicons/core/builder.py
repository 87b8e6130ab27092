"""
Thumbnail builder: render to the ASCII-safe staging area, then hand the file
to the staged transfer.

Every build mints a fresh ``<key>_<random suffix>.png`` name, so two renders
of the same item never share a staging or cache filename. Older entries for
the item stay in the cache unless ``prune_previous`` is set.
"""
from __future__ import annotations

import logging
import os
from typing import Any, Callable, Optional

from synicons.core import index
from synicons.core.errors import CopyError, RenderError
from synicons.core.keys import Item, random_suffix
from synicons.core.render import probe_image
from synicons.core.transfer import StagedTransfer
from synicons.utils.paths import CacheRoot

logger = logging.getLogger(__name__)

Renderer = Callable[[Any, str, int], None]

THUMB_EXT = "png"


class ThumbnailBuilder:
    def __init__(
        self,
        render: Renderer,
        transfer: StagedTransfer,
        size: int = 64,
        prune_previous: bool = False,
    ) -> None:
        self.render = render
        self.transfer = transfer
        self.size = size
        self.prune_previous = prune_previous

    def staged_path(self, item: Item) -> str:
        os.makedirs(self.transfer.staging, exist_ok=True)
        filename = f"{item.key()}_{random_suffix()}.{THUMB_EXT}"
        return os.path.join(self.transfer.staging, filename)

    def render_staged(self, item: Item) -> str:
        """Render ``item`` into staging; raise RenderError if nothing was written."""
        staged = self.staged_path(item)
        try:
            self.render(item.locator, staged, self.size)
        except Exception as exc:
            if os.path.exists(staged):
                os.remove(staged)
            raise RenderError(item.display_name, staged, f"{type(exc).__name__}: {exc}") from exc
        # staging is ASCII-safe, so a plain file check is reliable here
        if not os.path.isfile(staged):
            raise RenderError(item.display_name, staged)
        logger.info("Generated: %s", os.path.basename(staged))
        return staged

    def build(self, item: Item, root: CacheRoot) -> Optional[str]:
        try:
            staged = self.render_staged(item)
        except RenderError as exc:
            logger.warning("%s", exc)
            return None

        filename = os.path.basename(staged)
        try:
            rel_path = self.transfer.transfer(staged, root, filename)
        except CopyError as exc:
            logger.error("%s", exc)
            return None
        finally:
            if not self.transfer.keep_staging and os.path.exists(staged):
                os.remove(staged)

        cached = os.path.join(root.path, filename)
        if not probe_image(cached):
            logger.warning("Cached thumbnail does not load as an image: %s", cached)
        if self.prune_previous:
            self.prune(item, root, keep=filename)
        return rel_path

    def prune(self, item: Item, root: CacheRoot, keep: str) -> int:
        removed = 0
        for entry in index.regenerated_entries(root.path, item.key(), self.transfer.lister):
            if entry.lower() == keep.lower():
                continue
            try:
                os.remove(os.path.join(root.path, entry))
                removed += 1
            except OSError as exc:
                logger.warning("Could not remove old thumbnail %s: %s", entry, exc)
        if removed:
            logger.info("Removed %d old thumbnail(s) for %s", removed, item.display_name)
        return removed
