"""
Batch driver: runs the builder or the resolver over every item and collects
the cache-relative paths the picker displays.

Per-item faults leave that item without an image (it is shown as a text
label) and the batch moves on. Only a missing or invalid cache root stops a
run, and it does so before any item is touched.
"""
from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from typing import Iterable, List, Optional

from synicons.core import index
from synicons.core.builder import Renderer, ThumbnailBuilder
from synicons.core.errors import ConfigError
from synicons.core.keys import Item, SizeClass
from synicons.core.render import clamp_size
from synicons.core.resolver import PREVIEW_DIR, PreviewResolver, list_character_folders
from synicons.core.transfer import StagedTransfer
from synicons.utils.paths import CacheRoot, detect_platform, get_ext, resolve_cache_root

logger = logging.getLogger(__name__)

CHSET_REL_DIR = "ScriptResources/BHS_SYN_CHset"
SWITCH_REL_DIR = "ScriptResources/syn_resources"


@dataclass
class BatchConfig:
    resource_root: str
    rel_dir: str = CHSET_REL_DIR
    size: int = 64
    reverse: bool = False
    platform: Optional[str] = None
    keep_staging: bool = False
    prune_previous: bool = False
    preview_dir: str = PREVIEW_DIR
    folder_marker: Optional[str] = None
    powershell: str = "powershell"
    robocopy: str = "robocopy"
    staging: Optional[str] = None

    def cache_root(self) -> CacheRoot:
        if not self.resource_root:
            raise ConfigError("You must have a resource folder to store thumbnails.")
        if not os.path.isdir(self.resource_root):
            raise ConfigError(f"Resource folder does not exist: {self.resource_root}")
        try:
            return resolve_cache_root(self.resource_root, self.rel_dir)
        except ValueError as exc:
            raise ConfigError(str(exc)) from exc

    def size_class(self) -> SizeClass:
        return SizeClass.from_pixels(self.size)

    def make_transfer(self, lister: Optional[index.Lister] = None) -> StagedTransfer:
        return StagedTransfer(
            platform=self.platform or detect_platform(),
            lister=lister or index.list_directory,
            staging=self.staging,
            keep_staging=self.keep_staging,
            powershell=self.powershell,
            robocopy=self.robocopy,
        )


@dataclass
class BatchEntry:
    display_name: str
    rel_path: Optional[str]
    source: Optional[str] = None


@dataclass
class BatchReport:
    root: CacheRoot
    entries: List[BatchEntry] = field(default_factory=list)

    @property
    def produced(self) -> int:
        return sum(1 for entry in self.entries if entry.rel_path)

    @property
    def skipped(self) -> int:
        return len(self.entries) - self.produced

    def rel_paths(self) -> List[Optional[str]]:
        return [entry.rel_path for entry in self.entries]


def _ordered(items: Iterable[Item], config: BatchConfig) -> List[Item]:
    items = list(items)
    if config.reverse:
        items.reverse()
    return items


def run_preview_batch(
    items: Iterable[Item],
    config: BatchConfig,
    lister: Optional[index.Lister] = None,
) -> BatchReport:
    root = config.cache_root()
    resolver = PreviewResolver(config.make_transfer(lister), preview_dir=config.preview_dir)
    report = BatchReport(root=root)
    logger.info("Start cache & preview build: %s", root.path)
    for item in _ordered(items, config):
        rel_path = resolver.resolve(item, root)
        report.entries.append(BatchEntry(item.display_name, rel_path, str(item.locator)))
    logger.info("Entries: %d (skipped %d)", len(report.entries), report.skipped)
    return report


def run_thumbnail_batch(
    items: Iterable[Item],
    config: BatchConfig,
    render: Renderer,
    lister: Optional[index.Lister] = None,
) -> BatchReport:
    root = config.cache_root()
    builder = ThumbnailBuilder(
        render,
        config.make_transfer(lister),
        size=clamp_size(config.size),
        prune_previous=config.prune_previous,
    )
    report = BatchReport(root=root)
    logger.info("Start thumbnail build: %s", root.path)
    for item in _ordered(items, config):
        rel_path = builder.build(item, root)
        report.entries.append(BatchEntry(item.display_name, rel_path, str(item.locator)))
    logger.info("Thumbnails: %d (skipped %d)", len(report.entries), report.skipped)
    return report


def find_thumbnails(
    items: Iterable[Item],
    config: BatchConfig,
    lister: Optional[index.Lister] = None,
) -> BatchReport:
    """Look up already rendered thumbnails without rendering anything."""
    root = config.cache_root()
    lister = lister or index.list_directory
    report = BatchReport(root=root)
    for item in _ordered(items, config):
        found = index.lookup_regenerated(root.path, item.key(), lister)
        rel_path = index.relative_path(root, found) if found else None
        if rel_path:
            logger.debug("Found icon for %s rel=%s", item.display_name, rel_path)
        report.entries.append(BatchEntry(item.display_name, rel_path, str(item.locator)))
    return report


def character_items(char_root: str, config: BatchConfig, lister: Optional[index.Lister] = None) -> List[Item]:
    folders = list_character_folders(char_root, config.folder_marker, lister or index.list_directory)
    return [Item(display_name=name, locator=path) for name, path in folders]


def switch_items(layer_dir: str, config: BatchConfig, group: Optional[str] = None) -> List[Item]:
    """Treat each image in ``layer_dir`` as one switch sub-layer to render."""
    names = sorted(entry for entry in index.list_directory(layer_dir) if get_ext(entry) in index.IMAGE_EXTS)
    size_class = config.size_class()
    return [
        Item(
            display_name=os.path.splitext(name)[0],
            locator=os.path.join(layer_dir, name),
            size_class=size_class,
            group=group,
        )
        for name in names
    ]


def clear_cache_root(root: CacheRoot) -> int:
    """Delete every file in ``root``; only ever called on explicit user request."""
    removed = 0
    for entry in index.list_directory(root.path):
        path = os.path.join(root.path, entry)
        if os.path.isfile(path):
            os.remove(path)
            removed += 1
    logger.info("Removed %d cached file(s) from %s", removed, root.path)
    return removed
