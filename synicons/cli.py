"""
cli.py

Single entrypoint for the thumbnail cache pipeline:

  - chset  (character folders -> copied previews in BHS_SYN_CHset)
  - switch (images standing in for switch sub-layers -> rendered thumbnails)
  - clear  (delete every cached thumbnail in one cache directory)

Examples:
  python -m synicons chset --char-root "G:/공유 드라이브/캐릭터 세팅" --resource-root ~/Moho/scripts --marker 캐릭터
  python -m synicons switch --layers ./mouth --resource-root ~/Moho/scripts --doc scene01 --size 36
  python -m synicons switch --layers ./mouth --resource-root ~/Moho/scripts --doc scene01 --no-render
  python -m synicons clear --resource-root ~/Moho/scripts --rel-dir ScriptResources/syn_resources/scene01

Notes:
- Items without a preview are still listed, with "-" in place of a path.
- A missing resource root aborts the run (exit code 2) before anything is copied.
"""

from __future__ import annotations

import argparse
import logging
import os
import sys
from typing import List, Optional

from synicons.utils.paths import POSIX, WINDOWS


def configure_logging(verbose: bool = False) -> None:
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter("[%(levelname)s] %(message)s"))
    logger = logging.getLogger("synicons")
    logger.handlers[:] = [handler]
    logger.setLevel(logging.DEBUG if verbose else logging.INFO)


def _add_common(p: argparse.ArgumentParser) -> None:
    p.add_argument("--resource-root", dest="resource_root", default="", help="Folder the UI resolves image paths against")
    p.add_argument("--platform", choices=[WINDOWS, POSIX], default=None, help="Override platform detection (OS env var)")
    p.add_argument("--keep-staging", action="store_true", help="Leave staged files and copy scripts in TEMP")
    p.add_argument("--reverse", action="store_true", help="Reverse item order")
    p.add_argument("-v", "--verbose", action="store_true", help="Debug logging")


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="synicons", add_help=True)
    sub = p.add_subparsers(dest="cmd", required=True)

    # chset
    p_ch = sub.add_parser("chset", help="Cache character-folder previews")
    p_ch.add_argument("--char-root", dest="char_root", required=True, help="Folder holding the character folders")
    p_ch.add_argument("--rel-dir", dest="rel_dir", default="ScriptResources/BHS_SYN_CHset", help="Cache dir under the resource root")
    p_ch.add_argument("--marker", default=None, help="Only folders whose name contains this text")
    p_ch.add_argument("--preview-dir", dest="preview_dir", default="preview", help="Subfolder holding preview images")
    _add_common(p_ch)

    # switch
    p_sw = sub.add_parser("switch", help="Render switch thumbnails")
    p_sw.add_argument("--layers", required=True, help="Folder of images, one per switch sub-layer")
    p_sw.add_argument("--doc", default="", help="Document name (cache subfolder); defaults to the layers folder name")
    p_sw.add_argument("--group", default=None, help="Switch layer id, mixed into every item key")
    p_sw.add_argument("--size", type=int, default=64, help="Thumbnail size in px (64=lg, 36=sm, else user)")
    p_sw.add_argument("--prune", action="store_true", help="Remove older thumbnails of an item after a new render")
    p_sw.add_argument("--no-render", dest="no_render", action="store_true", help="Only list existing thumbnails")
    _add_common(p_sw)

    # clear
    p_cl = sub.add_parser("clear", help="Delete all cached thumbnails in one cache dir")
    p_cl.add_argument("--rel-dir", dest="rel_dir", required=True, help="Cache dir under the resource root")
    _add_common(p_cl)

    return p


def _print_report(report) -> None:
    for entry in report.entries:
        print(f"{entry.display_name}\t{entry.rel_path or '-'}")
    print(f"Done.\nCache: {report.root.path}\nEntries: {len(report.entries)}\nSkipped: {report.skipped}")


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging(args.verbose)

    # Import lazily so this file can show help even if Pillow is missing.
    from synicons.core import batch
    from synicons.core.errors import ConfigError
    from synicons.core.render import render_image

    config = batch.BatchConfig(
        resource_root=args.resource_root,
        platform=args.platform,
        keep_staging=args.keep_staging,
        reverse=args.reverse,
    )

    try:
        if args.cmd == "chset":
            config.rel_dir = args.rel_dir
            config.folder_marker = args.marker
            config.preview_dir = args.preview_dir
            config.cache_root()
            items = batch.character_items(args.char_root, config)
            _print_report(batch.run_preview_batch(items, config))
            return 0

        if args.cmd == "switch":
            doc = args.doc or os.path.basename(os.path.abspath(args.layers)) or "Untitled"
            if doc in (".", ".."):
                raise ConfigError(f"Invalid document name: {doc}")
            config.rel_dir = f"{batch.SWITCH_REL_DIR}/{doc}"
            config.size = args.size
            config.prune_previous = args.prune
            config.cache_root()
            items = batch.switch_items(args.layers, config, group=args.group)
            if args.no_render:
                _print_report(batch.find_thumbnails(items, config))
            else:
                _print_report(batch.run_thumbnail_batch(items, config, render_image))
            return 0

        if args.cmd == "clear":
            config.rel_dir = args.rel_dir
            removed = batch.clear_cache_root(config.cache_root())
            print(f"Removed {removed} file(s).")
            return 0
    except ConfigError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 2

    return 0


if __name__ == "__main__":
    raise SystemExit(main())
