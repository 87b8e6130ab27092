"""
Staged transfer of a file into a cache root.

The copy is attempted through an ordered list of strategies and confirmed
after each attempt by enumerating the destination directory:

  - powershell (windows): a UTF-8 BOM ``.ps1`` with ``-LiteralPath`` directives,
    run by an interpreter that handles Unicode paths regardless of locale
  - robocopy (windows): single-file mirror through a different code path
  - raw (any platform, the only one on posix): whole-file byte copy

A zero exit status is not treated as success on its own; only the directory
listing is.
"""
from __future__ import annotations

import logging
import ntpath
import os
import subprocess
from typing import Callable, List, NamedTuple, Optional

from synicons.core import index
from synicons.core.errors import CopyError
from synicons.utils.paths import (
    WINDOWS,
    CacheRoot,
    detect_platform,
    join,
    normalize,
    staging_dir,
    strip_ext,
    with_trailing_sep,
)

logger = logging.getLogger(__name__)

UTF8_BOM = b"\xef\xbb\xbf"
ROBOCOPY_FLAGS = ["/NFL", "/NDL", "/NJH", "/NJS", "/NC", "/NS", "/NP", "/R:1", "/W:1"]
# robocopy: 0-7 mean copied/skipped/extra files, 8 and above are failures
ROBOCOPY_FAILURE = 8


class Strategy(NamedTuple):
    name: str
    run: Callable[[str, str, str], bool]


def _ps_quote(value: str) -> str:
    return "'" + value.replace("'", "''") + "'"


def powershell_script(source: str, dest_dir: str, dest: str) -> bytes:
    lines = [
        f"New-Item -ItemType Directory -Force -LiteralPath {_ps_quote(dest_dir)} | Out-Null",
        f"Copy-Item -LiteralPath {_ps_quote(source)} -Destination {_ps_quote(dest)} -Force",
    ]
    return UTF8_BOM + "\r\n".join(lines).encode("utf-8") + b"\r\n"


def raw_copy(source: str, dest_dir: str, dest_filename: str) -> bool:
    with open(source, "rb") as f_in:
        data = f_in.read()
    os.makedirs(dest_dir, exist_ok=True)
    # the final name only appears once every byte is on disk
    partial = os.path.join(dest_dir, f".{dest_filename}.part")
    try:
        with open(partial, "wb") as f_out:
            f_out.write(data)
        os.replace(partial, os.path.join(dest_dir, dest_filename))
    finally:
        if os.path.exists(partial):
            os.remove(partial)
    return True


def _discard(path: str) -> None:
    try:
        if os.path.isfile(path):
            os.remove(path)
    except OSError as exc:
        logger.warning("Could not remove incomplete copy %s: %s", path, exc)


class StagedTransfer:
    def __init__(
        self,
        platform: Optional[str] = None,
        lister: index.Lister = index.list_directory,
        staging: Optional[str] = None,
        keep_staging: bool = False,
        powershell: str = "powershell",
        robocopy: str = "robocopy",
    ) -> None:
        self.platform = platform or detect_platform()
        self.lister = lister
        self.staging = staging or staging_dir()
        self.keep_staging = keep_staging
        self.powershell = powershell
        self.robocopy = robocopy

    def strategies(self) -> List[Strategy]:
        if self.platform == WINDOWS:
            return [
                Strategy("powershell", self._powershell_copy),
                Strategy("robocopy", self._robocopy_copy),
                Strategy("raw", raw_copy),
            ]
        return [Strategy("raw", raw_copy)]

    def transfer(self, source: str, root: CacheRoot, dest_filename: str) -> str:
        """Copy ``source`` into ``root`` as ``dest_filename``; return the cache-relative path.

        Raises CopyError when no strategy leaves the destination visible in
        the directory listing.
        """
        rel_path = index.relative_path(root, dest_filename)
        dest = join(root.path, dest_filename, self.platform)
        if index.exists(root.path, dest_filename, self.lister):
            logger.info("Already exists, skip copy: %s", dest)
            return rel_path

        stage = ""
        reason: Optional[str] = None
        for strategy in self.strategies():
            stage = strategy.name
            logger.debug("Copy try (%s): src=%s -> dest=%s", stage, source, dest)
            try:
                ok = strategy.run(source, root.path, dest_filename)
                reason = None if ok else f"{stage} reported failure"
            except (OSError, subprocess.SubprocessError) as exc:
                # absent before this stage, so anything there now is partial
                _discard(os.path.join(root.path, dest_filename))
                logger.warning("Copy stage %s failed: %s -> %s reason=%s", stage, source, dest, exc)
                reason = str(exc)
                continue
            if index.exists(root.path, dest_filename, self.lister):
                logger.info("Copy succeeded (%s): %s", stage, dest)
                return rel_path
            reason = reason or "destination not listed after copy"
            logger.warning("Copy stage %s failed: %s -> %s reason=%s", stage, source, dest, reason)

        raise CopyError(source, dest, stage, reason)

    def _script_path(self, dest_filename: str) -> str:
        os.makedirs(self.staging, exist_ok=True)
        return os.path.join(self.staging, f"copy_{strip_ext(dest_filename)}.ps1")

    def _powershell_copy(self, source: str, dest_dir: str, dest_filename: str) -> bool:
        script = self._script_path(dest_filename)
        with open(script, "wb") as f:
            f.write(
                powershell_script(
                    normalize(source, WINDOWS),
                    with_trailing_sep(dest_dir, WINDOWS),
                    join(dest_dir, dest_filename, WINDOWS),
                )
            )
        try:
            proc = subprocess.run(
                [self.powershell, "-NoProfile", "-ExecutionPolicy", "Bypass", "-File", script],
                capture_output=True,
            )
        finally:
            if not self.keep_staging and os.path.exists(script):
                os.remove(script)
        if proc.returncode != 0:
            logger.debug("powershell exited %s: %s", proc.returncode, proc.stderr)
        return proc.returncode == 0

    def _robocopy_copy(self, source: str, dest_dir: str, dest_filename: str) -> bool:
        src_dir, file_name = ntpath.split(normalize(source, WINDOWS))
        proc = subprocess.run(
            [self.robocopy, src_dir, normalize(dest_dir, WINDOWS), file_name, *ROBOCOPY_FLAGS],
            capture_output=True,
        )
        if proc.returncode >= ROBOCOPY_FAILURE:
            logger.debug("robocopy exited %s: %s", proc.returncode, proc.stdout)
            return False
        if file_name.lower() != dest_filename.lower():
            copied = os.path.join(dest_dir, file_name)
            try:
                os.replace(copied, os.path.join(dest_dir, dest_filename))
            except OSError:
                _discard(copied)
                raise
        return True


def transfer(source: str, root: CacheRoot, dest_filename: str, **options) -> str:
    return StagedTransfer(**options).transfer(source, root, dest_filename)
