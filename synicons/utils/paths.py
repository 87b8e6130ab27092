from __future__ import annotations

import os
import tempfile
from pathlib import Path, PurePosixPath, PureWindowsPath
from typing import Mapping, NamedTuple, Optional

WINDOWS = "windows"
POSIX = "posix"

STAGING_DIR_NAME = "SynIcons"


class CacheRoot(NamedTuple):
    """Absolute cache directory plus its path under the UI resource root."""

    path: str
    rel_dir: str


def detect_platform(environ: Optional[Mapping[str, str]] = None) -> str:
    env = os.environ if environ is None else environ
    os_name = env.get("OS") or ""
    if os_name[:3].lower() == "win":
        return WINDOWS
    return POSIX


def normalize(path: Optional[str], convention: str) -> str:
    if not path:
        return ""
    if convention == WINDOWS:
        return path.replace("/", "\\")
    return path.replace("\\", "/")


def with_trailing_sep(path: str, convention: str) -> str:
    sep = "\\" if convention == WINDOWS else "/"
    path = normalize(path, convention)
    if not path.endswith(sep):
        path += sep
    return path


def join(directory: Optional[str], name: str, convention: str) -> str:
    if not directory:
        return name
    return with_trailing_sep(directory, convention) + name


def get_ext(path: str) -> str:
    name = normalize(path, POSIX).rsplit("/", 1)[-1]
    if "." not in name:
        return ""
    return name.rsplit(".", 1)[1].lower()


def strip_ext(path: str) -> str:
    head, sep, name = normalize(path, POSIX).rpartition("/")
    if "." in name:
        name = name.rsplit(".", 1)[0]
    return head + sep + name


def _reject_parent_segments(parts) -> None:
    if ".." in parts:
        raise ValueError(f"Parent path segments are not allowed: {'/'.join(parts)}")


def resolve_cache_root(resource_root: str, rel_dir: str) -> CacheRoot:
    """Place ``rel_dir`` under ``resource_root`` without letting it escape."""
    if not resource_root:
        raise ValueError("Resource root cannot be empty.")
    if not rel_dir:
        raise ValueError("Cache directory cannot be empty.")

    rel = normalize(rel_dir, POSIX).strip("/")
    if PurePosixPath(rel_dir).is_absolute() or PureWindowsPath(rel_dir).is_absolute():
        raise ValueError(f"Absolute paths are not allowed: {rel_dir}")
    parts = PurePosixPath(rel).parts
    _reject_parent_segments(parts)
    if not parts:
        raise ValueError(f"Cache directory must name a folder: {rel_dir}")
    rel = "/".join(parts)

    absolute = Path(resource_root).joinpath(*parts)
    return CacheRoot(path=os.fspath(absolute), rel_dir=rel)


def staging_dir(environ: Optional[Mapping[str, str]] = None) -> str:
    env = os.environ if environ is None else environ
    base = env.get("TEMP") or tempfile.gettempdir()
    return os.path.join(base, STAGING_DIR_NAME)
