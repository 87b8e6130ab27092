import os
import shutil
import sys
import tempfile
import uuid
from pathlib import Path

import pytest
from PIL import Image

# Ensure repo root is on sys.path for test discovery
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from synicons.utils.paths import CacheRoot  # noqa: E402

# Keep staging (TEMP) and pytest temp under one throwaway run directory.
_REPO_ROOT = Path(__file__).resolve().parents[1]
_TMP_ROOT = _REPO_ROOT / ".pytest_tmp_work"
_TMP_ROOT.mkdir(parents=True, exist_ok=True)
_RUN_ROOT = _TMP_ROOT / f"run_{uuid.uuid4().hex}"
_RUN_ROOT.mkdir(parents=True, exist_ok=True)
os.environ["TMPDIR"] = str(_RUN_ROOT)
os.environ["TEMP"] = str(_RUN_ROOT)
os.environ["TMP"] = str(_RUN_ROOT)
tempfile.tempdir = str(_RUN_ROOT)


@pytest.fixture
def tmp_path() -> Path:
    base = _RUN_ROOT / "tmp"
    base.mkdir(parents=True, exist_ok=True)
    path = base / f"case_{uuid.uuid4().hex}"
    path.mkdir()
    try:
        yield path
    finally:
        shutil.rmtree(path, ignore_errors=True)


@pytest.fixture
def staging(tmp_path: Path) -> str:
    return os.fspath(tmp_path / "staging")


@pytest.fixture
def cache_root(tmp_path: Path) -> CacheRoot:
    return CacheRoot(path=os.fspath(tmp_path / "cache"), rel_dir="BHS_SYN_CHset")


@pytest.fixture
def make_image():
    def _make(path: Path, color: str = "red", size=(100, 80)) -> Path:
        path.parent.mkdir(parents=True, exist_ok=True)
        Image.new("RGB", size, color=color).save(path)
        return path

    return _make
