import os
from pathlib import Path

import pytest

from synicons.core import batch
from synicons.core import transfer as transfer_mod
from synicons.core.batch import BatchConfig
from synicons.core.errors import ConfigError
from synicons.core.keys import Item, SizeClass
from synicons.core.render import render_image
from synicons.utils.paths import POSIX


def _config(tmp_path: Path, staging: str, **kwargs) -> BatchConfig:
    resources = tmp_path / "resources"
    resources.mkdir(exist_ok=True)
    return BatchConfig(resource_root=os.fspath(resources), platform=POSIX, staging=staging, **kwargs)


def test_end_to_end_three_character_folders(tmp_path, staging, make_image):
    chars = tmp_path / "chars"
    make_image(chars / "Alpha" / "preview" / "alpha_preview.png")
    make_image(chars / "Beta" / "preview" / "whatever.jpg")
    (chars / "Gamma").mkdir(parents=True)
    config = _config(tmp_path, staging)

    items = batch.character_items(os.fspath(chars), config)
    report = batch.run_preview_batch(items, config)

    assert [e.display_name for e in report.entries] == ["Alpha", "Beta", "Gamma"]
    rel = report.rel_paths()
    assert rel[0] and rel[0].startswith("ScriptResources/BHS_SYN_CHset/alpha_")
    assert rel[1] and rel[1].startswith("ScriptResources/BHS_SYN_CHset/beta_")
    assert rel[2] is None
    assert report.produced == 2
    assert report.skipped == 1
    cached = sorted(os.listdir(report.root.path))
    assert [os.path.splitext(n)[1] for n in cached] == [".png", ".jpg"]


def test_preview_batch_reverse_order(tmp_path, staging, make_image):
    chars = tmp_path / "chars"
    make_image(chars / "A" / "a.png")
    make_image(chars / "B" / "b.png")
    config = _config(tmp_path, staging, reverse=True)
    report = batch.run_preview_batch(batch.character_items(os.fspath(chars), config), config)
    assert [e.display_name for e in report.entries] == ["B", "A"]


def test_copy_failure_skips_item_but_batch_completes(tmp_path, staging, make_image, monkeypatch):
    chars = tmp_path / "chars"
    make_image(chars / "A" / "a.png")
    make_image(chars / "B" / "b.png")
    config = _config(tmp_path, staging)
    real_copy = transfer_mod.raw_copy

    def flaky(source, dest_dir, dest_filename):
        if dest_filename.startswith("a_"):
            raise PermissionError(dest_filename)
        return real_copy(source, dest_dir, dest_filename)

    monkeypatch.setattr(transfer_mod, "raw_copy", flaky)
    report = batch.run_preview_batch(batch.character_items(os.fspath(chars), config), config)

    assert len(report.entries) == 2
    assert report.entries[0].rel_path is None
    assert report.entries[1].rel_path is not None
    assert report.skipped == 1


def test_missing_resource_root_aborts_before_items(tmp_path, staging):
    touched = []

    class Spy:
        def __iter__(self):
            touched.append(True)
            return iter([])

    with pytest.raises(ConfigError):
        batch.run_preview_batch(Spy(), BatchConfig(resource_root="", staging=staging))
    with pytest.raises(ConfigError):
        batch.run_thumbnail_batch(
            Spy(), BatchConfig(resource_root=os.fspath(tmp_path / "nope"), staging=staging), render_image
        )
    assert touched == []


def test_invalid_rel_dir_is_config_error(tmp_path, staging):
    config = _config(tmp_path, staging, rel_dir="../outside")
    with pytest.raises(ConfigError):
        config.cache_root()


def test_thumbnail_batch_and_lookup(tmp_path, staging, make_image):
    layers = tmp_path / "mouth"
    make_image(layers / "open.png")
    make_image(layers / "closed.jpg")
    (layers / "readme.txt").write_text("x", encoding="utf-8")
    config = _config(tmp_path, staging, rel_dir="ScriptResources/syn_resources/scene", size=36)

    items = batch.switch_items(os.fspath(layers), config, group="layer-uuid")
    assert [i.display_name for i in items] == ["closed", "open"]
    assert all(i.size_class is SizeClass.SMALL for i in items)

    report = batch.run_thumbnail_batch(items, config, render_image)
    assert report.produced == 2

    found = batch.find_thumbnails(items, config)
    assert found.rel_paths() == report.rel_paths()


def test_thumbnail_batch_counts_render_failures(tmp_path, staging):
    config = _config(tmp_path, staging)

    def render(source, target, size):
        if source == "bad":
            return
        Path(target).write_bytes(b"png")

    items = [Item("ok", "good"), Item("bad", "bad"), Item("ok2", "good2")]
    report = batch.run_thumbnail_batch(items, config, render)
    assert [e.rel_path is not None for e in report.entries] == [True, False, True]


def test_find_thumbnails_without_cache(tmp_path, staging):
    config = _config(tmp_path, staging)
    report = batch.find_thumbnails([Item("a", "x")], config)
    assert report.rel_paths() == [None]


def test_clear_cache_root_removes_files_only(tmp_path, staging):
    config = _config(tmp_path, staging)
    root = config.cache_root()
    os.makedirs(os.path.join(root.path, "sub"))
    for name in ["a_1.png", "b_2.jpg"]:
        Path(root.path, name).write_bytes(b"x")
    assert batch.clear_cache_root(root) == 2
    assert os.listdir(root.path) == ["sub"]


def test_thumbnail_batch_survives_renderer_crash(tmp_path, staging):
    config = _config(tmp_path, staging)

    def render(source, target, size):
        if source == "second":
            raise RuntimeError("host render crashed")
        Path(target).write_bytes(b"png")

    items = [Item("one", "first"), Item("two", "second"), Item("three", "third")]
    report = batch.run_thumbnail_batch(items, config, render)
    assert [e.display_name for e in report.entries] == ["one", "two", "three"]
    assert report.rel_paths()[1] is None
    assert report.produced == 2
    assert report.skipped == 1
