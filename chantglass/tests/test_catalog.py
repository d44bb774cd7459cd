"""Tests for pattern catalog loading, saving and picking."""

import json
import random
from pathlib import Path

import pytest

from ..puzzle import (
    DEFAULT_CATALOG_PATH,
    PatternCatalog,
    load_default_catalog,
)
from .conftest import make_pattern


def test_default_catalog_is_valid():
    catalog = load_default_catalog()
    assert catalog.validate() == (True, "")
    assert len(catalog) >= 1
    assert catalog.source_path == DEFAULT_CATALOG_PATH
    assert set(catalog.videos) == {"success", "failure"}


def test_save_and_load(tmp_path: Path):
    catalog = PatternCatalog(
        name="Saved",
        patterns=[make_pattern(name="one"), make_pattern(("X", "Y"), 0.0, 2.5, name="two")],
        videos={"success": "clips/win.mp4"},
    )
    path = tmp_path / "nested" / "catalog.json"
    catalog.save(path)

    loaded = PatternCatalog.load(path)
    assert loaded == catalog
    assert loaded.source_path == path
    assert loaded.resolve_video("success") == path.parent / "clips" / "win.mp4"
    assert loaded.resolve_video("failure") is None


def test_save_rejects_invalid(tmp_path: Path):
    with pytest.raises(ValueError):
        PatternCatalog(name="", patterns=[make_pattern()]).save(tmp_path / "x.json")


def test_load_missing_file(tmp_path: Path):
    with pytest.raises(FileNotFoundError):
        PatternCatalog.load(tmp_path / "missing.json")


def test_load_invalid_pattern_reports_index(tmp_path: Path):
    path = tmp_path / "bad.json"
    path.write_text(json.dumps({
        "name": "Bad",
        "patterns": [
            {"name": "fine", "segments": [{"number": 1, "text": "A"}], "cue": {"start": 0, "end": 1}},
            {"name": "broken", "segments": [{"number": 2, "text": "B"}], "cue": {"start": 0, "end": 1}},
        ],
    }), encoding="utf-8")
    with pytest.raises(ValueError, match="Pattern 1"):
        PatternCatalog.load(path)


def test_validate_empty_catalog():
    ok, msg = PatternCatalog(name="Empty").validate()
    assert not ok and "at least one" in msg


def test_pick_uses_rng_and_rejects_empty():
    patterns = [make_pattern(name=f"p{i}") for i in range(4)]
    catalog = PatternCatalog(name="Many", patterns=patterns)
    seen = {catalog.pick(random.Random(seed)).name for seed in range(200)}
    assert seen == {"p0", "p1", "p2", "p3"}

    with pytest.raises(ValueError):
        PatternCatalog(name="Empty").pick()


def test_absolute_video_path_is_kept(tmp_path: Path):
    target = tmp_path / "abs.mp4"
    catalog = PatternCatalog(name="Abs", patterns=[make_pattern()], videos={"success": str(target)},
                             source_path=Path("/somewhere/else.json"))
    assert catalog.resolve_video("success") == target
