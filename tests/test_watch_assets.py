from __future__ import annotations

import json
from pathlib import Path

import pytest

import watch_assets


@pytest.fixture()
def config(tmp_path: Path) -> Path:
    path = tmp_path / "tileset.toml"
    path.write_text("[tile_set]\n", encoding="utf-8")
    (tmp_path / "tiles").mkdir()
    (tmp_path / "tiles" / "water.png").write_bytes(b"png")
    return path.resolve()


@pytest.fixture()
def calls(monkeypatch):
    seen = []

    def fake_run(config_path, dry_run=False, verbose=False):
        seen.append((config_path, dry_run, verbose))
        return 0

    monkeypatch.setattr(watch_assets, "run", fake_run)
    return seen


def test_collect_inputs(config: Path):
    (config.parent / "terrains").mkdir()
    (config.parent / "terrains" / "mask.png").write_bytes(b"png")
    (config.parent / "tiles" / "notes.txt").write_text("x")
    assert watch_assets.collect_inputs(config) == [
        config,
        config.parent / "tiles" / "water.png",
        config.parent / "terrains" / "mask.png",
    ]


def test_is_source_event(config: Path):
    root = config.parent
    assert watch_assets.is_source_event(config, str(config))
    assert watch_assets.is_source_event(config, str(root / "tiles" / "rock.png"))
    assert watch_assets.is_source_event(config, str(root / "terrains" / "Grass.png"))
    assert not watch_assets.is_source_event(config, str(root / "tiles" / "rock.txt"))
    assert not watch_assets.is_source_event(config, str(root / "other" / "rock.png"))
    assert not watch_assets.is_source_event(config, str(root / watch_assets.CACHE_NAME))


def test_export_runs_once_until_inputs_change(config: Path, calls):
    assert watch_assets.export_if_changed(config)
    assert len(calls) == 1
    cache = json.loads((config.parent / watch_assets.CACHE_NAME).read_text(encoding="utf-8"))
    assert str(config) in cache["inputs"]

    assert watch_assets.export_if_changed(config)
    assert len(calls) == 1

    (config.parent / "tiles" / "rock.png").write_bytes(b"png")
    assert watch_assets.export_if_changed(config)
    assert len(calls) == 2


def test_force_ignores_cache(config: Path, calls):
    watch_assets.export_if_changed(config)
    watch_assets.export_if_changed(config, force=True)
    assert len(calls) == 2


def test_dry_run_does_not_update_cache(config: Path, calls):
    assert watch_assets.export_if_changed(config, dry_run=True)
    assert calls == [(str(config), True, False)]
    assert not (config.parent / watch_assets.CACHE_NAME).exists()


def test_failed_export_is_retried(config: Path, monkeypatch, capsys):
    monkeypatch.setattr(watch_assets, "run", lambda *args, **kwargs: 3)
    assert not watch_assets.export_if_changed(config)
    assert not (config.parent / watch_assets.CACHE_NAME).exists()
    out = capsys.readouterr().out
    assert "TILESET EXPORT START" in out and "TILESET EXPORT END" in out


def test_corrupt_cache_is_ignored(config: Path):
    (config.parent / watch_assets.CACHE_NAME).write_text("{not json", encoding="utf-8")
    assert watch_assets.load_cache(config.parent / watch_assets.CACHE_NAME) == {}
    assert watch_assets.should_run(config, {})


def test_main_once(config: Path, calls):
    assert watch_assets.main([str(config), "--once", "-v"]) == 0
    assert calls == [(str(config), False, True)]


def test_main_missing_config(tmp_path: Path, capsys):
    assert watch_assets.main([str(tmp_path / "nope.toml"), "--once"]) == 1
    assert "Config not found" in capsys.readouterr().err
