import json

from scriptrunner.preferences import (
    MAX_HISTORY_ENTRIES,
    FavoritesStore,
    HistoryStore,
    atomic_write_file,
)


def test_history_add_dedups_to_front(config_dir):
    history = HistoryStore()
    first = history.add("dev", "/work/app", "app")
    history.add("build", "/work/app", "app")
    second = history.add("dev", "/work/app", "app")

    records = history.load()
    assert [r.script for r in records] == ["dev", "build"]
    assert records[0].timestamp == second.timestamp
    assert records[0].timestamp >= first.timestamp


def test_same_script_in_other_directory_is_separate(config_dir):
    history = HistoryStore()
    history.add("dev", "/work/a", "a")
    history.add("dev", "/work/b", "b")
    assert [(r.script, r.directory) for r in history.load()] == [("dev", "/work/b"), ("dev", "/work/a")]


def test_history_is_capped_and_evicts_oldest(config_dir):
    history = HistoryStore()
    for i in range(MAX_HISTORY_ENTRIES + 1):
        history.add(f"script-{i}", "/work/app", "app")

    records = history.load()
    assert len(records) == 20
    assert records[0].script == "script-20"
    assert "script-0" not in [r.script for r in records]


def test_recent_filters_by_directory_and_limits(config_dir):
    history = HistoryStore()
    for i in range(7):
        history.add(f"s{i}", "/work/app", "app")
    history.add("other", "/work/else", "else")

    recent = history.recent("/work/app")
    assert [r.script for r in recent] == ["s6", "s5", "s4", "s3", "s2"]
    assert [r.script for r in history.recent("/work/app", limit=2)] == ["s6", "s5"]
    assert history.global_recent(limit=1)[0].script == "other"


def test_history_clear(config_dir):
    history = HistoryStore()
    history.add("dev", "/work/app", "app")
    history.clear()
    assert history.load() == []


def test_history_file_uses_original_keys(config_dir):
    HistoryStore().add("dev", "/work/app", "app")
    raw = json.loads((config_dir / "history.json").read_text())
    assert set(raw[0]) == {"script", "directory", "projectName", "timestamp"}


def test_corrupt_file_loads_as_empty(config_dir):
    config_dir.mkdir(parents=True)
    (config_dir / "history.json").write_text("{not json")
    (config_dir / "favorites.json").write_text('{"script": "dev"}')
    assert HistoryStore().load() == []
    assert FavoritesStore().load() == []


def test_entries_missing_keys_load_as_empty(config_dir):
    config_dir.mkdir(parents=True)
    (config_dir / "history.json").write_text('[{"script": "dev"}]')
    assert HistoryStore().load() == []


def test_save_failure_is_swallowed(tmp_path):
    blocker = tmp_path / "not-a-dir"
    blocker.write_text("")
    history = HistoryStore(config_dir=blocker)

    history.add("dev", "/work/app", "app")

    assert history.load() == []


def test_favorite_toggle_flips_membership(config_dir):
    favorites = FavoritesStore()
    assert favorites.toggle("test", "/work/app", "app") is True
    assert favorites.is_favorite("test", "/work/app")
    assert favorites.toggle("test", "/work/app", "app") is False
    assert not favorites.is_favorite("test", "/work/app")
    assert favorites.toggle("test", "/work/app", "app") is True
    assert favorites.is_favorite("test", "/work/app")
    assert len(favorites.all()) == 1


def test_favorite_add_and_remove_report_changes(config_dir):
    favorites = FavoritesStore()
    assert favorites.add("dev", "/work/app", "app") is True
    assert favorites.add("dev", "/work/app", "app") is False
    assert favorites.remove("dev", "/work/else") is False
    assert favorites.remove("dev", "/work/app") is True
    assert favorites.all() == []


def test_favorites_for_directory(config_dir):
    favorites = FavoritesStore()
    favorites.add("dev", "/work/app", "app")
    favorites.add("lint", "/work/app", "app")
    favorites.add("dev", "/work/else", "else")

    assert [f.script for f in favorites.for_directory("/work/app")] == ["dev", "lint"]
    raw = json.loads((config_dir / "favorites.json").read_text())
    assert set(raw[0]) == {"script", "directory", "projectName", "addedAt"}


def test_atomic_write_replaces_content(tmp_path):
    target = tmp_path / "nested" / "file.json"
    atomic_write_file(target, "one")
    atomic_write_file(target, "two")
    assert target.read_text() == "two"
    assert [p.name for p in target.parent.iterdir()] == ["file.json"]
