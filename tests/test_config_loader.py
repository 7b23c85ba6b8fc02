from scriptrunner.config_loader import DEFAULT_CONFIG, deep_merge, get_config_dir, load_config


def test_config_dir_follows_environment(config_dir):
    assert get_config_dir() == config_dir


def test_missing_file_gives_defaults(config_dir):
    assert load_config() == DEFAULT_CONFIG


def test_user_values_are_merged_over_defaults(config_dir):
    config_dir.mkdir(parents=True)
    (config_dir / "config.toml").write_text('[menu]\nrecent_limit = 3\n\n[runner]\npackage_manager = "pnpm"\n')

    config = load_config()

    assert config["menu"]["recent_limit"] == 3
    assert config["runner"]["package_manager"] == "pnpm"
    assert config["runner"]["clipboard_command"] == ""
    assert config["logs"]["view_lines"] == 30


def test_invalid_toml_falls_back_to_defaults(tmp_path):
    (tmp_path / "config.toml").write_text("[menu\nrecent_limit = \n")
    assert load_config(tmp_path) == DEFAULT_CONFIG


def test_deep_merge_does_not_mutate_inputs():
    base = {"a": {"b": 1, "c": 2}}
    merged = deep_merge(base, {"a": {"c": 3}, "d": 4})
    assert merged == {"a": {"b": 1, "c": 3}, "d": 4}
    assert base == {"a": {"b": 1, "c": 2}}
