from __future__ import annotations

import pytest

from webtest_engine.config_loader import DEFAULT_SETTINGS, load_settings, merge_settings


def test_bundled_settings_cover_every_section():
    settings = load_settings()
    for section in DEFAULT_SETTINGS:
        assert section in settings
    assert settings["scheduler"]["max_parallel"] == 5
    assert settings["interrupts"]["trigger_actions"] == ["click"]


def test_file_values_override_defaults(tmp_path):
    path = tmp_path / "settings.yaml"
    path.write_text("scheduler:\n  max_parallel: 2\nbrowser:\n  headless: false\n", encoding="utf-8")

    settings = load_settings(path)

    assert settings["scheduler"] == {"max_parallel": 2, "fail_fast": False}
    assert settings["browser"]["headless"] is False
    assert settings["browser"]["launch_args"] == DEFAULT_SETTINGS["browser"]["launch_args"]


def test_missing_explicit_file_raises(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_settings(tmp_path / "absent.yaml")


def test_non_mapping_file_raises(tmp_path):
    path = tmp_path / "list.yaml"
    path.write_text("- a\n- b\n", encoding="utf-8")
    with pytest.raises(ValueError):
        load_settings(path)


def test_merge_does_not_mutate_base():
    base = {"a": {"b": 1, "c": 2}}
    merged = merge_settings(base, {"a": {"b": 9}})
    assert merged == {"a": {"b": 9, "c": 2}}
    assert base == {"a": {"b": 1, "c": 2}}
