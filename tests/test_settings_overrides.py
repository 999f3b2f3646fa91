from __future__ import annotations

import pytest

from midpointfinder.config.overrides import apply_settings_overrides
from midpointfinder.config.settings import get_settings


def test_defaults_load_from_packaged_yaml():
    settings = get_settings()
    assert settings.engine.earth_radius_km == 6371.0
    assert settings.engine.odd_length_policy == "reject"
    assert settings.reflection.max_distance_km == 20_000
    assert settings.grid.cell_deg == 5.0


def test_env_overrides_are_applied(monkeypatch):
    monkeypatch.setenv("MIDPOINTFINDER_MAX_COMBINATIONS", "1234")
    monkeypatch.setenv("MIDPOINTFINDER_ODD_LENGTH_POLICY", "Truncate")
    monkeypatch.setenv("MIDPOINTFINDER_LOG_LEVEL", "debug")
    get_settings.cache_clear()
    try:
        settings = get_settings()
        assert settings.engine.max_combinations == 1234
        assert settings.engine.odd_length_policy == "truncate"
        assert settings.app.log_level == "debug"
    finally:
        get_settings.cache_clear()


def test_config_path_points_at_external_yaml(tmp_path, monkeypatch):
    path = tmp_path / "custom.yaml"
    path.write_text("engine:\n  default_top_n: 7\n", encoding="utf-8")
    monkeypatch.setenv("MIDPOINTFINDER_CONFIG_PATH", str(path))
    get_settings.cache_clear()
    try:
        settings = get_settings()
        assert settings.engine.default_top_n == 7
        # Unspecified sections fall back to model defaults.
        assert settings.reflection.antipodal_threshold_km == 10_000
    finally:
        get_settings.cache_clear()


def test_apply_settings_overrides_returns_same_object_when_none():
    settings = get_settings()
    assert apply_settings_overrides(settings, None) is settings


def test_apply_settings_overrides_can_override_allowed_knobs():
    settings = get_settings()
    out = apply_settings_overrides(settings, {"reflection": {"max_distance_km": 1234}, "engine": {"default_top_n": 3}})

    assert out.reflection.max_distance_km == 1234
    assert out.engine.default_top_n == 3
    # The shared cached settings stay untouched.
    assert settings.reflection.max_distance_km != 1234


def test_apply_settings_overrides_rejects_resource_limits():
    settings = get_settings()
    with pytest.raises(ValueError, match=r"engine\.max_combinations"):
        apply_settings_overrides(settings, {"engine": {"max_combinations": 10**12}})


def test_apply_settings_overrides_rejects_wrong_value_shapes():
    settings = get_settings()
    with pytest.raises(ValueError, match=r"settings_overrides key 'engine' must be a mapping"):
        apply_settings_overrides(settings, {"engine": 1})


def test_apply_settings_overrides_revalidates_ranges():
    settings = get_settings()
    with pytest.raises(ValueError):
        apply_settings_overrides(settings, {"grid": {"cell_deg": -1}})
