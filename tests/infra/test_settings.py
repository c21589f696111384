"""Tests for Settings and the transcoding profile registry."""

from __future__ import annotations

import pytest

from pvrsched.infra.exceptions import ValidationError
from pvrsched.infra.settings import Settings
from pvrsched.registries.profile_registry import StaticProfileRegistry


class TestSettings:
    def test_defaults(self):
        s = Settings()
        assert s.max_video == 2
        assert s.max_entries == 512
        assert s.mangling_prefix == "_"
        assert s.exclusion_capacity == 1024
        assert (s.default_duration_hour, s.default_duration_min) == (0, 59)

    def test_environment_overrides(self, monkeypatch):
        monkeypatch.setenv("MAX_VIDEO", "4")
        monkeypatch.setenv("TRANSCODING_PROFILES", "hd, sd")
        s = Settings()
        assert s.max_video == 4
        assert s.profile_names() == ["normal", "hd", "sd"]

    def test_default_profile_is_not_duplicated(self):
        s = Settings(TRANSCODING_PROFILES="low,normal", DEFAULT_TRANSCODING_PROFILE="normal")
        assert s.profile_names() == ["low", "normal"]


class TestStaticProfileRegistry:
    def test_default_is_always_registered(self):
        registry = StaticProfileRegistry(["high"], "normal")
        assert registry.profile_exists("normal")
        assert registry.profile_exists("high")
        assert not registry.profile_exists("ultra")
        assert registry.names() == ["high", "normal"]

    def test_resolve_drops_unknown_names(self):
        registry = StaticProfileRegistry(["normal", "high"], "normal")
        assert registry.resolve(["ultra", "high"]) == ["high"]
        assert registry.resolve(["ultra"]) == ["normal"]
        assert registry.resolve(None) == ["normal"]

    def test_requires_default(self):
        with pytest.raises(ValidationError):
            StaticProfileRegistry(["high"], "")

    def test_from_settings(self):
        registry = StaticProfileRegistry.from_settings(
            Settings(TRANSCODING_PROFILES="a,b", DEFAULT_TRANSCODING_PROFILE="b")
        )
        assert registry.default_profile == "b"
        assert registry.names() == ["a", "b"]

    def test_from_yaml_mapping(self, tmp_path):
        path = tmp_path / "profiles.yaml"
        path.write_text("default: hd\nprofiles:\n  hd: {video_bitrate: 6000000}\n  sd: {video_bitrate: 2000000}\n")
        registry = StaticProfileRegistry.from_yaml(path, default_profile="normal")
        assert registry.default_profile == "hd"
        assert registry.names() == ["hd", "sd"]

    def test_from_yaml_list(self, tmp_path):
        path = tmp_path / "profiles.yaml"
        path.write_text("profiles: [mobile, tv]\n")
        registry = StaticProfileRegistry.from_yaml(path)
        assert registry.default_profile == "mobile"

    def test_from_settings_prefers_profiles_file(self, tmp_path):
        path = tmp_path / "profiles.yaml"
        path.write_text("profiles: [mobile, tv]\n")
        registry = StaticProfileRegistry.from_settings(Settings(PROFILES_FILE=str(path)))
        assert registry.default_profile == "normal"
        assert registry.names() == ["mobile", "normal", "tv"]

    @pytest.mark.parametrize("content", ["- a\n- b\n", "profiles: 3\n", "profiles: []\n"])
    def test_bad_yaml(self, tmp_path, content):
        path = tmp_path / "profiles.yaml"
        path.write_text(content)
        with pytest.raises(ValidationError):
            StaticProfileRegistry.from_yaml(path)
