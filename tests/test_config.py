"""
Tests for analysis configuration loading.
"""

import pytest

from react_annotation.core.config import (
    DEFAULT_DEPTH_BOUND,
    DEFAULT_RENDERABLE_TYPES,
    POLICY_SINGLE_HOP,
    AnalysisConfig,
    get_analysis_config,
    load_analysis_config,
    reset_analysis_config,
)
from react_annotation.core.exceptions import ConfigurationError


class TestAnalysisConfig:
    def test_defaults(self):
        config = AnalysisConfig()

        assert config.forwarding_depth_bound == DEFAULT_DEPTH_BOUND == 8
        assert config.component_tag == "component"
        assert config.renders_tag == "renders"
        assert config.transitive
        assert "React.ReactNode" in config.renderable_types

    def test_depth_bound_is_clamped(self):
        assert AnalysisConfig(forwarding_depth_bound=0).forwarding_depth_bound == 1

    def test_tag_names_are_normalized(self):
        config = AnalysisConfig(component_tag=" @widget ", renders_tag="@composes")

        assert config.component_tag == "widget"
        assert config.renders_tag == "composes"

    def test_identical_tags_rejected(self):
        with pytest.raises(ConfigurationError) as exc_info:
            AnalysisConfig(component_tag="renders")

        assert exc_info.value.config_key == "renders_tag"

    def test_empty_tag_rejected(self):
        with pytest.raises(ConfigurationError):
            AnalysisConfig(renders_tag="  ")

    def test_unknown_policy_rejected(self):
        with pytest.raises(ConfigurationError) as exc_info:
            AnalysisConfig(forwarding_policy="optimistic")

        assert exc_info.value.config_value == "optimistic"


class TestLoadAnalysisConfig:
    def test_defaults_without_environment(self):
        config = load_analysis_config()

        assert config.forwarding_depth_bound == 8
        assert config.renderable_types == DEFAULT_RENDERABLE_TYPES

    def test_environment_overrides(self, monkeypatch):
        monkeypatch.setenv("REACT_ANNOTATION_DEPTH_BOUND", "3")
        monkeypatch.setenv("REACT_ANNOTATION_FORWARDING_POLICY", POLICY_SINGLE_HOP)
        monkeypatch.setenv("REACT_ANNOTATION_COMPONENT_TAG", "widget")
        monkeypatch.setenv("REACT_ANNOTATION_RENDERABLE_TYPES", "Slot, ui.Content ,")

        config = load_analysis_config()

        assert config.forwarding_depth_bound == 3
        assert not config.transitive
        assert config.component_tag == "widget"
        assert config.renderable_types == frozenset({"Slot", "ui.Content"})

    def test_invalid_depth_bound(self, monkeypatch):
        monkeypatch.setenv("REACT_ANNOTATION_DEPTH_BOUND", "deep")

        with pytest.raises(ConfigurationError) as exc_info:
            load_analysis_config()

        assert exc_info.value.config_key == "REACT_ANNOTATION_DEPTH_BOUND"


class TestGlobalConfig:
    def test_singleton_and_reset(self, monkeypatch):
        first = get_analysis_config()
        assert get_analysis_config() is first

        monkeypatch.setenv("REACT_ANNOTATION_DEPTH_BOUND", "5")
        assert get_analysis_config().forwarding_depth_bound == 8

        reset_analysis_config()
        assert get_analysis_config().forwarding_depth_bound == 5
