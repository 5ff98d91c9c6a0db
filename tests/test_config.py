"""Tests for analyzer configuration."""

import pytest

from codescope import constants
from codescope.config import AnalyzerConfig, ComplexityThresholds
from codescope.core.exceptions import InvalidConfigError


class TestAnalyzerConfig:
    """Defaults, aliases and validation."""

    def test_defaults(self):
        """Defaults come from the constants module."""
        config = AnalyzerConfig()
        assert config.max_workers == constants.DEFAULT_MAX_WORKERS
        assert config.snippet_length == constants.SNIPPET_LENGTH
        assert config.extensions[".tsx"] == "tsx"
        assert "node_modules" in config.excluded_dirs
        assert config.use_tree_sitter

    def test_defaults_are_independent_copies(self):
        """Mutable defaults are not shared between instances."""
        first = AnalyzerConfig()
        first.path_aliases["@lib/"] = "lib/"
        assert "@lib/" not in AnalyzerConfig().path_aliases
        assert "@lib/" not in constants.DEFAULT_PATH_ALIASES

    def test_from_mapping_accepts_both_spellings(self):
        """camelCase and snake_case keys are both accepted."""
        camel = AnalyzerConfig.from_mapping({"maxWorkers": 3, "smells": {"maxParameters": 2}})
        snake = AnalyzerConfig.from_mapping({"max_workers": 3, "smells": {"max_parameters": 2}})
        assert camel == snake
        assert camel.smells.max_parameters == 2

    def test_from_mapping_none(self):
        """No mapping means the defaults."""
        assert AnalyzerConfig.from_mapping(None) == AnalyzerConfig()

    @pytest.mark.parametrize(
        "data",
        [
            {"maxWorkers": 0},
            {"timeBudgetSeconds": -1},
            {"snippetLength": 0},
            {"unknownSetting": True},
            {"complexity": {"low": 10, "medium": 5, "high": 20}},
            {"maintainability": {"documentationLow": 70}},
        ],
    )
    def test_from_mapping_rejects_invalid(self, data):
        """Invalid values and unknown keys raise InvalidConfigError."""
        with pytest.raises(InvalidConfigError, match="Invalid analyzer configuration"):
            AnalyzerConfig.from_mapping(data)

    def test_time_budget_can_be_disabled(self):
        assert AnalyzerConfig(time_budget_seconds=None).time_budget_seconds is None

    def test_complexity_order(self):
        """Thresholds must be strictly increasing."""
        with pytest.raises(ValueError):
            ComplexityThresholds(low=5, medium=5, high=20)
