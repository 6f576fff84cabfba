"""
Tests for YAML configuration loading, validation and registry construction.
"""

import pytest
import yaml

from chainguard.analyzers import ANALYZER_CLASSES, AccessControlAnalyzer, UncheckedCallAnalyzer
from chainguard.config_manager import ChainGuardConfig, ConfigManager, build_registry
from chainguard.exceptions import ConfigError


def write_config(path, data):
    path.write_text(yaml.safe_dump(data))
    return path


class TestConfigManager:
    """Loading and validation"""

    def test_defaults_without_file(self, config_file):
        manager = ConfigManager(str(config_file))
        assert manager.config == ChainGuardConfig()
        assert manager.config.enabled_analyzers == list(ANALYZER_CLASSES)
        assert not config_file.exists()

    def test_loads_values_and_ignores_unknown_keys(self, config_file):
        write_config(config_file, {
            "parallel_analysis": True,
            "max_workers": 4,
            "default_format": "html",
            "fail_on": "high",
            "log_level": "debug",
            "no_such_setting": 1,
        })
        config = ConfigManager(str(config_file)).config

        assert config.parallel_analysis is True
        assert config.max_workers == 4
        assert config.default_format == "html"
        assert config.fail_on == "HIGH"
        assert config.log_level == "DEBUG"
        assert not hasattr(config, "no_such_setting")

    def test_env_overrides(self, config_file, monkeypatch):
        write_config(config_file, {"log_level": "INFO", "reports_dir": "./from-file"})
        monkeypatch.setenv("CHAINGUARD_LOG_LEVEL", "warning")
        monkeypatch.setenv("CHAINGUARD_REPORTS_DIR", "/tmp/chainguard-reports")

        config = ConfigManager(str(config_file)).config

        assert config.log_level == "WARNING"
        assert config.reports_dir == "/tmp/chainguard-reports"

    def test_unreadable_yaml_falls_back_to_defaults(self, config_file):
        config_file.write_text("enabled_analyzers: [reentrancy\n  broken: {")
        manager = ConfigManager(str(config_file))
        assert manager.config == ChainGuardConfig()

    @pytest.mark.parametrize("data", [
        {"enabled_analyzers": ["reentrancy", "bogus"]},
        {"log_level": "LOUD"},
        {"default_format": "pdf"},
        {"fail_on": "catastrophic"},
        {"max_workers": 0},
        {"ai_timeout": 0},
        {"ai_timeout": "soon"},
        {"windows": ["access_control"]},
    ])
    def test_invalid_values_raise(self, config_file, data):
        write_config(config_file, data)
        with pytest.raises(ConfigError):
            ConfigManager(str(config_file))

    def test_save_round_trip(self, config_file):
        manager = ConfigManager(str(config_file))
        manager.config.parallel_analysis = True
        manager.config.windows = {"access_control": {"lookahead": 12}}
        manager.save_config()

        reloaded = ConfigManager(str(config_file)).config
        assert reloaded.parallel_analysis is True
        assert reloaded.windows == {"access_control": {"lookahead": 12}}

    def test_show_config(self, config_file):
        manager = ConfigManager(str(config_file))
        with manager.console.capture() as capture:
            manager.show_config()
        output = capture.get()
        assert "Main Configuration" in output
        assert "reentrancy" in output


class TestBuildRegistry:
    """Registry construction from configuration"""

    def test_default_registry(self, config_file):
        registry = build_registry(ConfigManager(str(config_file)))
        assert [type(a) for a in registry] == list(ANALYZER_CLASSES.values())

    def test_enabled_subset_keeps_config_order(self, config_file):
        write_config(config_file, {"enabled_analyzers": ["timestamp", "reentrancy"]})
        registry = build_registry(ConfigManager(str(config_file)))
        assert registry.names == ["Timestamp Dependence Analyzer", "Reentrancy Analyzer"]

    def test_window_overrides(self, config_file):
        write_config(config_file, {
            "enabled_analyzers": ["access_control", "unchecked_call"],
            "windows": {
                "access_control": {"lookahead": 3},
                "unchecked_call": {"lookahead": 4, "lookback": 1},
            },
        })
        access, unchecked = build_registry(ConfigManager(str(config_file))).analyzers

        assert isinstance(access, AccessControlAnalyzer)
        assert access.lookahead == 3
        assert isinstance(unchecked, UncheckedCallAnalyzer)
        assert (unchecked.lookahead, unchecked.lookback) == (4, 1)

    def test_unknown_window_setting(self, config_file):
        write_config(config_file, {"windows": {"reentrancy": {"lookahead": 5}}})
        with pytest.raises(ConfigError):
            build_registry(ConfigManager(str(config_file)))
