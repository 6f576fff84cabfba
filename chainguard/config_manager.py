#!/usr/bin/env python3
"""
Configuration Manager for ChainGuard

Loads analyzer selection, context-window sizes, concurrency and reporting
preferences from a YAML file, with environment overrides.
"""

import logging
import os
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml
from rich.console import Console
from rich.table import Table

from chainguard.analyzers import ANALYZER_CLASSES
from chainguard.exceptions import ConfigError
from chainguard.models import Severity
from chainguard.registry import AnalyzerRegistry
from chainguard.report_renderer import ReportFormat

logger = logging.getLogger(__name__)

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")

ENV_LOG_LEVEL = "CHAINGUARD_LOG_LEVEL"
ENV_REPORTS_DIR = "CHAINGUARD_REPORTS_DIR"


@dataclass
class ChainGuardConfig:
    """Main configuration for ChainGuard."""

    # Analyzer selection, in run order
    enabled_analyzers: List[str] = field(default_factory=lambda: list(ANALYZER_CLASSES))
    # Per-analyzer constructor overrides, e.g. {"access_control": {"lookahead": 12}}
    windows: Dict[str, Dict[str, int]] = field(default_factory=dict)

    # Analysis settings
    parallel_analysis: bool = False
    max_workers: Optional[int] = None

    # Reporting settings
    default_format: str = "markdown"
    reports_dir: str = "./reports"
    fail_on: Optional[str] = None

    # Collaborators
    ai_timeout: float = 120.0

    log_level: str = "INFO"


class ConfigManager:
    """Manages ChainGuard configuration."""

    def __init__(self, config_file: str = "~/.chainguard/config.yaml"):
        self.config_file = Path(config_file).expanduser()
        self.console = Console()
        self.config = ChainGuardConfig()

        self.load_config()
        self.apply_env_overrides()
        self.validate()

    def load_config(self) -> None:
        """Load configuration from file."""
        if not self.config_file.exists():
            logger.debug(f"No config file at {self.config_file}, using defaults")
            return

        try:
            with open(self.config_file, 'r') as f:
                data = yaml.safe_load(f)
        except (OSError, yaml.YAMLError) as e:
            logger.warning(f"Could not load config file {self.config_file}: {e}")
            self.console.print(f"[yellow]Warning: Could not load config file: {e}[/yellow]")
            return

        if not data:
            return
        if not isinstance(data, dict):
            logger.warning(f"Config file {self.config_file} is not a mapping, using defaults")
            return

        for key, value in data.items():
            if hasattr(self.config, key):
                setattr(self.config, key, value)
            else:
                logger.debug(f"Ignoring unknown config key: {key}")

    def apply_env_overrides(self) -> None:
        log_level = os.environ.get(ENV_LOG_LEVEL)
        if log_level:
            self.config.log_level = log_level
        reports_dir = os.environ.get(ENV_REPORTS_DIR)
        if reports_dir:
            self.config.reports_dir = reports_dir

    def validate(self) -> None:
        """Reject values the rest of the system cannot use."""
        config = self.config

        unknown = [name for name in config.enabled_analyzers if name not in ANALYZER_CLASSES]
        if unknown:
            raise ConfigError(
                f"Unknown analyzer(s) {', '.join(unknown)}; "
                f"available: {', '.join(ANALYZER_CLASSES)}"
            )
        if not isinstance(config.windows, dict):
            raise ConfigError("'windows' must be a mapping of analyzer name to settings")

        config.log_level = str(config.log_level).upper()
        if config.log_level not in LOG_LEVELS:
            raise ConfigError(f"Invalid log_level: {config.log_level}")

        try:
            ReportFormat.coerce(config.default_format)
        except ValueError as e:
            raise ConfigError(str(e)) from e

        if config.fail_on is not None:
            try:
                config.fail_on = Severity.coerce(config.fail_on).value
            except ValueError as e:
                raise ConfigError(f"Invalid fail_on: {config.fail_on}") from e

        if config.max_workers is not None and (not isinstance(config.max_workers, int) or config.max_workers < 1):
            raise ConfigError(f"max_workers must be a positive integer, got {config.max_workers!r}")

        timeout = config.ai_timeout
        if isinstance(timeout, bool) or not isinstance(timeout, (int, float)) or timeout <= 0:
            raise ConfigError(f"ai_timeout must be a positive number of seconds, got {timeout!r}")

    def save_config(self) -> None:
        """Save current configuration to file."""
        self.config_file.parent.mkdir(parents=True, exist_ok=True)
        with open(self.config_file, 'w') as f:
            yaml.dump(asdict(self.config), f, default_flow_style=False, indent=2)
        self.console.print(f"[green]✓ Configuration saved to {self.config_file}[/green]")

    def analyzer_settings(self, name: str) -> Dict[str, Any]:
        """Constructor overrides for one analyzer."""
        settings = self.config.windows.get(name) or {}
        if not isinstance(settings, dict):
            raise ConfigError(f"Settings for analyzer '{name}' must be a mapping")
        return dict(settings)

    def show_config(self) -> None:
        """Display current configuration."""
        main_table = Table(title="Main Configuration")
        main_table.add_column("Setting", style="cyan")
        main_table.add_column("Value", style="green")

        main_table.add_row("Default Format", self.config.default_format)
        main_table.add_row("Reports Directory", self.config.reports_dir)
        main_table.add_row("Parallel Analysis", "Yes" if self.config.parallel_analysis else "No")
        main_table.add_row("Max Workers", str(self.config.max_workers or "auto"))
        main_table.add_row("AI Timeout", f"{self.config.ai_timeout}s")
        main_table.add_row("Fail On", self.config.fail_on or "never")
        main_table.add_row("Log Level", self.config.log_level)
        self.console.print(main_table)

        analyzers_table = Table(title="Analyzers")
        analyzers_table.add_column("Analyzer", style="cyan")
        analyzers_table.add_column("Enabled", style="green")
        analyzers_table.add_column("Settings", style="white")

        for name in ANALYZER_CLASSES:
            enabled = "Yes" if name in self.config.enabled_analyzers else "No"
            settings = self.config.windows.get(name)
            analyzers_table.add_row(name, enabled, str(settings) if settings else "defaults")
        self.console.print(analyzers_table)

        self.console.print(f"\n[bold cyan]Config File:[/bold cyan] {self.config_file}")

    def get_reports_path(self) -> Path:
        """Get reports path as Path object."""
        return Path(self.config.reports_dir).expanduser().resolve()


def build_registry(config: ConfigManager) -> AnalyzerRegistry:
    """Construct the analyzer registry described by ``config``."""
    analyzers = []
    for name in config.config.enabled_analyzers:
        cls = ANALYZER_CLASSES.get(name)
        if cls is None:
            raise ConfigError(f"Unknown analyzer: {name}")
        settings = config.analyzer_settings(name)
        try:
            analyzers.append(cls(**settings))
        except TypeError as e:
            raise ConfigError(f"Invalid settings for analyzer '{name}': {e}") from e
    logger.debug(f"Built registry with {len(analyzers)} analyzer(s)")
    return AnalyzerRegistry(analyzers)
