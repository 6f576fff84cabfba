#!/usr/bin/env python3
"""
ChainGuard command-line interface.

Runs the static analysis core over a local contract file, prints a summary
and writes the rendered report.
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.table import Table

from chainguard import __version__
from chainguard.audit_service import AuditService
from chainguard.config_manager import ConfigManager
from chainguard.exceptions import ChainGuardError
from chainguard.models import AuditReport, Severity
from chainguard.report_renderer import ReportFormat, ReportRenderer

logger = logging.getLogger(__name__)

LANGUAGE_BY_SUFFIX = {
    '.sol': 'solidity',
    '.vy': 'vyper',
    '.rs': 'rust',
}

SEVERITY_STYLES = {
    'CRITICAL': 'bold red',
    'HIGH': 'red',
    'MEDIUM': 'yellow',
    'LOW': 'blue',
}

# Exit code for usage and configuration errors; 1 is reserved for --fail-on.
EXIT_ERROR = 2


def setup_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(rich_tracebacks=True, show_path=False)],
        force=True,
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="chainguard",
        description="ChainGuard: heuristic smart contract security analysis",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  chainguard analyze contracts/Vault.sol
  chainguard analyze contracts/Vault.sol --format html --output vault.html
  chainguard analyze contracts/Vault.sol --fail-on high
  chainguard show-config
        """
    )
    parser.add_argument('--version', action='version', version=f"%(prog)s {__version__}")
    parser.add_argument('--config', help='Path to YAML config file (default: ~/.chainguard/config.yaml)')

    subparsers = parser.add_subparsers(dest='command', help='Available commands')

    analyze_parser = subparsers.add_parser('analyze', help='Analyze a contract file')
    analyze_parser.add_argument('file', help='Path to the contract source file')
    analyze_parser.add_argument('--language', '-l', choices=sorted(set(LANGUAGE_BY_SUFFIX.values())),
                                help='Source language (default: inferred from the file extension)')
    analyze_parser.add_argument('--format', '-f', dest='fmt', choices=[f.value for f in ReportFormat],
                                help='Report format (default: from config)')
    analyze_parser.add_argument('--output', '-o', help='Report output path')
    analyze_parser.add_argument('--parallel', action='store_true', help='Run analyzers in parallel')
    analyze_parser.add_argument('--fail-on', choices=[s.value.lower() for s in Severity],
                                help='Exit with status 1 when overall risk is at or above this level')
    analyze_parser.add_argument('--config', dest='sub_config', help=argparse.SUPPRESS)
    analyze_parser.add_argument('--verbose', '-v', action='store_true', help='Verbose output')

    subparsers.add_parser('show-config', help='Show the effective configuration')

    return parser


def infer_language(path: Path) -> str:
    return LANGUAGE_BY_SUFFIX.get(path.suffix.lower(), 'solidity')


def print_summary(console: Console, report: AuditReport) -> None:
    risk = report.score.overall_risk.value
    console.print(Panel.fit(
        f"[bold]Security Score:[/bold] {report.score.security_score}/100\n"
        f"[bold]Overall Risk:[/bold] [{SEVERITY_STYLES.get(risk, 'white')}]{risk}[/]\n"
        f"[bold]Vulnerabilities:[/bold] {report.findings.total}   "
        f"[bold]Gas optimizations:[/bold] {len(report.findings.optimizations)}",
        title="ChainGuard Report",
    ))

    if not report.findings.vulnerabilities:
        console.print("[green]No vulnerabilities found.[/green]")
        return

    table = Table(title="Findings")
    table.add_column("#", justify="right")
    table.add_column("Severity")
    table.add_column("Type", style="cyan")
    table.add_column("Line", justify="right")
    table.add_column("Description")
    for index, finding in enumerate(report.findings.vulnerabilities, 1):
        severity = finding.severity.value
        table.add_row(
            str(index),
            f"[{SEVERITY_STYLES.get(severity, 'white')}]{severity}[/]",
            finding.type,
            str(finding.line) if finding.line else "-",
            finding.description,
        )
    console.print(table)


def run_analyze(args, config_manager: ConfigManager, console: Console) -> int:
    path = Path(args.file)
    if not path.is_file():
        console.print(f"[red]✗ File not found: {path}[/red]")
        return EXIT_ERROR

    config = config_manager.config
    language = args.language or infer_language(path)
    fmt = ReportFormat.coerce(args.fmt or config.default_format)

    try:
        with open(path, 'r', encoding='utf-8') as f:
            source = f.read()
    except (OSError, UnicodeDecodeError) as e:
        logger.error(f"Could not read {path}: {e}")
        console.print(f"[red]✗ Could not read {path}: {e}[/red]")
        return EXIT_ERROR

    service = AuditService.from_config(config_manager, parallel=args.parallel or None)
    report = service.analyze(source, language, name=path.stem)

    print_summary(console, report)

    output = Path(args.output) if args.output else config_manager.get_reports_path() / f"{path.stem}.{fmt.extension}"
    try:
        ReportRenderer().write(report, fmt, output)
    except OSError as e:
        logger.error(f"Could not write report to {output}: {e}")
        console.print(f"[red]✗ Could not write report to {output}: {e}[/red]")
        return EXIT_ERROR
    console.print(f"[green]✓ Report written to {output}[/green]")

    fail_on = args.fail_on or config.fail_on
    if fail_on and report.score.overall_risk.rank <= Severity.coerce(fail_on).rank:
        console.print(f"[red]Overall risk {report.score.overall_risk.value} meets --fail-on {fail_on.upper()}[/red]")
        return 1
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for the ChainGuard CLI."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return EXIT_ERROR

    console = Console()
    config_file = getattr(args, 'sub_config', None) or args.config
    try:
        config_manager = ConfigManager(config_file) if config_file else ConfigManager()
    except ChainGuardError as e:
        console.print(f"[red]✗ Invalid configuration: {e}[/red]")
        return EXIT_ERROR

    level = "DEBUG" if getattr(args, 'verbose', False) else config_manager.config.log_level
    setup_logging(level)

    try:
        if args.command == 'show-config':
            config_manager.show_config()
            return 0
        if args.command == 'analyze':
            return run_analyze(args, config_manager, console)
    except ChainGuardError as e:
        logger.error(str(e))
        console.print(f"[red]✗ {e}[/red]")
        return EXIT_ERROR
    except KeyboardInterrupt:
        console.print("\n[yellow]Interrupted[/yellow]")
        return 130

    parser.print_help()
    return EXIT_ERROR


if __name__ == "__main__":
    sys.exit(main())
