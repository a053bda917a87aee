"""Command line interface for running formulas outside a spreadsheet.

Usage:
    sheets-gpt list "5 product name ideas"
    sheets-gpt record "Describe Paris" "name:string; population:number"
    sheets-gpt config --json
"""

from __future__ import annotations

import argparse
from collections.abc import Sequence
import json
import logging
import sys
from typing import Any

from sheets_gpt.config import (
    API_KEY,
    ENVIRONMENT_KEY,
    ConfigFileError,
    ConfigResolver,
    ResolvedConfig,
    SettingsSources,
    generate_telemetry_summary,
)
from sheets_gpt.core.types import Shape
from sheets_gpt.exceptions import SheetsGPTError
from sheets_gpt.executor import Pipeline
from sheets_gpt.telemetry import SimpleReporter, TelemetryContext

# ruff: noqa: T201

log = logging.getLogger(__name__)

COMMAND_SHAPES = {
    "text": Shape.TEXT,
    "list": Shape.LIST,
    "record": Shape.RECORD,
    "records": Shape.RECORD_LIST,
}


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser with one subcommand per shape plus ``config``."""
    parser = argparse.ArgumentParser(
        prog="sheets-gpt",
        description="Generate spreadsheet-shaped output from a language model",
    )
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument(
        "--document-settings",
        metavar="PATH",
        help="TOML file holding document settings in a [sheets_gpt] table",
    )
    common.add_argument("--env-file", metavar="PATH", help="Optional .env file")
    common.add_argument("--json", action="store_true", help="Output as JSON")
    common.add_argument("--verbose", "-v", action="store_true", help="Debug logging")

    commands = parser.add_subparsers(dest="command", required=True)
    for name, shape in COMMAND_SHAPES.items():
        sub = commands.add_parser(name, parents=[common], help=f"{shape.value} output")
        sub.add_argument("instruction", help="Instruction text")
        if shape.is_record:
            sub.add_argument("schema", help='Schema such as "name:string; age:number"')
        sub.add_argument("--system", help="System message override")
        sub.add_argument("--model", help="Model override")
        sub.add_argument("--max-tokens", help="Max token override")
        sub.add_argument("--temperature", help="Temperature override")
        sub.add_argument("--tool", help='Tool name or JSON, e.g. "web_search"')

    commands.add_parser(
        "config", parents=[common], help="Show the resolved configuration"
    )
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    """CLI entry point. Returns the process exit code."""
    args = build_parser().parse_args(argv)

    try:
        sources = SettingsSources.from_environment(
            document_path=args.document_settings, env_file=args.env_file
        )
    except ConfigFileError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 1

    if args.verbose or (sources.installation.get(ENVIRONMENT_KEY) or "").lower() == "dev":
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        )

    if args.command == "config":
        return _show_config(sources, as_json=args.json)
    return _run_formula(args, sources)


def formula_arguments(args: argparse.Namespace) -> list[Any]:
    """Positional formula arguments in the order the parser expects."""
    values: list[Any] = [args.instruction]
    if getattr(args, "schema", None) is not None:
        values.append(args.schema)
    values += [args.system, args.model, args.max_tokens, args.temperature, args.tool]
    return values


def config_warnings(config: ResolvedConfig, sources: SettingsSources) -> list[str]:
    """Non-fatal issues worth surfacing before running a formula."""
    warnings = []
    if not sources.user.get(API_KEY):
        warnings.append("No API key configured (set OPENAI_API_KEY)")
    if config.default_inferred_count == config.hard_count_cap:
        warnings.append("Default item count equals the hard cap")
    if config.temperature > 1.5:
        warnings.append("Temperature above 1.5 tends to produce unparsable records")
    return warnings


# --- Internal helpers ---


def _run_formula(args: argparse.Namespace, sources: SettingsSources) -> int:
    shape = COMMAND_SHAPES[args.command]
    reporter = SimpleReporter()
    pipeline = Pipeline(sources, telemetry_context=TelemetryContext(reporter))
    try:
        result = pipeline.run(shape, formula_arguments(args))
    except SheetsGPTError as e:
        print(str(e), file=sys.stderr)
        return 1

    if args.json:
        print(
            json.dumps(
                {
                    "shape": result.shape.value,
                    "target_count": result.target_count,
                    "rows": [row[0] for row in result.grid],
                    "diagnostics": dict(result.diagnostics),
                },
                indent=2,
                ensure_ascii=False,
            )
        )
    else:
        for row in result.grid:
            print(row[0])

    if reporter.timings:
        print(reporter.get_report(), file=sys.stderr)
    return 0


def _show_config(sources: SettingsSources, *, as_json: bool) -> int:
    try:
        config = ConfigResolver(sources).resolve()
    except SheetsGPTError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 1

    warnings = config_warnings(config, sources)
    if as_json:
        info = {
            "config": config.to_dict(),
            "sources": dict(config.origin),
            "origin_counts": generate_telemetry_summary(config.origin),
            "has_api_key": bool(sources.user.get(API_KEY)),
            "warnings": warnings,
        }
        print(json.dumps(info, indent=2))
        return 0

    print("=== Effective Configuration ===")
    print(config.audit())
    if warnings:
        print("\nWarnings:")
        for warning in warnings:
            print(f"  - {warning}")
    return 0
