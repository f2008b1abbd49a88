"""CLI entry point for policy audits."""

import argparse
import asyncio
import dataclasses
import json
import logging
import sys
from collections.abc import Sequence
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from policy_audit.engine.statistics import EXIT_FATAL, exit_code
from policy_audit.errors import AuditError, ConfigurationError
from policy_audit.models.config import DEFAULT_CACHE_DIR, RunConfig
from policy_audit.models.result import RunResult
from policy_audit.orchestrator import AuditOrchestrator, platform_dict

log = logging.getLogger("policy_audit")

STATUS_SYMBOLS = {
    "passed": "✔",
    "failed": "✖",
    "skipped": "↺",
    "error": "❗",
}


def log_results_summary(result: RunResult) -> None:
    """Log one line per control and the run statistics."""
    for profile in result.profiles:
        log.info("Profile %s (%s)", profile.name, profile.version)
        for control in profile.controls:
            log.info(
                "  %s %s: %s",
                STATUS_SYMBOLS.get(control.status, "?"),
                control.id,
                control.title or "",
            )
            for test in control.results:
                if test.status != "passed" and test.message:
                    log.info("      %s (%s)", test.description, test.message)

    stats = result.statistics
    log.info(
        "Controls: %d passed, %d failed, %d skipped",
        stats.controls.passed,
        stats.controls.failed,
        stats.controls.skipped,
    )
    log.info(
        "Tests: %d passed, %d failed, %d skipped, %d errors",
        stats.tests.passed,
        stats.tests.failed,
        stats.tests.skipped,
        stats.tests.error,
    )


def parse_inputs(pairs: Sequence[str]) -> dict[str, Any]:
    """Parse ``name=value`` pairs; values are read as YAML scalars."""
    inputs: dict[str, Any] = {}
    for pair in pairs:
        name, sep, value = pair.partition("=")
        if not sep or not name.strip():
            raise AuditError(f"Invalid input '{pair}': expected name=value")
        try:
            inputs[name.strip()] = yaml.safe_load(value)
        except yaml.YAMLError:
            inputs[name.strip()] = value
    return inputs


def format_output(result: RunResult) -> dict[str, Any]:
    """Serializable run result tree for reporters."""
    return dataclasses.asdict(result)


async def run_exec(config: RunConfig, profile_dirs: Sequence[Path]) -> int:
    """Execute profiles and return the exit code."""
    orchestrator = AuditOrchestrator(config=config)
    result = await orchestrator.run(profile_dirs)
    log_results_summary(result)
    print(json.dumps(format_output(result), indent=2, default=str))
    return exit_code(result.statistics)


async def run_detect(config: RunConfig) -> int:
    platform = await AuditOrchestrator(config=config).detect()
    print(json.dumps(platform_dict(platform), indent=2))
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="policy-audit", description="Audit targets against policy profiles"
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Log level for messages on stderr",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    target = argparse.ArgumentParser(add_help=False)
    target.add_argument(
        "-t",
        "--target",
        default="local://",
        help="Target locator, e.g. ssh://user@host:22 (default: local://)",
    )
    target.add_argument("--user", help="User name, overrides the locator")
    target.add_argument("--password", help="Password, overrides the locator")
    target.add_argument(
        "-i", "--key-file", action="append", default=[], help="SSH private key file"
    )
    target.add_argument(
        "--command-timeout",
        type=float,
        default=600.0,
        help="Seconds before a command on the target is abandoned",
    )

    exec_parser = subparsers.add_parser("exec", parents=[target], help="Run profiles")
    exec_parser.add_argument("profiles", nargs="+", type=Path, help="Profile directories")
    exec_parser.add_argument(
        "--controls",
        nargs="+",
        default=[],
        help="Control ids or /regex/ selectors to run",
    )
    exec_parser.add_argument(
        "--input",
        action="append",
        default=[],
        metavar="NAME=VALUE",
        help="Override a profile input",
    )
    exec_parser.add_argument(
        "--no-create-lockfile",
        dest="create_lockfile",
        action="store_false",
        help="Do not write or update profile.lock",
    )
    exec_parser.add_argument(
        "--refresh-lock",
        action="store_true",
        help="Resolve dependencies again even if profile.lock exists",
    )
    exec_parser.add_argument(
        "--cache-dir",
        type=Path,
        default=DEFAULT_CACHE_DIR,
        help="Directory of fetched dependency content",
    )
    exec_parser.add_argument("--registry-url", help="Profile registry base URL")

    subparsers.add_parser("detect", parents=[target], help="Detect the target platform")
    return parser


def config_from_args(args: argparse.Namespace) -> RunConfig:
    settings: dict[str, Any] = {
        "target": args.target,
        "user": args.user,
        "password": args.password,
        "key_files": args.key_file,
        "command_timeout": args.command_timeout,
    }
    if args.command == "exec":
        settings.update(
            controls=args.controls,
            inputs=parse_inputs(args.input),
            create_lockfile=args.create_lockfile,
            refresh_lock=args.refresh_lock,
            cache_dir=args.cache_dir,
        )
        if args.registry_url:
            settings["registry_url"] = args.registry_url
    try:
        return RunConfig(**settings)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid run configuration: {e}") from e


async def run(args: argparse.Namespace) -> int:
    """Dispatch a parsed command line and return the exit code."""
    try:
        config = config_from_args(args)
        if args.command == "detect":
            return await run_detect(config)
        return await run_exec(config, args.profiles)
    except (AuditError, FileNotFoundError) as e:
        log.error("%s", e)
        return EXIT_FATAL


def main() -> None:
    """CLI entry point."""
    args = build_parser().parse_args()

    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        stream=sys.stderr,
    )

    sys.exit(asyncio.run(run(args)))


if __name__ == "__main__":  # pragma: no cover
    main()
