from __future__ import annotations

import argparse
import json
import sys
from dataclasses import replace
from typing import Any, List

from .backend.factory import build_backend
from .config import TestConfiguration, load_configuration
from .connection_manager import ConnectionManager
from .errors import ConfigurationError, ScenarioError
from .logging_utils import setup_logging
from .scenario.executor import ScenarioExecutor
from .scenario.loader import load_scenario_file
from .testing.consistency import DEFAULT_CONFIGS, DEFAULT_STORIES, ConsistencyTester


def _emit(payload: Any) -> None:
    print(json.dumps(payload, indent=2, sort_keys=True, default=str))


def _load_config(args: argparse.Namespace) -> TestConfiguration:
    if getattr(args, "config", None):
        config = load_configuration(args.config)
    else:
        config = TestConfiguration().with_env_overrides()
    if getattr(args, "backend", None):
        config = replace(config, backend=args.backend)
    return config


def _cmd_run(args: argparse.Namespace) -> int:
    config = _load_config(args)
    scenario = load_scenario_file(args.scenario)
    backend = build_backend(config)
    result = ScenarioExecutor(backend, config=config).execute(scenario)
    _emit(result.to_dict())
    return 0 if result.success else 1


def _cmd_consistency(args: argparse.Namespace) -> int:
    tester = ConsistencyTester(
        stories=args.scenario or DEFAULT_STORIES,
        configs=args.config or DEFAULT_CONFIGS,
        base_dir=args.base_dir,
        task_timeout=args.timeout,
        launch_servers=args.launch_servers,
    )
    comparison = tester.run()
    _emit(comparison.summary())
    return 0 if comparison.overall_consistent else 1


def _cmd_health(args: argparse.Namespace) -> int:
    config = _load_config(args)
    manager = ConnectionManager(build_backend(config), config)
    try:
        manager.initialize()
        health = manager.service_health()
        healthy = manager.are_services_healthy()
    finally:
        manager.cleanup()
    _emit({"config": config.config_id, "healthy": healthy, "services": health})
    return 0 if healthy else 1


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="pilaf", description="Pilaf scenario runner")
    parser.add_argument("-v", "--verbose", action="count", default=0, help="-v for INFO, -vv for DEBUG")
    sub = parser.add_subparsers(dest="subcommand", required=False)

    p_run = sub.add_parser("run", help="Run one scenario against one backend")
    p_run.add_argument("scenario", help="Scenario YAML/JSON file")
    p_run.add_argument("--config", help="Configuration YAML/JSON file")
    p_run.add_argument("--backend", help="Override the configured backend type")
    p_run.set_defaults(func=_cmd_run)

    p_con = sub.add_parser("consistency", help="Run scenarios across backend configurations")
    p_con.add_argument("--scenario", action="append", help="Scenario file (repeatable)")
    p_con.add_argument("--config", action="append", help="Configuration file (repeatable)")
    p_con.add_argument("--base-dir", default=".", help="Directory relative paths resolve against")
    p_con.add_argument("--timeout", type=float, default=None, help="Per-scenario timeout in seconds")
    p_con.add_argument("--launch-servers", action="store_true", help="Start docker/headless servers first")
    p_con.set_defaults(func=_cmd_consistency)

    p_health = sub.add_parser("health", help="Initialize a backend and report service health")
    p_health.add_argument("--config", help="Configuration YAML/JSON file")
    p_health.add_argument("--backend", help="Override the configured backend type")
    p_health.set_defaults(func=_cmd_health)
    return parser


def main(argv: List[str] | None = None) -> int:
    if argv is None:
        argv = sys.argv[1:]
    parser = _build_parser()
    args = parser.parse_args(argv)
    setup_logging(args.verbose)

    if not hasattr(args, "func") or args.func is None:
        parser.print_help()
        return 2

    try:
        return args.func(args)
    except (ConfigurationError, ScenarioError) as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 2


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
