"""Command-line entrypoint for running test plans."""

from __future__ import annotations

import argparse
import asyncio
import importlib
import inspect
import json
import os
import sys
from typing import Any, Callable, Dict, List

import yaml
from playwright.async_api import Error as PlaywrightError

from webtest_engine.browser.server_probe import wait_for_server
from webtest_engine.browser.session import launch_browser
from webtest_engine.config_loader import load_settings, merge_settings
from webtest_engine.core.errors import ConfigError, WebTestError
from webtest_engine.core.report import SchedulerReport
from webtest_engine.scheduler.graph import build_dependency_graph
from webtest_engine.scheduler.scheduler import run_tasks
from webtest_engine.tasks.loader import load_plan, plan_max_parallel, plan_mode, plan_tasks
from webtest_engine.tasks.schema import Task, TestPlan
from webtest_engine.utils.logging_utils import RunArtifacts, configure_logger

_TEST_BROWSER_ENV = "WEBTEST_TEST_BROWSER"

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_CONFIG = 2


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="webtest", description="Parallel browser test runner")
    subparsers = parser.add_subparsers(dest="command", required=True)

    run = subparsers.add_parser("run-test", help="Run a JSON or YAML test plan")
    run.add_argument("plan", help="Path to the test plan file")
    run.add_argument("--max-parallel", type=int, default=None, help="Maximum concurrently running tasks")
    run.add_argument("--fail-fast", action="store_true", help="Stop starting new tasks after the first failure")
    run.add_argument("--headed", action="store_true", help="Show the browser window")
    run.add_argument("--extension-path", default=None, help="Unpacked browser extension to load")
    run.add_argument("--output-dir", default=None, help="Root directory for run artifacts")
    run.add_argument("--settings", default=None, help="Settings YAML overriding the bundled defaults")
    run.add_argument(
        "--wait-for-server",
        default=None,
        metavar="URL",
        help="Wait until URL responds before launching the browser",
    )
    run.add_argument("--server-timeout", type=float, default=30.0, help="Seconds to wait for --wait-for-server")
    run.add_argument("--log-level", default=None, help="Logging level (DEBUG, INFO, ...)")
    return parser.parse_args(argv)


def resolve_settings(args: argparse.Namespace) -> Dict[str, Any]:
    """Apply command-line overrides on top of the settings file."""

    settings = load_settings(args.settings)
    overrides: Dict[str, Any] = {"browser": {}, "scheduler": {}, "output": {}, "logging": {}}
    if args.max_parallel is not None:
        overrides["scheduler"]["max_parallel"] = args.max_parallel
    if args.fail_fast:
        overrides["scheduler"]["fail_fast"] = True
    if args.headed:
        overrides["browser"]["headless"] = False
    if args.extension_path:
        overrides["browser"]["extension_path"] = args.extension_path
    if args.output_dir:
        overrides["output"]["dir"] = args.output_dir
    if args.log_level:
        overrides["logging"]["level"] = args.log_level
    return merge_settings(settings, overrides)


def build_payload(report: SchedulerReport, plan: TestPlan) -> Dict[str, Any]:
    body = report.to_payload()
    return {
        "success": report.success,
        "name": plan.name,
        "mode": plan_mode(plan),
        "summary": {
            "total": report.total,
            "completed": report.completed,
            "failed": report.failed,
            "aborted": report.aborted,
        },
        "results": body["results"],
    }


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    try:
        settings = resolve_settings(args)
    except (FileNotFoundError, ValueError, yaml.YAMLError) as exc:
        _print_error(f"Settings error: {exc}")
        return EXIT_CONFIG

    log_cfg = settings.get("logging", {})
    logger = configure_logger(log_cfg.get("level", "INFO"), log_cfg.get("dir"))

    try:
        plan = load_plan(args.plan)
        tasks = plan_tasks(plan)
        build_dependency_graph(tasks)
    except (FileNotFoundError, ConfigError) as exc:
        logger.error("Invalid test plan: %s", exc)
        _print_error(str(exc))
        return EXIT_CONFIG

    if not tasks:
        logger.warning("Plan %s contains no tasks or steps", args.plan)

    artifacts = RunArtifacts(root=settings.get("output", {}).get("dir") or "test-output")
    try:
        report = asyncio.run(_run(tasks, settings, artifacts, args, max_parallel=plan_max_parallel(plan)))
    except (WebTestError, FileNotFoundError, PlaywrightError) as exc:
        logger.error("Run aborted: %s", exc)
        _print_error(str(exc))
        return EXIT_CONFIG

    payload = build_payload(report, plan)
    payload["artifacts"] = artifacts.to_dict()
    artifacts.write_report(payload)
    print(json.dumps(payload, indent=2, default=str))
    return EXIT_OK if report.success else EXIT_FAILED


async def _run(
    tasks: List[Task],
    settings: Dict[str, Any],
    artifacts: RunArtifacts,
    args: argparse.Namespace,
    *,
    max_parallel: int | None = None,
) -> SchedulerReport:
    if args.wait_for_server:
        ready = await wait_for_server(args.wait_for_server, timeout_s=args.server_timeout)
        if not ready:
            raise WebTestError(f"Server {args.wait_for_server} did not respond within {args.server_timeout}s")

    session = await _open_browser(settings)
    try:
        return await run_tasks(
            session.context,
            tasks,
            max_parallel=max_parallel,
            settings=settings,
            artifacts=artifacts,
        )
    finally:
        await session.close()


async def _open_browser(settings: Dict[str, Any]) -> Any:
    hook = os.environ.get(_TEST_BROWSER_ENV)
    if hook:
        module_name, _, attr = hook.partition(":")
        module = importlib.import_module(module_name)
        factory: Callable[[Dict[str, Any]], Any] = getattr(module, attr)
        session = factory(settings)
        if inspect.isawaitable(session):
            session = await session
        return session
    return await launch_browser(settings)


def _print_error(message: str) -> None:
    print(json.dumps({"success": False, "error": message}, indent=2))


if __name__ == "__main__":  # pragma: no cover - exercised via CLI test
    sys.exit(main())
