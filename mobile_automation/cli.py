from __future__ import annotations

import argparse
import logging
import sys
import time
from dataclasses import replace
from typing import Optional

from .appium_server import AppiumServerError, AppiumServerManager
from .config import load_config, set_config

LOG_FORMAT = "%(asctime)s %(levelname)s [%(threadName)s] %(name)s: %(message)s"


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="mobile-automation",
        description="Run Gherkin feature files against Android/iOS apps through Appium.",
    )
    parser.add_argument("--env", default=None, help="Config environment name (default: $MOBILE_ENV or 'dev').")
    parser.add_argument("--config-dir", default=None, help="Directory holding default.json and <env>.json.")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging.")
    sub = parser.add_subparsers(dest="command", required=True)

    run = sub.add_parser("run", help="Run feature files.")
    run.add_argument("paths", nargs="*", default=["features"], help="Feature files or directories (default: features).")
    run.add_argument(
        "-t",
        "--tags",
        action="append",
        default=[],
        help="Tag filter; repeat to AND, comma-separate to OR, prefix with ~ to exclude (e.g. -t @smoke -t ~@wip).",
    )
    run.add_argument("--platform", choices=("android", "ios"), help="Override the configured platform.")
    run.add_argument("--parallel", type=int, default=0, help="Run scenarios on N threads.")
    run.add_argument("--appium-autostart", action="store_true", help="Start a local Appium server for the run.")
    run.add_argument("--dry-run", action="store_true", help="List the scenarios that would run and exit.")

    server = sub.add_parser("server", help="Manage a local Appium server.")
    server.add_argument("action", choices=("start", "status"), help="'start' runs until interrupted.")
    server.add_argument("--host", default="127.0.0.1")
    server.add_argument("--port", type=int, default=4723)
    return parser


def _run(args: argparse.Namespace) -> int:
    from .runner import FeatureRunner

    config = load_config(env=args.env, config_dir=args.config_dir)
    if args.platform:
        config = replace(config, platform_name=args.platform)
    if args.parallel > 0:
        config = replace(config, test_parallel=args.parallel > 1, thread_count=args.parallel)
    if args.appium_autostart:
        config = replace(config, appium_autostart=True)
    set_config(config)

    runner = FeatureRunner(config)
    if args.dry_run:
        scenarios = runner.collect(args.paths, args.tags)
        for scenario in scenarios:
            print(f"{scenario.id}  {scenario.name}  {' '.join(scenario.tags)}")
        print(f"{len(scenarios)} scenario(s)")
        return 0

    summary = runner.run(args.paths, tags=args.tags)
    for result in summary.results:
        print(f"[{result.status.upper():9}] {result.feature} :: {result.name}")
        if result.error:
            print(f"            {result.error}")
    print(
        f"scenarios={len(summary.results)} passed={summary.passed} "
        f"failed={summary.failed} undefined={summary.undefined} duration={summary.duration_s:.1f}s"
    )
    print(f"report={summary.report_path}")
    return 0 if summary.ok else 2


def _server(args: argparse.Namespace) -> int:
    manager = AppiumServerManager(host=args.host, port=args.port)
    if args.action == "status":
        status = manager.status()
        print("========== Appium Server Status ==========")
        print(f"URL: {status['url']}")
        print(f"Running: {status['running']}")
        print("==========================================")
        return 0 if status["running"] else 1

    manager.start()
    print(f"Appium server ready at {manager.server_url} (Ctrl+C to stop)")
    try:
        while manager.is_process_alive() or manager.is_running():
            time.sleep(1.0)
    except KeyboardInterrupt:
        pass
    finally:
        manager.stop()
    return 0


def main(argv: Optional[list[str]] = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO, format=LOG_FORMAT)

    try:
        if args.command == "run":
            return _run(args)
        return _server(args)
    except (FileNotFoundError, ValueError, AppiumServerError) as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
