from __future__ import annotations

import argparse
import asyncio
import json
import sys
from pathlib import Path
from typing import Any

from apify_tester.clients.apify import ApifyClient
from apify_tester.config.load_config import ConfigError, default_config_path, load_app_config
from apify_tester.runtime.tracker import PollState, RunTracker
from apify_tester.utils.log import configure_logging


def _parse_args(argv: list[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Start an Apify actor run and wait for its dataset preview.")
    parser.add_argument("--actor", required=True, help="Actor id, `username~name`.")
    parser.add_argument("--input", default="", help="Run input as a JSON object (default: {}).")
    parser.add_argument("--input-file", default="", help="Read the run input from a JSON file.")
    parser.add_argument("--no-wait", action="store_true", help="Only start the run; print the start response.")
    parser.add_argument("--interval", type=float, default=None, help="Seconds between status polls.")
    parser.add_argument("--max-polls", type=int, default=None, help="Give up after this many polls.")
    parser.add_argument("--timeout", type=float, default=None, help="Give up after this many seconds.")
    parser.add_argument(
        "--config",
        default="",
        help=f"Config file (default: env APIFY_TESTER_CONFIG_PATH or {default_config_path()}).",
    )
    parser.add_argument("--log-level", default=None, help="Logging level (default: env APIFY_TESTER_LOG_LEVEL or info).")
    return parser.parse_args(argv)


def _load_input(args: argparse.Namespace) -> dict[str, Any]:
    if args.input and args.input_file:
        raise ValueError("Use either --input or --input-file, not both.")
    raw = args.input
    if args.input_file:
        raw = Path(args.input_file).read_text(encoding="utf-8")
    if not raw.strip():
        return {}
    try:
        obj = json.loads(raw)
    except ValueError as e:
        raise ValueError(f"Invalid JSON input: {e}") from e
    if not isinstance(obj, dict):
        raise ValueError("Run input must be a JSON object.")
    return obj


def _emit(payload: dict[str, Any]) -> None:
    print(json.dumps(payload, ensure_ascii=False, indent=2))


async def _run(args: argparse.Namespace, run_input: dict[str, Any]) -> int:
    cfg = load_app_config(Path(args.config).expanduser().resolve() if args.config else None)
    async with ApifyClient.from_config(cfg) as client:
        tracker = RunTracker(
            client,
            interval_s=args.interval if args.interval is not None else cfg.polling.interval_s,
            max_polls=args.max_polls if args.max_polls is not None else cfg.polling.max_polls,
            deadline_s=args.timeout if args.timeout is not None else cfg.polling.deadline_s,
        )
        started, handle = await tracker.start(args.actor, run_input)
        if handle is None or args.no_wait:
            _emit(started.to_payload())
            return 0 if handle is not None else 1

        print(f"run_id={handle.run_id} status={handle.status.value}", file=sys.stderr)
        outcome = await tracker.track(handle)
        _emit(outcome.to_payload())
        return 0 if outcome.state is PollState.SUCCEEDED else 1


def main(argv: list[str] | None = None) -> int:
    args = _parse_args(argv if argv is not None else sys.argv[1:])
    configure_logging(args.log_level)

    try:
        run_input = _load_input(args)
    except (OSError, ValueError) as e:
        print(str(e), file=sys.stderr)
        return 2

    try:
        return asyncio.run(_run(args, run_input))
    except ConfigError as e:
        print(f"Config error: {e}", file=sys.stderr)
        return 2
    except KeyboardInterrupt:
        # Local polling stops here; the remote run keeps executing.
        print("Interrupted.", file=sys.stderr)
        return 130


if __name__ == "__main__":
    raise SystemExit(main())
