from __future__ import annotations

import argparse
import logging
import os
import sys
from pathlib import Path
from typing import Any, Optional, Sequence

from .builder import build_adhoc_request, build_playbook_request
from .client import TaskClient
from .config import DEFAULT_CONFIG, KobeConfig, load_config
from .connection import connect
from .errors import KobeError
from .inventory import InventoryLoader
from .loaders import read_text, render_script, resolve_script_path
from .secrets import SecretResolver
from .types import Inventory, TaskResult


class Ansi:
    GREEN = "\033[92m"
    YELLOW = "\033[93m"
    RED = "\033[91m"
    RESET = "\033[0m"


def colorize(text: str, color: Optional[str]) -> str:
    if not color:
        return text
    if not sys.stdout.isatty() or os.environ.get("NO_COLOR"):
        return text
    return f"{color}{text}{Ansi.RESET}"


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Submit tasks to a kobe automation service")
    parser.add_argument(
        "--config",
        type=Path,
        default=DEFAULT_CONFIG,
        help=f"Path to client config file (default: {DEFAULT_CONFIG})",
    )
    parser.add_argument("--endpoint", help="kobe service address as host:port")
    parser.add_argument("--inventory", type=Path, help="Inventory TOML file")
    parser.add_argument("--timeout", type=float, help="Per-call timeout in seconds")
    parser.add_argument("--connect-timeout", type=float, help="Connection timeout in seconds")
    parser.add_argument(
        "--log-level",
        default="INFO",
        help="Python logging level (default: INFO)",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    adhoc = sub.add_parser("adhoc", help="Run a module against a host pattern")
    adhoc.add_argument("--pattern", default="all", help="Host or group selector (default: all)")
    adhoc.add_argument("--module", default="shell", help="Module to execute (default: shell)")
    source = adhoc.add_mutually_exclusive_group(required=True)
    source.add_argument("--script", type=Path, help="File whose content is the module parameter")
    source.add_argument("--param", help="Module parameter given inline")
    _add_var_argument(adhoc)

    playbook = sub.add_parser("playbook", help="Run a playbook")
    playbook.add_argument("--project", required=True)
    playbook.add_argument("--playbook", required=True, help="Playbook name")
    playbook.add_argument("--tag", default="", help="Only run tasks with this tag")
    playbook.add_argument("--file", type=Path, required=True, help="Playbook file to send")
    _add_var_argument(playbook)

    result = sub.add_parser("result", help="Fetch the result of a submitted task")
    result.add_argument("task_id")

    return parser.parse_args(argv)


def _add_var_argument(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--var",
        action="append",
        default=[],
        metavar="KEY=VALUE",
        help="Render the script as a Jinja2 template with this variable (repeatable)",
    )


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(levelname)s %(name)s - %(message)s",
    )


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = parse_args(argv)
    configure_logging(args.log_level)

    try:
        cfg = load_config(args.config)
        return _dispatch(args, cfg)
    except (KobeError, ValueError, RuntimeError) as exc:
        if logging.getLogger().isEnabledFor(logging.DEBUG):
            raise
        print(colorize(f"{args.command} failed: {exc}", Ansi.RED), file=sys.stderr)
        return 1


def _dispatch(args: argparse.Namespace, cfg: KobeConfig) -> int:
    endpoint = args.endpoint or cfg.endpoint
    if not endpoint:
        raise ValueError("No endpoint configured (use --endpoint or set endpoint in the config)")
    timeout = args.timeout if args.timeout is not None else cfg.timeout
    connect_timeout = args.connect_timeout if args.connect_timeout is not None else cfg.connect_timeout

    # Local inputs are loaded before any connection is attempted.
    if args.command == "adhoc":
        inventory = _load_inventory(args, cfg)
        body = args.param if args.param is not None else _load_script(args.script, args.var, cfg)
        request: Any = build_adhoc_request(inventory, args.pattern, args.module, body)
    elif args.command == "playbook":
        inventory = _load_inventory(args, cfg)
        body = _load_script(args.file, args.var, cfg)
        request = build_playbook_request(inventory, args.project, args.playbook, args.tag, body)
    else:
        request = None

    with connect(endpoint, timeout=connect_timeout, service=cfg.service) as connection:
        client = TaskClient(connection, timeout=timeout)
        if args.command == "adhoc":
            print(client.submit_adhoc(request).id)
        elif args.command == "playbook":
            print(client.submit_playbook(request).id)
        else:
            result = client.fetch_result(args.task_id)
            print(format_result(result))
            if result.content:
                print(result.content, end="" if result.content.endswith("\n") else "\n")
            return 0 if result.success or not result.finished else 1
    return 0


def _load_inventory(args: argparse.Namespace, cfg: KobeConfig) -> Inventory:
    path = args.inventory or cfg.inventory
    if not path:
        raise ValueError("No inventory configured (use --inventory or set inventory in the config)")
    resolver = SecretResolver(region=cfg.aws_region, profile=cfg.aws_profile)
    return InventoryLoader(resolver).load(path)


def _load_script(path: Path, raw_vars: Sequence[str], cfg: KobeConfig) -> str:
    text = read_text(resolve_script_path(path, cfg.script_dir))
    if raw_vars:
        text = render_script(text, parse_vars(raw_vars))
    return text


def parse_vars(raw_vars: Sequence[str]) -> dict[str, str]:
    variables: dict[str, str] = {}
    for item in raw_vars:
        key, sep, value = item.partition("=")
        if not sep or not key.strip():
            raise ValueError(f"Variable '{item}' must look like KEY=VALUE")
        variables[key.strip()] = value
    return variables


def format_result(result: TaskResult) -> str:
    if result.success:
        status, color = "ok", Ansi.GREEN
    elif result.finished:
        status, color = "failed", Ansi.RED
    else:
        status, color = "running", Ansi.YELLOW
    line = f"{result.id} {status}"
    if result.message:
        line = f"{line} - {result.message}"
    return colorize(line, color)


if __name__ == "__main__":
    raise SystemExit(main())
