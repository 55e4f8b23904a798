#!/usr/bin/env python3
"""tiddlygit CLI - inspect and drive the wiki's git coordinator by hand."""
from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path

# Fail fast on unsupported interpreter version
if sys.version_info < (3, 10):
    print(f"tiddlygit requires Python 3.10+; found {sys.version.split()[0]}", file=sys.stderr)
    sys.exit(1)


def _manual_config(root: Path):
    """Effective config with both push timers disabled.

    One-shot commands push explicitly (or not at all) instead of arming
    timers that would be cancelled on exit.
    """
    from .config_loader import get_config

    config = get_config(root)
    remote = config.remote.model_copy(update={"push_timeout": 0, "push_interval": 0})
    return config.model_copy(update={"remote": remote})


def _coordinator(root: Path):
    from .coordinator import GitCoordinator

    coordinator = GitCoordinator(_manual_config(root), root=root)
    coordinator.start()
    return coordinator


def main(argv: list[str] | None = None) -> None:
    ap = argparse.ArgumentParser(
        prog="tiddlygit",
        description="Commit and push TiddlyWiki folder changes with git",
    )
    ap.add_argument("--root", help="Wiki directory (default: current directory)")
    ap.add_argument("--timeout", type=float, default=120.0, help="Seconds to wait for git steps (default: 120)")

    sub = ap.add_subparsers(dest="cmd")

    sub.add_parser("status", help="Show repository and coordinator state")
    sub.add_parser("config", help="Print the effective configuration as JSON")
    sub.add_parser("push", help="Push the current branch to the configured remote")

    p_record = sub.add_parser("record", help="Commit a changeset as the sync adaptor would")
    p_record.add_argument("--title", required=True, help="Tiddler title (squash subject)")
    p_record.add_argument("--added", nargs="*", default=[], help="Files written")
    p_record.add_argument("--deleted", nargs="*", default=[], help="Files removed")
    p_record.add_argument("--message", help="Commit message (default: Save/Delete tiddler \"<title>\")")
    p_record.add_argument("--draft", action="store_true", help="Treat the tiddler as a draft")
    p_record.add_argument("--push", action="store_true", help="Push after committing")

    args = ap.parse_args(argv)

    if not args.cmd:
        ap.print_help()
        sys.exit(0)

    root = Path(args.root).resolve() if args.root else Path.cwd()

    if args.cmd == "config":
        from .config_loader import ConfigError, get_config

        try:
            config = get_config(root)
        except ConfigError as e:
            print(str(e), file=sys.stderr)
            sys.exit(1)
        print(json.dumps(config.model_dump(), indent=2))
        sys.exit(0)

    if args.cmd == "status":
        coordinator = _coordinator(root)
        coordinator.wait_idle(args.timeout)
        status = coordinator.status()
        coordinator.shutdown()
        print(json.dumps(status, indent=2))
        sys.exit(0 if status["repository"] else 1)

    if args.cmd == "push":
        coordinator = _coordinator(root)
        future = coordinator.request_push(force=True)
        pushed = future.result(timeout=args.timeout) if future is not None else False
        coordinator.shutdown()
        if not pushed:
            print("Push failed or no repository; see log for details.", file=sys.stderr)
            sys.exit(1)
        print("Pushed.")
        sys.exit(0)

    if args.cmd == "record":
        from .constants import DELETE_MESSAGE_TEMPLATE, SAVE_MESSAGE_TEMPLATE

        template = SAVE_MESSAGE_TEMPLATE if args.added else DELETE_MESSAGE_TEMPLATE
        message = args.message or template.format(title=args.title)
        added = [str(Path(p).resolve()) for p in args.added]
        deleted = [str(Path(p).resolve()) for p in args.deleted]

        coordinator = _coordinator(root)
        future = coordinator.report_change(args.title, added, deleted, message, args.draft)
        result = future.result(timeout=args.timeout) if future is not None else None
        if args.push and result is not None:
            coordinator.request_push()
        coordinator.wait_idle(args.timeout)
        coordinator.shutdown()
        if result is None:
            print("Nothing committed.")
            sys.exit(0)
        action = "Amended" if result.amended else "Committed"
        print(f"{action} {result.sha}")
        sys.exit(0)

    ap.print_help()
    sys.exit(2)


if __name__ == "__main__":
    main()
