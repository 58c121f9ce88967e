from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from signal import SIGINT, signal
from typing import TYPE_CHECKING

from dotenv import load_dotenv

from friendsync.adapters.notifications import decode_notifications
from friendsync.adapters.sqlalchemy import SqlAlchemyFriendshipUnitOfWork, startup
from friendsync.app import (
    build_reconciler,
    create_user,
    get_user,
    replay_notifications,
    update_user_number,
)
from friendsync.config import configure_logging

if TYPE_CHECKING:
    from collections.abc import Sequence
    from types import FrameType

log = logging.getLogger(__name__)


def _parse_number(value: str) -> int | None:
    if value.strip().lower() in {"none", "null", ""}:
        return None
    try:
        return int(value)
    except ValueError as exc:
        raise ValueError(f"Invalid number: {value}") from exc


def _parse_args(argv: Sequence[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Maintain friendships between users")
    parser.add_argument(
        "--database-uri",
        type=str,
        help="SQLAlchemy database URI (defaults to DATABASE_URI or the data directory)",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    user = subparsers.add_parser("user", help="User management commands")
    user_sub = user.add_subparsers(dest="user_command", required=True)
    user_create = user_sub.add_parser("create", help="Create a user")
    user_create.add_argument(
        "--number",
        type=str,
        help="Initial number for the user",
    )
    user_create.add_argument(
        "--user-id",
        type=str,
        help="Explicit id for the new user (generated when omitted)",
    )
    user_set = user_sub.add_parser("set-number", help="Change a user's number")
    user_set.add_argument("user_id", type=str, help="Id of the user to update")
    user_set.add_argument("number", type=str, help="New number, or 'none' to clear it")
    user_show = user_sub.add_parser("show", help="Show a user and its friends")
    user_show.add_argument("user_id", type=str, help="Id of the user to show")

    replay = subparsers.add_parser("replay", help="Deliver notifications from a JSON-lines file")
    replay.add_argument("path", type=Path, help="File with one notification per line")

    return parser.parse_args(list(argv))


def _run(args: argparse.Namespace, *, number: int | None) -> None:
    startup(database_uri=args.database_uri)
    uow_factory = SqlAlchemyFriendshipUnitOfWork
    reconciler = build_reconciler(uow_factory)

    if args.command == "replay":
        with args.path.open(encoding="utf-8") as handle:
            replay_notifications(decode_notifications(handle), reconciler=reconciler)
        return

    if args.command == "user" and args.user_command == "create":
        user = create_user(
            unit_of_work_factory=uow_factory,
            reconciler=reconciler,
            number=number,
            user_id=args.user_id,
        )
        log.info("Created user %s with number %s", user.id, user.number)
    elif args.command == "user" and args.user_command == "set-number":
        user = update_user_number(
            args.user_id,
            number,
            unit_of_work_factory=uow_factory,
            reconciler=reconciler,
        )
        log.info("User %s now has number %s", user.id, user.number)
    elif args.command == "user" and args.user_command == "show":
        user = get_user(args.user_id, unit_of_work_factory=uow_factory)
    else:
        raise ValueError(f"Unsupported command: {args.command}")
    log.info(
        "User %s (number %s) friends: %s",
        user.id,
        user.number,
        ", ".join(sorted(user.friends)) or "-",
    )


def main(argv: Sequence[str] | None = None) -> None:
    """Main application entry point."""
    load_dotenv()
    configure_logging()
    args_list = list(argv) if argv is not None else list(sys.argv[1:])
    try:
        parsed_args = _parse_args(args_list)
        raw_number = getattr(parsed_args, "number", None)
        number = None if raw_number is None else _parse_number(raw_number)
    except ValueError:
        log.exception("CLI validation error")
        sys.exit(2)

    try:
        _run(parsed_args, number=number)
    except Exception:
        log.exception("Fatal error")
        sys.exit(1)


def sigint_handler(_signal_received: int, _frame: FrameType | None) -> None:
    """Handle SIGINT (Ctrl+C) gracefully."""
    log.info("Closed by user (Ctrl+C)")
    sys.exit(0)


if __name__ == "__main__":
    signal(SIGINT, sigint_handler)
    main()
