from __future__ import annotations

import argparse
import logging
import time
import uuid
from pathlib import Path

import uvicorn
from dotenv import load_dotenv

from carebridge.agent.actions.handle_incoming_sms import DispatchError
from carebridge.agent.extremities.log_sms_extremity import LogSmsTransport
from carebridge.agent.extremities.twilio_sms_extremity import TwilioConfigError
from carebridge.agent.io.contracts import InboundSms
from carebridge.agent.nervous_system.migrate import apply_schema
from carebridge.agent.nervous_system.paths import resolve_directory_db_path
from carebridge.agent.nervous_system.users import SqliteUserDirectory, list_users
from carebridge.agent.runtime import build_dispatcher
from carebridge.config import settings
from carebridge.config.settings import SmsConfigError


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(prog="carebridge")
    parser.add_argument("--log-level", default=None)
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("init-db", help="Create the user directory schema")

    simulate_parser = sub.add_parser(
        "simulate", help="Run one inbound SMS through the dispatcher"
    )
    simulate_parser.add_argument("--from", dest="from_number", required=True, help="Sender phone number")
    simulate_parser.add_argument("--body", required=True, help="Message body")
    simulate_parser.add_argument(
        "--to", dest="to_number", default=None, help="Recipient (defaults to the system number)"
    )
    simulate_parser.add_argument(
        "--dry-run", action="store_true", help="Log outbound SMS instead of sending it"
    )

    users_parser = sub.add_parser("users", help="Inspect the user directory")
    users_sub = users_parser.add_subparsers(dest="users_command", required=True)
    users_list = users_sub.add_parser("list", help="List registered users")
    users_list.add_argument("--limit", type=int, default=50, help="Max rows")

    serve_parser = sub.add_parser("serve", help="Run the SMS webhook API")
    serve_parser.add_argument("--host", default=None, help="Bind host")
    serve_parser.add_argument("--port", type=int, default=None, help="Bind port")

    _load_env()
    args = parser.parse_args(argv)
    _configure_logging(args.log_level or settings.get_log_level())
    db_path = resolve_directory_db_path()
    logging.info("Directory DB path=%s exists=%s", db_path, db_path.exists())
    apply_schema(db_path)

    if args.command == "init-db":
        print(f"Applied schema to {db_path}")
        return
    if args.command == "simulate":
        _command_simulate(args, db_path)
        return
    if args.command == "users":
        _command_users(args, db_path)
        return
    if args.command == "serve":
        _command_serve(args)
        return


def _command_simulate(args: argparse.Namespace, db_path: Path) -> None:
    transport = LogSmsTransport() if args.dry_run else None
    try:
        dispatcher = build_dispatcher(
            directory=SqliteUserDirectory(db_path),
            transport=transport,
        )
    except (SmsConfigError, TwilioConfigError) as exc:
        print(f"Configuration error: {exc}")
        raise SystemExit(2) from exc
    to_number = args.to_number or settings.get_system_phone_number() or ""
    message = InboundSms(
        from_number=str(args.from_number).strip(),
        to_number=to_number,
        body=args.body,
        message_sid=f"cli-{uuid.uuid4()}",
        received_at=time.time(),
    )
    try:
        outcome = dispatcher.handle(message)
    except DispatchError as exc:
        print(f"Dispatch failed at {exc.stage}: {exc.cause}")
        raise SystemExit(1) from exc
    print(f"Outcome: {outcome.value}")
    if isinstance(transport, LogSmsTransport):
        for sent in transport.sent:
            print(f"- to={sent.to_number} from={sent.from_number}: {sent.body}")


def _command_users(args: argparse.Namespace, db_path: Path) -> None:
    if args.users_command == "list":
        users = list_users(limit=args.limit, db_path=db_path)
        if not users:
            print("No users registered.")
            return
        for user in users:
            print(f"- {user['user_id']} {user['phone_number']} created_at={user['created_at']}")


def _command_serve(args: argparse.Namespace) -> None:
    uvicorn.run(
        "carebridge.infrastructure.api:app",
        host=args.host or settings.get_api_host(),
        port=args.port or settings.get_api_port(),
        log_level=settings.get_log_level().lower(),
    )


def _configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, str(level).upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def _load_env() -> None:
    env_path = Path.cwd() / ".env"
    if env_path.exists():
        load_dotenv(env_path)


if __name__ == "__main__":
    main()
