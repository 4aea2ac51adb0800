"""Wires the SMS dispatcher from environment configuration."""

from __future__ import annotations

import logging

from carebridge.agent.actions.handle_incoming_sms import SmsDispatcher
from carebridge.agent.extremities import build_sms_transport_from_env
from carebridge.agent.io.adapters import RegisteredMessageHandler, SmsTransport, UserDirectory
from carebridge.agent.nervous_system.migrate import apply_schema
from carebridge.agent.nervous_system.paths import resolve_directory_db_path
from carebridge.agent.nervous_system.users import SqliteUserDirectory
from carebridge.config.settings import load_dispatcher_config

logger = logging.getLogger(__name__)


def build_dispatcher(
    *,
    directory: UserDirectory | None = None,
    transport: SmsTransport | None = None,
    registered_handler: RegisteredMessageHandler | None = None,
) -> SmsDispatcher:
    config = load_dispatcher_config()
    if directory is None:
        db_path = resolve_directory_db_path()
        apply_schema(db_path)
        directory = SqliteUserDirectory(db_path)
        logger.info("User directory db=%s", db_path)
    if transport is None:
        transport = build_sms_transport_from_env()
    logger.info("SMS transport=%s", type(transport).__name__)
    return SmsDispatcher(
        directory=directory,
        transport=transport,
        config=config,
        registered_handler=registered_handler,
    )
