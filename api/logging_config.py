"""
Structured logging configuration for the service.
"""
import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict, Optional

import structlog


def configure_logging(environment: str = "development"):
    """Configure structlog: JSON lines in production, console output otherwise."""
    level = logging.INFO if environment == "production" else logging.DEBUG

    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=level)

    renderer = (
        structlog.processors.JSONRenderer()
        if environment == "production"
        else structlog.dev.ConsoleRenderer()
    )
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )

    return structlog.get_logger()


def get_logger(name: Optional[str] = None):
    """Get a configured logger instance."""
    if name:
        return structlog.get_logger(name)
    return structlog.get_logger()


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class ActivityLogger:
    """Audit trail of game actions and socket events."""

    def __init__(self):
        self.logger = get_logger("activity")

    def log_game_action(
        self,
        game_id: str,
        player_id: str,
        action: str,
        outcome: str = "applied",
        details: Optional[Dict[str, Any]] = None,
    ):
        self.logger.info(
            "game_action",
            game_id=game_id,
            player_id=player_id,
            action=action,
            outcome=outcome,
            details=details or {},
            timestamp=_now(),
        )

    def log_lobby_event(self, event_type: str, game_id: str, details: Optional[Dict[str, Any]] = None):
        self.logger.info(
            "lobby_event",
            event_type=event_type,
            game_id=game_id,
            details=details or {},
            timestamp=_now(),
        )

    def log_websocket_event(
        self,
        event_type: str,
        game_id: str,
        details: Optional[Dict[str, Any]] = None,
    ):
        self.logger.info(
            "websocket_event",
            event_type=event_type,
            game_id=game_id,
            details=details or {},
            timestamp=_now(),
        )


# Global activity logger instance
activity_logger = ActivityLogger()
