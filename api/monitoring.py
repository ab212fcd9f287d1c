"""
Prometheus metrics for the game service.
"""
import time
from functools import wraps
from typing import Callable

from prometheus_client import Counter, Gauge, Histogram

from .logging_config import get_logger

logger = get_logger("monitoring")

http_requests_total = Counter(
    'http_requests_total',
    'Total HTTP requests',
    ['method', 'endpoint', 'status']
)

http_request_duration_seconds = Histogram(
    'http_request_duration_seconds',
    'HTTP request duration in seconds',
    ['method', 'endpoint']
)

websocket_connections = Gauge(
    'websocket_connections_total',
    'Current WebSocket connections',
    ['game_id']
)

active_games = Gauge(
    'active_games_total',
    'Games currently in progress'
)

game_actions_total = Counter(
    'game_actions_total',
    'Game actions submitted, by action type and outcome',
    ['action_type', 'outcome']
)

bot_actions_total = Counter(
    'bot_actions_total',
    'Actions taken by bots',
    ['level']
)

database_operations = Counter(
    'database_operations_total',
    'Database operations',
    ['operation', 'table']
)

database_operation_duration = Histogram(
    'database_operation_duration_seconds',
    'Database operation duration in seconds',
    ['operation', 'table']
)


def track_game_action(action_type: str, outcome: str) -> None:
    game_actions_total.labels(action_type=action_type, outcome=outcome).inc()


def track_database_operation(operation: str, table: str):
    """Decorator counting and timing one kind of database call."""
    def decorator(func: Callable) -> Callable:
        @wraps(func)
        def wrapper(*args, **kwargs):
            start_time = time.time()
            try:
                return func(*args, **kwargs)
            except Exception as e:
                logger.error(
                    "database_operation_error",
                    operation=operation,
                    table=table,
                    error=str(e)
                )
                raise
            finally:
                database_operations.labels(operation=operation, table=table).inc()
                database_operation_duration.labels(operation=operation, table=table).observe(
                    time.time() - start_time
                )
        return wrapper
    return decorator


def track_http_request(method: str, endpoint: str, status: int, duration: float) -> None:
    http_requests_total.labels(method=method, endpoint=endpoint, status=status).inc()
    http_request_duration_seconds.labels(method=method, endpoint=endpoint).observe(duration)
