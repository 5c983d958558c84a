from __future__ import annotations

from contextvars import ContextVar, Token

correlation_id_var: ContextVar[str | None] = ContextVar("correlation_id", default=None)
actor_name_var: ContextVar[str | None] = ContextVar("actor_name", default=None)


def set_correlation_id(value: str | None) -> Token[str | None]:
    return correlation_id_var.set(value)


def reset_correlation_id(token: Token[str | None]) -> None:
    correlation_id_var.reset(token)


def get_correlation_id() -> str | None:
    return correlation_id_var.get()


def set_actor_name(value: str | None) -> Token[str | None]:
    return actor_name_var.set(value)


def reset_actor_name(token: Token[str | None]) -> None:
    actor_name_var.reset(token)


def get_actor_name() -> str | None:
    return actor_name_var.get()


def get_log_context() -> dict[str, str | None]:
    return {"correlation_id": get_correlation_id(), "actor": get_actor_name()}
