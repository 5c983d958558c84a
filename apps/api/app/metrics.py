from __future__ import annotations

import re

from prometheus_client import CONTENT_TYPE_LATEST, Counter, Histogram, generate_latest
from starlette.requests import Request


http_requests_total = Counter(
    "http_requests_total",
    "Total HTTP requests",
    ["method", "path", "status"],
)

http_request_duration_seconds = Histogram(
    "http_request_duration_seconds",
    "HTTP request duration in seconds",
    ["method", "path"],
)

ledger_mutations_total = Counter(
    "ledger_mutations_total",
    "Total ledger entry mutations by ledger and operation",
    ["ledger", "operation"],
)

ledger_mutation_failures_total = Counter(
    "ledger_mutation_failures_total",
    "Total failed ledger entry mutations by reason",
    ["ledger", "reason"],
)

ledger_recompute_duration_seconds = Histogram(
    "ledger_recompute_duration_seconds",
    "Duration of full balance replays per account",
    ["ledger"],
)

entry_counter_increments_total = Counter(
    "entry_counter_increments_total",
    "Total entry counter increments by form type",
    ["form_type", "global_incremented"],
)

entry_counter_failures_total = Counter(
    "entry_counter_failures_total",
    "Total entry counter failures by reason",
    ["reason"],
)

archive_records_total = Counter(
    "archive_records_total",
    "Total archive operations by module and action",
    ["module_name", "action"],
)


_INT_RE = re.compile(r"/\d+\b")
_PATH_PARAM_RE = re.compile(r"\{[^{}]+\}")


def _normalize_route_template(path: str) -> str:
    return _PATH_PARAM_RE.sub("{id}", path)


def _sanitize_path(path: str) -> str:
    return _INT_RE.sub("/{id}", path)


def resolve_http_path_label(request: Request) -> str:
    route = request.scope.get("route")
    if route is not None:
        path_format = getattr(route, "path_format", None)
        if isinstance(path_format, str) and path_format:
            return _normalize_route_template(path_format)
        route_path = getattr(route, "path", None)
        if isinstance(route_path, str) and route_path:
            return _normalize_route_template(route_path)
    return _sanitize_path(request.url.path)


def observe_http_request(method: str, path: str, status: int, duration: float) -> None:
    status_str = str(status)
    http_requests_total.labels(method=method, path=path, status=status_str).inc()
    http_request_duration_seconds.labels(method=method, path=path).observe(duration)


def observe_ledger_mutation(ledger: str, operation: str) -> None:
    ledger_mutations_total.labels(ledger=ledger, operation=operation).inc()


def observe_ledger_mutation_failure(ledger: str, reason: str) -> None:
    ledger_mutation_failures_total.labels(ledger=ledger, reason=reason).inc()


def observe_ledger_recompute(ledger: str, duration: float) -> None:
    ledger_recompute_duration_seconds.labels(ledger=ledger).observe(duration)


def observe_entry_counter_increment(form_type: str, global_incremented: bool) -> None:
    entry_counter_increments_total.labels(
        form_type=form_type,
        global_incremented="true" if global_incremented else "false",
    ).inc()


def observe_entry_counter_failure(reason: str) -> None:
    entry_counter_failures_total.labels(reason=reason).inc()


def observe_archive(module_name: str, action: str) -> None:
    archive_records_total.labels(module_name=module_name, action=action).inc()


def generate_metrics_payload() -> bytes:
    return generate_latest()


def metrics_content_type() -> str:
    return CONTENT_TYPE_LATEST
