"""Structured logging for the request pipeline."""

import logging
from typing import Any

from backend.app.errors import ApiError
from backend.app.pipeline.composer import PipelineLogger
from backend.app.pipeline.context import RequestContext
from backend.app.pipeline.contract import Stage

logger = logging.getLogger(__name__)


def configure_logging(level: str) -> None:
    """Configure root logging once at startup."""
    logging.basicConfig(
        level=level.upper(),
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )


def _base_fields(route: str, ctx: RequestContext, latency_ms: float) -> dict[str, Any]:
    log_data: dict[str, Any] = {
        "request_id": ctx.request_id,
        "route": route,
        "latency_ms": round(latency_ms, 2),
    }
    if ctx.identity is not None:
        log_data["user_id"] = str(ctx.identity.id)
    if ctx.membership is not None:
        log_data["org_id"] = str(ctx.membership.organization_id)
        log_data["role"] = ctx.membership.role.value
    return log_data


class StructuredPipelineLogger(PipelineLogger):
    """Structured logger for pipeline outcomes."""

    def log_failure(
        self,
        route: str,
        ctx: RequestContext,
        stage: Stage,
        error: ApiError,
        latency_ms: float,
    ) -> None:
        """Log a short-circuited request with structured data."""
        log_data = _base_fields(route, ctx, latency_ms)
        log_data.update(
            {
                "stage": stage.value,
                "kind": error.kind.value,
                "reason": error.reason,
            }
        )
        if error.field_errors:
            log_data["fields"] = [err.path for err in error.field_errors]

        logger.warning(
            f"Pipeline rejected: {route} at {stage.value} - {error.kind.value}",
            extra={"structured": log_data},
        )

    def log_dispatch(self, route: str, ctx: RequestContext, latency_ms: float) -> None:
        """Log a dispatched request with structured data."""
        logger.info(f"Pipeline dispatched: {route}", extra={"structured": _base_fields(route, ctx, latency_ms)})
