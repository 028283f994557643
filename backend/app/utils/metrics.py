"""Prometheus metrics for the request pipeline."""

from prometheus_client import Counter, Histogram

from backend.app.pipeline.composer import PipelineMetrics

pipeline_requests_total = Counter(
    "pipeline_requests_total",
    "Requests leaving the pipeline, by route and outcome",
    ["route", "outcome"],
)

pipeline_failures_total = Counter(
    "pipeline_failures_total",
    "Pipeline short-circuits, by failing stage",
    ["stage", "kind", "reason"],
)

pipeline_handler_rejections_total = Counter(
    "pipeline_handler_rejections_total",
    "Dispatched requests whose handler raised an ApiError",
    ["route", "kind", "reason"],
)

pipeline_latency_ms = Histogram(
    "pipeline_latency_ms",
    "Time spent in the pipeline before dispatch or rejection, in milliseconds",
    ["route"],
    buckets=[1, 2, 5, 10, 25, 50, 100, 250, 500, 1000],
)


class PrometheusPipelineMetrics(PipelineMetrics):
    """Prometheus-based pipeline metrics implementation."""

    def record_outcome(self, route: str, outcome: str, latency_ms: float) -> None:
        """Record outcome and latency."""
        pipeline_requests_total.labels(route=route, outcome=outcome).inc()
        pipeline_latency_ms.labels(route=route).observe(latency_ms)

    def inc_failure(self, stage: str, kind: str, reason: str | None) -> None:
        """Increment failure counter."""
        pipeline_failures_total.labels(stage=stage, kind=kind, reason=reason or "none").inc()

    def inc_handler_rejection(self, route: str, kind: str, reason: str | None) -> None:
        """Increment handler rejection counter."""
        pipeline_handler_rejections_total.labels(route=route, kind=kind, reason=reason or "none").inc()
