"""Request pipeline composer.

Runs a route's stages strictly left to right:

    params -> authenticate -> membership -> role -> body/query -> handler

Each stage returns ``Ok``/``Err``. The first ``Err`` moves the request to
``FAILED`` and nothing after it runs. The handler is invoked exactly once, and
only when every stage succeeded.
"""

import time
import uuid
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass, field
from typing import Any, Generic, TypeVar

from pydantic import BaseModel

from backend.app.errors import ApiError, FieldError, ValidationError
from backend.app.pipeline.context import RequestContext
from backend.app.pipeline.contract import PipelineState, RouteContract, Stage
from backend.app.pipeline.membership import MembershipResolver, check_role
from backend.app.pipeline.result import Err, Result
from backend.app.pipeline.tokens import TokenVerifier
from backend.app.pipeline.validation import SchemaValidator

T = TypeVar("T")


@dataclass(frozen=True)
class InboundRequest:
    """Transport-agnostic view of an incoming request."""

    authorization: str | None = None
    path_params: Mapping[str, Any] = field(default_factory=dict)
    query: Mapping[str, Any] = field(default_factory=dict)
    body: Any = None
    body_present: bool = False
    body_malformed: bool = False
    request_id: str = field(default_factory=lambda: uuid.uuid4().hex)


@dataclass
class PipelineOutcome:
    """Where a request ended up and why."""

    state: PipelineState
    trail: list[PipelineState]
    context: RequestContext
    error: ApiError | None = None
    failed_stage: Stage | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass
class Dispatched(Generic[T]):
    """Outcome plus the handler's return value, if it ran."""

    outcome: PipelineOutcome
    result: T | None = None


# Metrics interface (implemented by utils.metrics)
class PipelineMetrics:
    """Interface for pipeline metrics."""

    def record_outcome(self, route: str, outcome: str, latency_ms: float) -> None:
        """Record how a request left the pipeline."""
        pass

    def inc_failure(self, stage: str, kind: str, reason: str | None) -> None:
        """Increment stage failure counter."""
        pass

    def inc_handler_rejection(self, route: str, kind: str, reason: str | None) -> None:
        """Increment counter of handlers that raised after dispatch."""
        pass


# Logging interface (implemented by utils.logging)
class PipelineLogger:
    """Interface for structured pipeline logging."""

    def log_failure(
        self,
        route: str,
        ctx: RequestContext,
        stage: Stage,
        error: ApiError,
        latency_ms: float,
    ) -> None:
        """Log a short-circuited request."""
        pass

    def log_dispatch(self, route: str, ctx: RequestContext, latency_ms: float) -> None:
        """Log a request handed to its business handler."""
        pass


class RequestPipeline:
    """Interprets a ``RouteContract`` for one request at a time.

    The pipeline itself holds no per-request state, so one instance may serve
    many concurrent requests.
    """

    def __init__(
        self,
        contract: RouteContract,
        verifier: TokenVerifier,
        resolver: MembershipResolver,
        validator: SchemaValidator | None = None,
        metrics: PipelineMetrics | None = None,
        logger: PipelineLogger | None = None,
    ) -> None:
        """Initialize pipeline.

        Args:
            contract: Route declaration
            verifier: Credential verifier
            resolver: Membership resolver
            validator: Schema validator (optional)
            metrics: Metrics recorder (optional, defaults to no-op)
            logger: Structured logger (optional, defaults to no-op)
        """
        self._contract = contract
        self._verifier = verifier
        self._resolver = resolver
        self._validator = validator or SchemaValidator()
        self._metrics = metrics or PipelineMetrics()
        self._logger = logger or PipelineLogger()
        self._stages: dict[Stage, Callable[[InboundRequest, RequestContext], Awaitable[Err | None]]] = {
            Stage.params: self._validate_params,
            Stage.authenticate: self._authenticate,
            Stage.membership: self._resolve_membership,
            Stage.role: self._check_role,
            Stage.body_query: self._validate_body_query,
        }

    @property
    def contract(self) -> RouteContract:
        return self._contract

    async def run(self, inbound: InboundRequest) -> PipelineOutcome:
        """Run every stage up to (not including) dispatch."""
        started = time.perf_counter()
        ctx = RequestContext(request_id=inbound.request_id)
        trail = [PipelineState.start]

        for stage in self._contract.stages():
            failure = await self._stages[stage](inbound, ctx)
            if failure is not None:
                trail.append(PipelineState.failed)
                elapsed_ms = (time.perf_counter() - started) * 1000
                error = failure.error
                self._metrics.inc_failure(stage.value, error.kind.value, error.reason)
                self._metrics.record_outcome(self._contract.name, error.kind.value, elapsed_ms)
                self._logger.log_failure(self._contract.name, ctx, stage, error, elapsed_ms)
                return PipelineOutcome(
                    state=PipelineState.failed,
                    trail=trail,
                    context=ctx,
                    error=error,
                    failed_stage=stage,
                )
            trail.append(stage.reaches)

        return PipelineOutcome(state=trail[-1], trail=trail, context=ctx)

    async def dispatch(
        self,
        inbound: InboundRequest,
        handler: Callable[[RequestContext], Awaitable[T]],
    ) -> Dispatched[T]:
        """Run the pipeline and, on success, call ``handler`` exactly once.

        Exceptions raised by the handler propagate to the caller.
        """
        started = time.perf_counter()
        outcome = await self.run(inbound)
        if not outcome.ok:
            return Dispatched(outcome=outcome)

        outcome.state = PipelineState.dispatched
        outcome.trail.append(PipelineState.dispatched)
        elapsed_ms = (time.perf_counter() - started) * 1000
        self._metrics.record_outcome(self._contract.name, "dispatched", elapsed_ms)
        self._logger.log_dispatch(self._contract.name, outcome.context, elapsed_ms)

        result = await handler(outcome.context)
        return Dispatched(outcome=outcome, result=result)

    async def _validate_params(self, inbound: InboundRequest, ctx: RequestContext) -> Err | None:
        if self._contract.params is None:
            return None
        result = self._validator.validate(
            dict(inbound.path_params), self._contract.params, location="params"
        )
        if isinstance(result, Err):
            return result
        ctx.params = result.value
        return None

    async def _authenticate(self, inbound: InboundRequest, ctx: RequestContext) -> Err | None:
        result = await self._verifier.verify_header(inbound.authorization)
        if isinstance(result, Err):
            return result
        ctx.identity = result.value
        return None

    async def _resolve_membership(self, inbound: InboundRequest, ctx: RequestContext) -> Err | None:
        if ctx.identity is None or ctx.params is None:
            raise RuntimeError(f"{self._contract.name}: membership stage ran out of order")
        org_id = getattr(ctx.params, self._contract.org_param)
        result = await self._resolver.resolve(
            ctx.identity,
            org_id,
            reveal_missing_org=self._contract.reveal_missing_org,
        )
        if isinstance(result, Err):
            return result
        ctx.membership = result.value
        return None

    async def _check_role(self, inbound: InboundRequest, ctx: RequestContext) -> Err | None:
        if ctx.membership is None or self._contract.roles is None:
            raise RuntimeError(f"{self._contract.name}: role stage ran out of order")
        result = check_role(ctx.membership, self._contract.roles)
        return result if isinstance(result, Err) else None

    async def _validate_body_query(self, inbound: InboundRequest, ctx: RequestContext) -> Err | None:
        if self._contract.body is not None:
            body = self._validate_body(inbound, self._contract.body)
            if isinstance(body, Err):
                return body
            ctx.body = body.value

        if self._contract.query is not None:
            query = self._validator.validate(
                dict(inbound.query), self._contract.query, location="query"
            )
            if isinstance(query, Err):
                return query
            ctx.query = query.value

        return None

    def _validate_body(self, inbound: InboundRequest, schema: type[BaseModel]) -> Result[BaseModel]:
        if inbound.body_malformed:
            return Err(
                ValidationError(
                    "Invalid request body",
                    reason="invalid_body",
                    field_errors=[
                        FieldError(path="body", message="Malformed JSON body", type="json_invalid")
                    ],
                )
            )
        if inbound.body_present and inbound.body is None:
            return Err(
                ValidationError(
                    "Invalid request body",
                    reason="invalid_body",
                    field_errors=[
                        FieldError(
                            path="body", message="Body must be a JSON object", type="model_type"
                        )
                    ],
                )
            )
        return self._validator.validate(inbound.body, schema, location="body")
