"""Bind route contracts to FastAPI.

``PipelineRouter.route`` registers a handler behind a ``RequestPipeline``. The
endpoint reads the raw request into an ``InboundRequest``, runs the pipeline,
and renders either the handler's result or the first error as JSON. Handlers
receive the populated ``RequestContext`` and the request's database session.
"""

import json
import logging
import uuid
from collections.abc import Awaitable, Callable
from typing import Annotated, Any

from fastapi import APIRouter, Depends, Request
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.api.auth import get_membership_store, get_token_verifier
from backend.app.db.engine import get_session
from backend.app.db.repositories import MembershipStore
from backend.app.errors import ApiError
from backend.app.pipeline.composer import InboundRequest, RequestPipeline
from backend.app.pipeline.context import RequestContext
from backend.app.pipeline.contract import RouteContract
from backend.app.pipeline.membership import MembershipResolver
from backend.app.pipeline.tokens import TokenVerifier
from backend.app.utils.logging import StructuredPipelineLogger
from backend.app.utils.metrics import PrometheusPipelineMetrics

logger = logging.getLogger(__name__)

Handler = Callable[[RequestContext, AsyncSession], Awaitable[Any]]

_metrics = PrometheusPipelineMetrics()
_pipeline_logger = StructuredPipelineLogger()


async def read_inbound(request: Request) -> InboundRequest:
    """Capture the parts of ``request`` the pipeline looks at."""
    body: Any = None
    body_malformed = False
    raw = await request.body()
    if raw:
        try:
            body = json.loads(raw)
        # Deeply nested arrays exhaust the decoder's recursion limit
        except (json.JSONDecodeError, UnicodeDecodeError, RecursionError):
            body_malformed = True

    request_id = getattr(request.state, "request_id", None) or uuid.uuid4().hex

    return InboundRequest(
        authorization=request.headers.get("authorization"),
        path_params=dict(request.path_params),
        query=dict(request.query_params),
        body=body,
        body_present=bool(raw),
        body_malformed=body_malformed,
        request_id=request_id,
    )


def error_response(error: ApiError) -> JSONResponse:
    """Render an ``ApiError`` as the failure envelope."""
    return JSONResponse(
        status_code=error.status_code,
        content=error.to_body(),
        headers=error.headers() or None,
    )


def success_response(data: Any, status_code: int, message: str | None = None) -> JSONResponse:
    """Render a handler result as the success envelope."""
    content: dict[str, Any] = {"success": True, "data": jsonable_encoder(data)}
    if message:
        content["message"] = message
    return JSONResponse(status_code=status_code, content=content)


class PipelineRouter:
    """An ``APIRouter`` whose routes are declared by ``RouteContract``."""

    def __init__(self, prefix: str = "", tags: list[str] | None = None) -> None:
        self.router = APIRouter(prefix=prefix, tags=list(tags or []))
        self.contracts: dict[str, RouteContract] = {}

    def route(
        self,
        method: str,
        path: str,
        *,
        contract: RouteContract,
        status_code: int = 200,
        message: str | None = None,
    ) -> Callable[[Handler], Handler]:
        """Register ``handler`` at ``method path`` behind ``contract``.

        Args:
            method: HTTP method
            path: Path relative to the router prefix
            contract: Route declaration the pipeline interprets
            status_code: Status for a successful response
            message: Optional human-readable message in the success envelope

        Returns:
            Decorator returning the handler unchanged
        """
        if contract.name in self.contracts:
            raise ValueError(f"Duplicate route name: {contract.name}")

        def decorator(handler: Handler) -> Handler:
            async def endpoint(
                request: Request,
                session: Annotated[AsyncSession, Depends(get_session)],
                verifier: Annotated[TokenVerifier, Depends(get_token_verifier)],
                store: Annotated[MembershipStore, Depends(get_membership_store)],
            ) -> JSONResponse:
                pipeline = RequestPipeline(
                    contract,
                    verifier,
                    MembershipResolver(store),
                    metrics=_metrics,
                    logger=_pipeline_logger,
                )
                inbound = await read_inbound(request)

                try:
                    dispatched = await pipeline.dispatch(inbound, lambda ctx: handler(ctx, session))
                except ApiError as e:
                    _metrics.inc_handler_rejection(contract.name, e.kind.value, e.reason)
                    logger.info(
                        f"Handler rejected: {contract.name} - {e.kind.value}",
                        extra={
                            "structured": {
                                "request_id": inbound.request_id,
                                "route": contract.name,
                                "kind": e.kind.value,
                                "reason": e.reason,
                            }
                        },
                    )
                    return error_response(e)

                if dispatched.outcome.error is not None:
                    return error_response(dispatched.outcome.error)

                return success_response(dispatched.result, status_code, message)

            endpoint.__name__ = handler.__name__
            endpoint.__doc__ = handler.__doc__

            self.router.add_api_route(
                path,
                endpoint,
                methods=[method],
                status_code=status_code,
                name=contract.name,
                response_model=None,
            )
            self.contracts[contract.name] = contract
            return handler

        return decorator

    def get(self, path: str, **kwargs: Any) -> Callable[[Handler], Handler]:
        return self.route("GET", path, **kwargs)

    def post(self, path: str, **kwargs: Any) -> Callable[[Handler], Handler]:
        return self.route("POST", path, **kwargs)

    def patch(self, path: str, **kwargs: Any) -> Callable[[Handler], Handler]:
        return self.route("PATCH", path, **kwargs)

    def delete(self, path: str, **kwargs: Any) -> Callable[[Handler], Handler]:
        return self.route("DELETE", path, **kwargs)
