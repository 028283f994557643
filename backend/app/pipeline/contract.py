"""Per-route pipeline declarations.

A ``RouteContract`` is built once at import time and never mutated. Its
``stages()`` are the route's transition table: an ordered subset of the fixed
sequence params -> authenticate -> membership -> role -> body/query.
"""

from dataclasses import dataclass
from enum import Enum

from pydantic import BaseModel

from backend.app.pipeline.context import OrgRole


class PipelineState(str, Enum):
    """States a request moves through."""

    start = "start"
    params_validated = "params_validated"
    authenticated = "authenticated"
    membership_resolved = "membership_resolved"
    role_checked = "role_checked"
    body_query_validated = "body_query_validated"
    dispatched = "dispatched"
    failed = "failed"


class Stage(str, Enum):
    """A pipeline stage, named by the state it reaches on success."""

    params = "params"
    authenticate = "authenticate"
    membership = "membership"
    role = "role"
    body_query = "body_query"

    @property
    def reaches(self) -> PipelineState:
        return _STAGE_STATE[self]


_STAGE_STATE = {
    Stage.params: PipelineState.params_validated,
    Stage.authenticate: PipelineState.authenticated,
    Stage.membership: PipelineState.membership_resolved,
    Stage.role: PipelineState.role_checked,
    Stage.body_query: PipelineState.body_query_validated,
}

STAGE_ORDER: tuple[Stage, ...] = tuple(Stage)


@dataclass(frozen=True)
class RouteContract:
    """Declaration of what a route requires before its handler may run.

    Attributes:
        name: Route name used in logs and metrics
        params: Schema for path params
        body: Schema for the JSON body
        query: Schema for the query string
        public: Skip authentication entirely
        org_scoped: Resolve membership for the org named by ``org_param``
        roles: Roles allowed past the gate (implies ``org_scoped``)
        reveal_missing_org: Answer 404 rather than 403 for unknown orgs
        org_param: Name of the path param holding the organization ID
    """

    name: str
    params: type[BaseModel] | None = None
    body: type[BaseModel] | None = None
    query: type[BaseModel] | None = None
    public: bool = False
    org_scoped: bool = False
    roles: frozenset[OrgRole] | None = None
    reveal_missing_org: bool = False
    org_param: str = "org_id"

    def __post_init__(self) -> None:
        if self.roles is not None:
            if not self.roles:
                raise ValueError(f"{self.name}: roles must not be empty")
            object.__setattr__(self, "roles", frozenset(self.roles))
            object.__setattr__(self, "org_scoped", True)

        if self.public and self.org_scoped:
            raise ValueError(f"{self.name}: a public route cannot be organization scoped")

        if self.reveal_missing_org and not self.org_scoped:
            raise ValueError(f"{self.name}: reveal_missing_org requires organization scoping")

        if self.org_scoped:
            if self.params is None or self.org_param not in self.params.model_fields:
                raise ValueError(
                    f"{self.name}: organization scoped routes need a params schema "
                    f"with an '{self.org_param}' field"
                )

    def stages(self) -> tuple[Stage, ...]:
        """Stages this route runs, in execution order."""
        skipped: set[Stage] = set()
        if self.public:
            skipped.add(Stage.authenticate)
        if not self.org_scoped:
            skipped.update({Stage.membership, Stage.role})
        if self.roles is None:
            skipped.add(Stage.role)
        return tuple(stage for stage in STAGE_ORDER if stage not in skipped)

    def states(self) -> tuple[PipelineState, ...]:
        """States a fully successful request passes through."""
        return (
            PipelineState.start,
            *(stage.reaches for stage in self.stages()),
            PipelineState.dispatched,
        )
