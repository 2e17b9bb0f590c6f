"""Authorization engine.

Every gated operation maps to a single predicate over an ``AccessContext``. Checks
read capability flags or exact role equality on the caller's membership in the
targeted team; there is no role hierarchy. A membership in a different team never
counts.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from enum import Enum

from workflow_studio.errors import Forbidden
from workflow_studio.models import Capability, Role, TeamMember, Visibility, Workflow

logger = logging.getLogger(__name__)


class Operation(str, Enum):
    CREATE_TEAM_WORKFLOW = "create_team_workflow"
    UPDATE_WORKFLOW = "update_workflow"
    DELETE_WORKFLOW = "delete_workflow"
    INVITE_TO_TEAM = "invite_to_team"
    REMOVE_FROM_TEAM = "remove_from_team"
    UPDATE_TEAM = "update_team"
    DELETE_TEAM = "delete_team"
    SHARE_WORKFLOW = "share_workflow"
    VIEW_TEAM = "view_team"


@dataclass(frozen=True, slots=True)
class AccessContext:
    """What the engine knows about one call.

    Attributes:
        caller_id: Authenticated user id.
        team_id: Team the operation targets, if any.
        membership: The caller's membership record for ``team_id`` (or None).
        resource_owner_id: Owner of the workflow being acted on, if any.
    """

    caller_id: str
    team_id: str | None = None
    membership: TeamMember | None = None
    resource_owner_id: str | None = None

    @property
    def member(self) -> TeamMember | None:
        m = self.membership
        if m is None or self.team_id is None:
            return None
        if m.team_id != self.team_id or m.user_id != self.caller_id:
            return None
        return m

    @property
    def is_resource_owner(self) -> bool:
        return self.resource_owner_id is not None and self.resource_owner_id == self.caller_id


Rule = Callable[[AccessContext], bool]


def _capability(cap: Capability) -> Rule:
    def check(ctx: AccessContext) -> bool:
        member = ctx.member
        return member is not None and member.has(cap)

    return check


def _role_in(*roles: Role) -> Rule:
    def check(ctx: AccessContext) -> bool:
        member = ctx.member
        return member is not None and member.role in roles

    return check


def _either(*rules: Rule) -> Rule:
    return lambda ctx: any(rule(ctx) for rule in rules)


def _is_owner(ctx: AccessContext) -> bool:
    return ctx.is_resource_owner


def _is_member(ctx: AccessContext) -> bool:
    return ctx.member is not None


POLICY: Mapping[Operation, Rule] = {
    Operation.CREATE_TEAM_WORKFLOW: _capability(Capability.CREATE_WORKFLOWS),
    Operation.UPDATE_WORKFLOW: _either(_capability(Capability.EDIT_WORKFLOWS), _is_owner),
    Operation.DELETE_WORKFLOW: _either(_capability(Capability.DELETE_WORKFLOWS), _is_owner),
    Operation.INVITE_TO_TEAM: _capability(Capability.INVITE_MEMBERS),
    Operation.REMOVE_FROM_TEAM: _either(
        _role_in(Role.OWNER), _capability(Capability.MANAGE_ROLES)
    ),
    Operation.UPDATE_TEAM: _role_in(Role.OWNER, Role.ADMIN),
    Operation.DELETE_TEAM: _role_in(Role.OWNER),
    Operation.SHARE_WORKFLOW: lambda ctx: _is_owner(ctx) and _is_member(ctx),
    Operation.VIEW_TEAM: _is_member,
}


class AuthorizationEngine:
    """Evaluates the fixed policy table."""

    def __init__(self, policy: Mapping[Operation, Rule] = POLICY) -> None:
        missing = set(Operation) - set(policy)
        if missing:
            raise ValueError(f"Policy has no rule for: {sorted(m.value for m in missing)}")
        self._policy = policy

    def is_allowed(self, operation: Operation, ctx: AccessContext) -> bool:
        return self._policy[operation](ctx)

    def authorize(self, operation: Operation, ctx: AccessContext) -> None:
        """Raise ``Forbidden`` unless the policy allows ``operation``."""

        if self.is_allowed(operation, ctx):
            return
        logger.info(
            "Authorization denied",
            extra={
                "operation": operation.value,
                "caller_id": ctx.caller_id,
                "team_id": ctx.team_id,
            },
        )
        raise Forbidden()

    @staticmethod
    def can_view_workflow(
        workflow: Workflow, caller_id: str, membership: TeamMember | None
    ) -> bool:
        """Owner always; others only through membership of the workflow's team.

        Team-scoped workflows are visible to members when their visibility is
        ``team`` or ``public``; ``private`` stays with the owner.
        """

        if workflow.owner_id == caller_id:
            return True
        if workflow.team_id is None or membership is None:
            return False
        if membership.team_id != workflow.team_id or membership.user_id != caller_id:
            return False
        return workflow.visibility in (Visibility.TEAM, Visibility.PUBLIC)
