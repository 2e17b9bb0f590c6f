"""Team lifecycle: creation, membership, details and deletion."""

from __future__ import annotations

import logging

from workflow_studio.authz import AccessContext, Operation
from workflow_studio.errors import Conflict, InvalidInput, NotFound, OwnerProtected
from workflow_studio.identity import CallerIdentity, ensure_profile, require_caller
from workflow_studio.models import (
    MemberDetails,
    Notification,
    Role,
    Team,
    TeamDetails,
    TeamMember,
    TeamSummary,
    Visibility,
    utc_now,
)
from workflow_studio.services.base import StoreBackedService, load_team
from workflow_studio.store import UniqueViolation

logger = logging.getLogger(__name__)

TEAM_INVITE_NOTIFICATION = "team-invite"
RECENT_WORKFLOWS_LIMIT = 5


class TeamService(StoreBackedService):
    """Team operations. Every method is one transaction and takes the caller explicitly."""

    def create_team(
        self, caller: CallerIdentity | None, *, name: str, description: str = ""
    ) -> Team:
        """Create a team with the caller as its owner.

        The team and the owner's membership (all capabilities) are written in the
        same transaction.
        """

        caller = require_caller(caller)
        if not name.strip():
            raise InvalidInput("Team name is required")

        with self._unit_of_work("create_team") as session:
            ensure_profile(session, caller)
            team = session.put_team(
                Team(name=name.strip(), description=description, owner_id=caller.user_id)
            )
            session.add_member(
                TeamMember.for_role(team_id=team.id, user_id=caller.user_id, role=Role.OWNER)
            )

        logger.info("Team created", extra={"team_id": team.id, "owner_id": caller.user_id})
        return team

    def get_user_teams(self, caller: CallerIdentity | None) -> list[TeamSummary]:
        caller = require_caller(caller)
        with self._unit_of_work("get_user_teams") as session:
            ensure_profile(session, caller)
            summaries: list[TeamSummary] = []
            for membership in session.list_memberships(caller.user_id):
                team = session.get_team(membership.team_id)
                if team is None:
                    continue
                summaries.append(
                    TeamSummary(
                        id=team.id,
                        name=team.name,
                        description=team.description,
                        avatar_url=team.avatar_url,
                        member_count=len(session.list_members(team.id)),
                        role=membership.role,
                    )
                )
        return summaries

    def get_team_details(self, caller: CallerIdentity | None, team_id: str) -> TeamDetails:
        """Members with their profiles plus the most recently modified shared workflows."""

        caller = require_caller(caller)
        with self._unit_of_work("get_team_details") as session:
            team = load_team(session, team_id)
            membership = session.get_membership(team_id, caller.user_id)
            self._authz.authorize(
                Operation.VIEW_TEAM,
                AccessContext(caller_id=caller.user_id, team_id=team_id, membership=membership),
            )

            members = [
                MemberDetails(member=m, user=session.get_user(m.user_id))
                for m in session.list_members(team_id)
            ]
            shared = [
                w
                for w in session.list_workflows(team_id=team_id)
                if w.visibility in (Visibility.TEAM, Visibility.PUBLIC)
            ]
        return TeamDetails(team=team, members=members, workflows=shared[:RECENT_WORKFLOWS_LIMIT])

    def invite_to_team(
        self,
        caller: CallerIdentity | None,
        team_id: str,
        *,
        email: str,
        role: Role | str = Role.MEMBER,
    ) -> TeamMember:
        """Add an existing user to the team with the preset capabilities of ``role``.

        Raises:
            Forbidden: Caller cannot invite members.
            NotFound: Team or invited user does not exist.
            Conflict: The user is already a member.
            OwnerProtected: ``role`` is owner; a team has exactly one owner.
        """

        caller = require_caller(caller)
        try:
            role = Role(role)
        except ValueError as e:
            raise InvalidInput(f"Unknown role: {role}") from e
        if role == Role.OWNER:
            raise OwnerProtected("A team has exactly one owner")

        with self._unit_of_work("invite_to_team") as session:
            load_team(session, team_id)
            membership = session.get_membership(team_id, caller.user_id)
            self._authz.authorize(
                Operation.INVITE_TO_TEAM,
                AccessContext(caller_id=caller.user_id, team_id=team_id, membership=membership),
            )

            invitee = session.find_user_by_email(email)
            if invitee is None:
                raise NotFound("User not found")

            try:
                member = session.add_member(
                    TeamMember.for_role(team_id=team_id, user_id=invitee.id, role=role)
                )
            except UniqueViolation as e:
                raise Conflict("User is already a member of this team") from e

            session.add_notification(
                Notification(
                    user_id=invitee.id,
                    type=TEAM_INVITE_NOTIFICATION,
                    content="You have been added to a team",
                )
            )

        logger.info(
            "Member invited",
            extra={"team_id": team_id, "user_id": invitee.id, "role": role.value},
        )
        return member

    def remove_from_team(self, caller: CallerIdentity | None, team_id: str, member_id: str) -> None:
        """Remove a membership. The owner's membership can never be removed."""

        caller = require_caller(caller)
        with self._unit_of_work("remove_from_team") as session:
            load_team(session, team_id)
            target = session.get_member(member_id)
            if target is None or target.team_id != team_id:
                raise NotFound("Member not found")
            if target.role == Role.OWNER:
                raise OwnerProtected()

            membership = session.get_membership(team_id, caller.user_id)
            self._authz.authorize(
                Operation.REMOVE_FROM_TEAM,
                AccessContext(caller_id=caller.user_id, team_id=team_id, membership=membership),
            )
            session.delete_member(member_id)

        logger.info("Member removed", extra={"team_id": team_id, "member_id": member_id})

    def update_team(
        self,
        caller: CallerIdentity | None,
        team_id: str,
        *,
        name: str | None = None,
        description: str | None = None,
        avatar_url: str | None = None,
    ) -> Team:
        caller = require_caller(caller)
        if name is not None and not name.strip():
            raise InvalidInput("Team name cannot be empty")

        with self._unit_of_work("update_team") as session:
            team = load_team(session, team_id)
            membership = session.get_membership(team_id, caller.user_id)
            self._authz.authorize(
                Operation.UPDATE_TEAM,
                AccessContext(caller_id=caller.user_id, team_id=team_id, membership=membership),
            )

            changes: dict[str, object] = {"updated_at": utc_now()}
            if name is not None:
                changes["name"] = name.strip()
            if description is not None:
                changes["description"] = description
            if avatar_url is not None:
                changes["avatar_url"] = avatar_url or None
            team = session.put_team(team.model_copy(update=changes))

        return team

    def delete_team(self, caller: CallerIdentity | None, team_id: str) -> None:
        """Delete a team (owner only).

        Memberships are deleted and the team's workflows are detached: they stay
        with their owners as private workflows.
        """

        caller = require_caller(caller)
        with self._unit_of_work("delete_team") as session:
            load_team(session, team_id)
            membership = session.get_membership(team_id, caller.user_id)
            self._authz.authorize(
                Operation.DELETE_TEAM,
                AccessContext(caller_id=caller.user_id, team_id=team_id, membership=membership),
            )

            for member in session.list_members(team_id):
                session.delete_member(member.id)
            detached = 0
            for workflow in session.list_workflows(team_id=team_id):
                session.put_workflow(
                    workflow.model_copy(update={"team_id": None, "visibility": Visibility.PRIVATE})
                )
                detached += 1
            session.delete_team(team_id)

        logger.info("Team deleted", extra={"team_id": team_id, "detached_workflows": detached})

    def list_notifications(self, caller: CallerIdentity | None) -> list[Notification]:
        caller = require_caller(caller)
        with self._unit_of_work("list_notifications") as session:
            return session.list_notifications(caller.user_id)
