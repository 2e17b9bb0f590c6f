"""JSON-file persistence for the studio state.

The whole state (users, teams, memberships, workflows, notifications) lives in one
JSON document. ``StateStore.transaction()`` is the unit of work: it holds the store
lock, hands out a ``StoreSession`` over a private copy of the state and writes the
copy back only when the block exits without an exception. An exception anywhere in
the block discards every change made in it.

This is a single-process store. Moving to a real database means re-implementing
``StoreSession`` on top of it; the services only talk to the session.
"""

from __future__ import annotations

import json
import logging
import os
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path

from pydantic import BaseModel, Field, ValidationError

from workflow_studio.models import Notification, Team, TeamMember, UserProfile, Workflow

logger = logging.getLogger(__name__)


class StoreError(Exception):
    """Persistence failure (unreadable state file, failed write)."""


class UniqueViolation(StoreError):
    """A uniqueness constraint was violated."""


class StudioState(BaseModel):
    users: dict[str, UserProfile] = Field(default_factory=dict)
    teams: dict[str, Team] = Field(default_factory=dict)
    members: dict[str, TeamMember] = Field(default_factory=dict)
    workflows: dict[str, Workflow] = Field(default_factory=dict)
    notifications: list[Notification] = Field(default_factory=list)


class StoreSession:
    """Queries and mutations over one transaction's working copy."""

    def __init__(self, state: StudioState) -> None:
        self._state = state
        self.dirty = False

    @property
    def state(self) -> StudioState:
        return self._state

    # Users

    def get_user(self, user_id: str) -> UserProfile | None:
        return self._state.users.get(user_id)

    def find_user_by_email(self, email: str) -> UserProfile | None:
        wanted = email.strip().lower()
        if not wanted:
            return None
        for user in self._state.users.values():
            if user.email.strip().lower() == wanted:
                return user
        return None

    def add_user(self, user: UserProfile) -> UserProfile:
        if user.id in self._state.users:
            raise UniqueViolation(f"User already exists: {user.id}")
        self._state.users[user.id] = user
        self.dirty = True
        return user

    # Teams

    def get_team(self, team_id: str) -> Team | None:
        return self._state.teams.get(team_id)

    def put_team(self, team: Team) -> Team:
        self._state.teams[team.id] = team
        self.dirty = True
        return team

    def delete_team(self, team_id: str) -> None:
        if self._state.teams.pop(team_id, None) is not None:
            self.dirty = True

    # Memberships

    def get_member(self, member_id: str) -> TeamMember | None:
        return self._state.members.get(member_id)

    def get_membership(self, team_id: str | None, user_id: str) -> TeamMember | None:
        if team_id is None:
            return None
        for member in self._state.members.values():
            if member.team_id == team_id and member.user_id == user_id:
                return member
        return None

    def list_members(self, team_id: str) -> list[TeamMember]:
        members = [m for m in self._state.members.values() if m.team_id == team_id]
        return sorted(members, key=lambda m: m.joined_at)

    def list_memberships(self, user_id: str) -> list[TeamMember]:
        members = [m for m in self._state.members.values() if m.user_id == user_id]
        return sorted(members, key=lambda m: m.joined_at)

    def add_member(self, member: TeamMember) -> TeamMember:
        """Insert a membership.

        Raises:
            UniqueViolation: If the user already belongs to the team.
        """

        if self.get_membership(member.team_id, member.user_id) is not None:
            raise UniqueViolation(
                f"User {member.user_id} is already a member of team {member.team_id}"
            )
        self._state.members[member.id] = member
        self.dirty = True
        return member

    def delete_member(self, member_id: str) -> None:
        if self._state.members.pop(member_id, None) is not None:
            self.dirty = True

    # Workflows

    def get_workflow(self, workflow_id: str) -> Workflow | None:
        return self._state.workflows.get(workflow_id)

    def list_workflows(
        self, *, owner_id: str | None = None, team_id: str | None = None
    ) -> list[Workflow]:
        """Workflows matching every given filter, most recently modified first."""

        found = [
            w
            for w in self._state.workflows.values()
            if (owner_id is None or w.owner_id == owner_id)
            and (team_id is None or w.team_id == team_id)
        ]
        return sorted(found, key=lambda w: w.updated_at, reverse=True)

    def put_workflow(self, workflow: Workflow) -> Workflow:
        self._state.workflows[workflow.id] = workflow
        self.dirty = True
        return workflow

    def delete_workflow(self, workflow_id: str) -> None:
        if self._state.workflows.pop(workflow_id, None) is not None:
            self.dirty = True

    # Notifications

    def add_notification(self, notification: Notification) -> Notification:
        self._state.notifications.append(notification)
        self.dirty = True
        return notification

    def list_notifications(self, user_id: str) -> list[Notification]:
        found = [n for n in self._state.notifications if n.user_id == user_id]
        return sorted(found, key=lambda n: n.created_at, reverse=True)


@dataclass
class StateStore:
    """Lock-guarded state store; in-memory when ``path`` is None."""

    path: Path | None = None

    def __post_init__(self) -> None:
        self._lock = threading.RLock()
        self._memory = StudioState()

    def _load_unlocked(self) -> StudioState:
        if self.path is None:
            return self._memory.model_copy(deep=True)
        if not self.path.exists():
            return StudioState()
        try:
            return StudioState.model_validate_json(self.path.read_text(encoding="utf-8"))
        except (OSError, ValidationError) as e:
            logger.error("Failed to read state file", extra={"path": str(self.path)})
            raise StoreError(f"Unreadable state file: {self.path}") from e

    def _save_unlocked(self, state: StudioState) -> None:
        if self.path is None:
            self._memory = state.model_copy(deep=True)
            return
        payload = json.dumps(state.model_dump(mode="json"), indent=2, ensure_ascii=False) + "\n"
        tmp = self.path.with_name(self.path.name + ".tmp")
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            tmp.write_text(payload, encoding="utf-8")
            os.replace(tmp, self.path)
        except OSError as e:
            logger.error("Failed to write state file", extra={"path": str(self.path)})
            raise StoreError(f"Could not write state file: {self.path}") from e

    @contextmanager
    def transaction(self) -> Iterator[StoreSession]:
        """Run a unit of work; commit on normal exit, discard on exception."""

        with self._lock:
            session = StoreSession(self._load_unlocked())
            yield session
            if session.dirty:
                self._save_unlocked(session.state)
