"""Test configuration and fixtures."""

import logging
from collections.abc import Iterator
from pathlib import Path

import pytest

from workflow_studio.identity import CallerIdentity
from workflow_studio.models import Role, Team
from workflow_studio.services import TeamService, WorkflowService
from workflow_studio.store import StateStore


@pytest.fixture(autouse=True)
def _isolated_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    """Keep settings independent of the developer's environment and .env file."""
    monkeypatch.chdir(tmp_path)
    for name in (
        "LOG_LEVEL",
        "STUDIO_STATE_PATH",
        "STUDIO_CORS_ORIGINS",
        "STUDIO_LLM_OPENAI_API_KEY",
    ):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture(autouse=True)
def _restore_root_logging() -> Iterator[None]:
    """configure_logging replaces root handlers; put pytest's back afterwards."""
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)


@pytest.fixture
def store() -> StateStore:
    """Provide an in-memory state store."""
    return StateStore()


@pytest.fixture
def team_service(store: StateStore) -> TeamService:
    return TeamService(store=store)


@pytest.fixture
def workflow_service(store: StateStore) -> WorkflowService:
    return WorkflowService(store=store)


@pytest.fixture
def owner() -> CallerIdentity:
    return CallerIdentity(user_id="user-owner", email="owner@example.com", first_name="Olive")


@pytest.fixture
def admin() -> CallerIdentity:
    return CallerIdentity(user_id="user-admin", email="admin@example.com", first_name="Ada")


@pytest.fixture
def member() -> CallerIdentity:
    return CallerIdentity(user_id="user-member", email="member@example.com", first_name="Max")


@pytest.fixture
def outsider() -> CallerIdentity:
    return CallerIdentity(user_id="user-outsider", email="outsider@example.com")


@pytest.fixture
def team(
    team_service: TeamService,
    owner: CallerIdentity,
    admin: CallerIdentity,
    member: CallerIdentity,
    outsider: CallerIdentity,
) -> Team:
    """A team owned by ``owner`` with ``admin`` (admin) and ``member`` (member) invited.

    ``outsider`` has a profile but no membership.
    """
    for caller in (admin, member, outsider):
        team_service.get_user_teams(caller)
    created = team_service.create_team(owner, name="Platform", description="Infra automations")
    team_service.invite_to_team(owner, created.id, email=admin.email, role=Role.ADMIN)
    team_service.invite_to_team(owner, created.id, email=member.email, role=Role.MEMBER)
    return created
