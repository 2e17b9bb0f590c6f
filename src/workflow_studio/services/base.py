"""Shared plumbing for the team and workflow services."""

from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager

from workflow_studio.authz import AuthorizationEngine
from workflow_studio.errors import NotFound, OperationFailed
from workflow_studio.models import Team, Workflow
from workflow_studio.store import StateStore, StoreError, StoreSession

logger = logging.getLogger(__name__)


class StoreBackedService:
    def __init__(self, *, store: StateStore, authz: AuthorizationEngine | None = None) -> None:
        self._store = store
        self._authz = authz or AuthorizationEngine()

    @contextmanager
    def _unit_of_work(self, operation: str) -> Iterator[StoreSession]:
        """One transaction per service call; persistence errors become OperationFailed."""

        try:
            with self._store.transaction() as session:
                yield session
        except StoreError as e:
            logger.error(
                "Persistence failure", extra={"operation": operation}, exc_info=True
            )
            raise OperationFailed() from e


def load_team(session: StoreSession, team_id: str) -> Team:
    team = session.get_team(team_id)
    if team is None:
        raise NotFound("Team not found")
    return team


def load_workflow(session: StoreSession, workflow_id: str) -> Workflow:
    workflow = session.get_workflow(workflow_id)
    if workflow is None:
        raise NotFound("Workflow not found")
    return workflow
