"""Team and workflow services."""

from workflow_studio.services.teams import TeamService
from workflow_studio.services.workflows import TemplateSaveResult, WorkflowService

__all__ = ["TeamService", "TemplateSaveResult", "WorkflowService"]
