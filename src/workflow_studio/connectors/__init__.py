"""Connector actions executed after a template save."""

from workflow_studio.connectors.base import ActionResult, ConnectorAction, ConnectorRegistry
from workflow_studio.connectors.github import GitHubClient, GitHubConnector
from workflow_studio.graph.model import ServiceType


def default_connectors(*, github_base_url: str = "https://api.github.com") -> ConnectorRegistry:
    return {ServiceType.GITHUB: GitHubConnector(base_url=github_base_url)}


__all__ = [
    "ActionResult",
    "ConnectorAction",
    "ConnectorRegistry",
    "GitHubClient",
    "GitHubConnector",
    "default_connectors",
]
