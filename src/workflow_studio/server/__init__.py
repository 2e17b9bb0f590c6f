"""REST API server."""

from workflow_studio.server.app import create_app

__all__ = ["create_app"]
