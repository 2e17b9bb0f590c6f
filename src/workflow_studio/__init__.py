"""Workflow Studio.

Build, share and auto-generate trigger -> action workflows:
- a workflow graph model with prompt-driven synthesis
- team-scoped authorization for every workflow and team operation
- a JSON-backed store, a REST API and a small CLI
"""

__version__ = "0.1.0"

from workflow_studio.config import StudioSettings

__all__ = ["__version__", "StudioSettings"]
