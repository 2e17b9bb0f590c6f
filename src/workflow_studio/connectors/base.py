from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Protocol

from workflow_studio.graph.model import ServiceType


@dataclass(frozen=True, slots=True)
class ActionResult:
    ok: bool
    message: str
    details: dict[str, object] | None = None


class ConnectorAction(Protocol):
    """Runs one configured action against an external service.

    Implementations report failures through ``ActionResult(ok=False, ...)`` where
    they can; any exception they raise is treated the same way by the caller.
    """

    def execute(self, config: Mapping[str, Any]) -> ActionResult: ...


ConnectorRegistry = Mapping[ServiceType, ConnectorAction]
