"""
Action run models.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from ..expressions.values import to_plain


@dataclass
class ActionOutcome:
    """What one handler reports back to the engine."""

    successful: bool = True
    result_data: Any = None


@dataclass
class ActionStepResult:
    action_id: Optional[str]
    action_type: str
    status: str  # success | failure | skipped | error
    depth: int = 0
    result: Any = None
    error_message: Optional[str] = None
    duration_seconds: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.action_id,
            "type": self.action_type,
            "status": self.status,
            "depth": self.depth,
            "result": to_plain(self.result),
            "error": self.error_message,
        }


@dataclass
class ActionRunResult:
    triggering_node_id: Optional[str] = None
    steps: List[ActionStepResult] = field(default_factory=list)
    action_results: Dict[str, Any] = field(default_factory=dict)
    total_duration_seconds: float = 0.0

    def statuses(self) -> List[tuple[Optional[str], str]]:
        return [(step.action_id, step.status) for step in self.steps]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "triggeringNodeId": self.triggering_node_id,
            "steps": [step.to_dict() for step in self.steps],
            "actionResults": to_plain(self.action_results),
        }
