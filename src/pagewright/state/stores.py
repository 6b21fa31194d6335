"""
Keyed stores for everything that changes at runtime.

The page document itself is frozen. Live patches go into OverrideStore,
per-node client state into InternalStateStore, and form field values into
FormState. A PageSession owns one of each and is reset on navigation.
"""

from __future__ import annotations

import copy
import logging
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional

from ..document.loader import thaw
from ..resolution.merge import deep_merge

log = logging.getLogger("pagewright.state")


class OverrideStore:
    """Live patches keyed by node id, deep-merged on every write."""

    def __init__(self) -> None:
        self._patches: Dict[str, Dict[str, Any]] = {}

    def get(self, node_id: str) -> Optional[Dict[str, Any]]:
        return self._patches.get(node_id)

    def set_node_overrides(self, node_id: str, updates: Mapping[str, Any]) -> None:
        current = self._patches.get(node_id, {})
        self._patches[node_id] = deep_merge(current, updates)

    def apply_diff(self, node_id: str, path: str, value: Any) -> None:
        """Set one nested property, e.g. `params.content` or `visibility.hidden`."""

        parts = [part for part in path.split(".") if part]
        if not parts:
            raise ValueError("apply_diff needs a non-empty property path")
        patch: Dict[str, Any] = {}
        cursor = patch
        for part in parts[:-1]:
            cursor[part] = {}
            cursor = cursor[part]
        cursor[parts[-1]] = value
        self.set_node_overrides(node_id, patch)

    def clear(self) -> None:
        self._patches.clear()

    def snapshot(self) -> Dict[str, Dict[str, Any]]:
        return copy.deepcopy(self._patches)


class InternalStateStore:
    """Per-node client state (the `state` scope), keyed by node id."""

    def __init__(self) -> None:
        self._states: Dict[str, Dict[str, Any]] = {}

    def has(self, node_id: str) -> bool:
        return node_id in self._states

    def get(self, node_id: str) -> Optional[Dict[str, Any]]:
        return self._states.get(node_id)

    def initialize(self, node_id: str, initial: Mapping[str, Any]) -> bool:
        """Materialize a node's declared state. Existing state is never replaced."""

        if node_id in self._states:
            return False
        self._states[node_id] = thaw(initial)
        return True

    def update(self, node_id: str, updates: Mapping[str, Any]) -> None:
        current = dict(self._states.get(node_id, {}))
        current.update(thaw(updates))
        self._states[node_id] = current

    def all(self) -> Dict[str, Dict[str, Any]]:
        return {node_id: dict(state) for node_id, state in self._states.items()}

    def view(self) -> Mapping[str, Dict[str, Any]]:
        """Read-only live view used as the `states` scope."""

        return MappingProxyType(self._states)

    def clear(self) -> None:
        self._states.clear()

    def snapshot(self) -> Dict[str, Dict[str, Any]]:
        return copy.deepcopy(self._states)


@dataclass
class FormState:
    scope_id: str
    values: Dict[str, Any] = field(default_factory=dict)
    initial_values: Dict[str, Any] = field(default_factory=dict)

    def set_value(self, name: str, value: Any) -> None:
        self.values[name] = value

    def reset(self) -> None:
        self.values = copy.deepcopy(self.initial_values)


class PageSession:
    """Stores for one page session. `reset()` runs when the user navigates away."""

    def __init__(self) -> None:
        self.overrides = OverrideStore()
        self.states = InternalStateStore()
        self.forms: Dict[str, FormState] = {}

    def form(self, scope_id: str) -> FormState:
        if scope_id not in self.forms:
            self.forms[scope_id] = FormState(scope_id=scope_id)
        return self.forms[scope_id]

    def form_values(self, scope_id: Optional[str]) -> Dict[str, Any]:
        if not scope_id or scope_id not in self.forms:
            return {}
        return dict(self.forms[scope_id].values)

    def reset(self) -> None:
        log.debug("Clearing page session stores")
        self.overrides.clear()
        self.states.clear()
        self.forms.clear()

    def snapshot(self) -> Dict[str, Any]:
        return {
            "overrides": self.overrides.snapshot(),
            "states": self.states.snapshot(),
            "forms": {scope: dict(form.values) for scope, form in self.forms.items()},
        }
