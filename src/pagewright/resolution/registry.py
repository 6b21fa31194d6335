"""
Type registry for node dispatch.

Nodes dispatch on `type` to a handler; atoms and components are further
checked against the widget names the rendering collaborator knows how to
paint. Anything unknown resolves to an `unsupported` node.
"""

from __future__ import annotations

from typing import Any, Callable, Dict, Iterable, Optional

DEFAULT_ATOM_TYPES = (
    "Text",
    "Button",
    "Image",
    "ProgressBar",
    "Video",
    "Input",
    "Link",
    "Icon",
    "ThreeJSScene",
)

DEFAULT_COMPONENT_TYPES = (
    "CallToAction",
    "Hero",
    "Navbar",
    "Simple",
    "ModalButton",
    "UserSettings",
    "Checkout",
    "Cart",
    "ProductPage",
)

NodeHandler = Callable[..., Any]


class NodeTypeRegistry:
    def __init__(
        self,
        atom_types: Iterable[str] = DEFAULT_ATOM_TYPES,
        component_types: Iterable[str] = DEFAULT_COMPONENT_TYPES,
    ) -> None:
        self._handlers: Dict[str, NodeHandler] = {}
        self.atom_types = set(atom_types)
        self.component_types = set(component_types)

    def register_node_handler(self, node_type: str, handler: NodeHandler) -> None:
        self._handlers[node_type] = handler

    def handler_for(self, node_type: str) -> Optional[NodeHandler]:
        return self._handlers.get(node_type)

    def knows_atom(self, atom_type: Optional[str]) -> bool:
        return bool(atom_type) and atom_type in self.atom_types

    def knows_component(self, component_type: Optional[str]) -> bool:
        return bool(component_type) and component_type in self.component_types
