"""
Load and freeze page documents.

A loaded document is immutable: mappings become MappingProxyType and lists
become tuples, so runtime changes can only be layered on as overrides or
internal state.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import Any, Dict, Iterator, Mapping, Optional, Tuple

from pydantic import ValidationError

from ..errors import DocumentError
from .schema import PageModel


def freeze(value: Any) -> Any:
    if isinstance(value, Mapping):
        return MappingProxyType({key: freeze(item) for key, item in value.items()})
    if isinstance(value, (list, tuple)):
        return tuple(freeze(item) for item in value)
    return value


def thaw(value: Any) -> Any:
    """Deep, mutable copy of a (possibly frozen) JSON-like value."""

    if isinstance(value, Mapping):
        return {key: thaw(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [thaw(item) for item in value]
    return value


@dataclass
class PageDocument:
    id: Optional[str]
    name: Optional[str]
    route: Optional[str]
    nodes: Tuple[Mapping[str, Any], ...]
    data_source: Optional[Mapping[str, Any]] = None
    schema_version: Optional[str] = None
    index: Dict[str, Mapping[str, Any]] = field(default_factory=dict)

    def find(self, node_id: str) -> Optional[Mapping[str, Any]]:
        return self.index.get(node_id)

    def info(self) -> Dict[str, Any]:
        return {"id": self.id, "name": self.name, "route": self.route}


def iter_nodes(nodes: Any, include_templates: bool = False) -> Iterator[Mapping[str, Any]]:
    for node in nodes or ():
        yield node
        yield from iter_nodes(node.get("children"), include_templates)
        repeater = node.get("repeater")
        if include_templates and isinstance(repeater, Mapping) and isinstance(repeater.get("template"), Mapping):
            yield from iter_nodes((repeater["template"],), include_templates)


def load_page(payload: Mapping[str, Any] | list) -> PageDocument:
    """
    Validate a page document and return its frozen form. A bare list is
    accepted as the node list of an anonymous page.
    """

    if isinstance(payload, list):
        payload = {"nodes": payload}
    try:
        PageModel.model_validate(payload)
    except ValidationError as exc:
        raise DocumentError(
            f"Invalid page document: {exc.error_count()} validation error(s)",
            diagnostics=[
                {"code": "PW-1101", "message": err["msg"], "location": list(err["loc"]), "severity": "error"}
                for err in exc.errors()
            ],
        ) from exc

    frozen = freeze(payload)
    nodes = frozen.get("nodes") or ()
    index: Dict[str, Mapping[str, Any]] = {}
    duplicates: list[str] = []
    for node in iter_nodes(nodes):
        node_id = node["id"]
        if node_id in index:
            duplicates.append(node_id)
        index[node_id] = node
    if duplicates:
        raise DocumentError(f"Duplicate node ids: {', '.join(sorted(set(duplicates)))}")
    for node in iter_nodes(nodes, include_templates=True):
        index.setdefault(node["id"], node)

    return PageDocument(
        id=frozen.get("id"),
        name=frozen.get("name"),
        route=frozen.get("route"),
        nodes=tuple(nodes),
        data_source=frozen.get("dataSource"),
        schema_version=frozen.get("schemaVersion"),
        index=index,
    )


def load_page_file(path: Path | str) -> PageDocument:
    try:
        payload = json.loads(Path(path).read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise DocumentError(f"{path}: not valid JSON ({exc.msg} at line {exc.lineno})") from exc
    return load_page(payload)
