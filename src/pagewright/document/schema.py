"""Pydantic models describing the serialized page document."""

from __future__ import annotations

from typing import Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

NODE_TYPES = ("section", "atom", "component", "codeblock")


class ActionModel(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: Optional[str] = None
    type: str
    params: Dict[str, Any] = Field(default_factory=dict)
    conditions: List[Dict[str, Any]] = Field(default_factory=list)
    conditionLogic: Literal["AND", "OR"] = "AND"
    delayMs: Optional[float] = Field(default=None, ge=0)
    onSuccess: List["ActionModel"] = Field(default_factory=list)
    onError: List["ActionModel"] = Field(default_factory=list)


ActionModel.model_rebuild()


class DataSourceModel(BaseModel):
    model_config = ConfigDict(extra="allow")

    type: str
    query: Optional[Union[str, Dict[str, Any]]] = None
    queries: Optional[Dict[str, Any]] = None
    variables: Optional[Dict[str, Any]] = None
    dataPath: Optional[str] = None


class DataRequirementModel(BaseModel):
    model_config = ConfigDict(extra="allow")

    key: str
    source: DataSourceModel
    blocking: bool = True
    cacheDurationMs: Optional[float] = Field(default=None, ge=0)
    defaultValue: Any = None


class RepeaterModel(BaseModel):
    model_config = ConfigDict(extra="allow")

    source: Any
    template: "NodeModel"
    filter: Optional[Dict[str, Any]] = None
    sort: Optional[Dict[str, Any]] = None
    limit: Optional[Union[int, str]] = None
    idStrategy: Optional[Dict[str, Any]] = None


class NodeModel(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: str = Field(..., min_length=1)
    type: str
    order: float = 0
    params: Dict[str, Any] = Field(default_factory=dict)
    state: Optional[Dict[str, Any]] = None
    visibility: Optional[Dict[str, Any]] = None
    dataRequirements: List[DataRequirementModel] = Field(default_factory=list)
    eventHandlers: Dict[str, List[ActionModel]] = Field(default_factory=dict)
    responsiveOverrides: Dict[str, Dict[str, Any]] = Field(default_factory=dict)
    localeOverrides: Dict[str, Dict[str, Any]] = Field(default_factory=dict)
    loadingBehavior: Optional[Dict[str, Any]] = None
    children: List["NodeModel"] = Field(default_factory=list)
    repeater: Optional[RepeaterModel] = None


RepeaterModel.model_rebuild()
NodeModel.model_rebuild()


class PageModel(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: Optional[str] = None
    name: Optional[str] = None
    route: Optional[str] = None
    schemaVersion: Optional[str] = None
    nodes: List[NodeModel] = Field(default_factory=list)
    dataSource: Optional[Dict[str, Any]] = None
