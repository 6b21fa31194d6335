"""Pydantic schemas used by the FastAPI server."""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


class _Request(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class ResolvePageRequest(_Request):
    page: Union[Dict[str, Any], List[Dict[str, Any]]]
    data: Any = None
    breakpoint: Optional[str] = None
    viewport_width: Optional[float] = Field(default=None, alias="viewportWidth")
    locale: Optional[str] = None
    user: Optional[Dict[str, Any]] = None
    site: Optional[Dict[str, Any]] = None
    site_info: Optional[Dict[str, Any]] = Field(default=None, alias="siteInfo")
    route_params: Optional[Dict[str, str]] = Field(default=None, alias="routeParams")


class RunActionsRequest(ResolvePageRequest):
    actions: List[Dict[str, Any]] = Field(default_factory=list)
    node_id: Optional[str] = Field(default=None, alias="nodeId")
    context: Dict[str, Any] = Field(default_factory=dict)
    form_data: Optional[Dict[str, Any]] = Field(default=None, alias="formData")
