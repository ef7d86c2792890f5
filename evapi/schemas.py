from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, Field


class ViewRequestModel(BaseModel):
    top_n: Optional[int] = Field(default=None, ge=0)
    top_inner: Optional[int] = Field(default=None, ge=0)
    dark_mode: bool = True


class ViewMetaModel(BaseModel):
    name: str
    title: str
    chart: str
    ranked: bool
    default_top_n: Optional[int] = None
    default_top_inner: Optional[int] = None


class MetaViewsResponse(BaseModel):
    views: List[ViewMetaModel]


class StatusResponse(BaseModel):
    status: str
    source: str
    records: int = 0
    columns: List[str] = Field(default_factory=list)
    error: Optional[str] = None
