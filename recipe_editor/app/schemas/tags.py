from __future__ import annotations

from pydantic import BaseModel, Field


class TagCreateRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=40)


class TagResponse(BaseModel):
    id: str
    name: str
    createdAt: str
