"""Pydantic schemas for role endpoints."""

from typing import Any

from pydantic import BaseModel


class RoleResponse(BaseModel):
    id: str
    name: str
    permissions: dict[str, Any]

    model_config = {"from_attributes": True}


class RoleListResponse(BaseModel):
    items: list[RoleResponse]
    total: int
