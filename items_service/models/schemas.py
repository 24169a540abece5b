from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class Item(BaseModel):
    id: str
    name: str
    description: str = ""


class ItemPayload(BaseModel):
    # Presence and length of `name` are enforced by the store so that the
    # same rules apply to every caller.
    name: str | None = None
    description: str | None = None


class DeleteItemResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    success: bool = True
    deleted_item: Item = Field(alias="deletedItem")


class HealthResponse(BaseModel):
    status: str
    timestamp: str
