from __future__ import annotations

from pydantic import Field

from app.modules.shared.schemas import ApiModel


class OrderStatusResponse(ApiModel):
    status: str
    display_name: str
    description: str
    can_be_modified: bool
    can_be_cancelled: bool
    is_terminal: bool
    next_statuses: list[str] = Field(default_factory=list)


class OrderStatusesResponse(ApiModel):
    statuses: list[OrderStatusResponse] = Field(default_factory=list)
