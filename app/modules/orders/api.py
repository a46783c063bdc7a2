from __future__ import annotations

from fastapi import APIRouter, Depends

from app.core.auth.dependencies import require_full_principal
from app.modules.orders.schemas import OrderStatusesResponse, OrderStatusResponse
from app.modules.orders.status import STATUS_CAPABILITIES

router = APIRouter(
    prefix="/api/v1/orders",
    tags=["orders"],
    dependencies=[Depends(require_full_principal)],
)


@router.get("/statuses", response_model=OrderStatusesResponse)
async def list_order_statuses() -> OrderStatusesResponse:
    return OrderStatusesResponse(
        statuses=[
            OrderStatusResponse(
                status=status.value,
                display_name=caps.display_name,
                description=caps.description,
                can_be_modified=caps.can_be_modified,
                can_be_cancelled=caps.can_be_cancelled,
                is_terminal=caps.is_terminal,
                next_statuses=sorted(next_status.value for next_status in caps.next_statuses),
            )
            for status, caps in STATUS_CAPABILITIES.items()
        ]
    )
