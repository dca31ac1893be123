"""
Order API endpoints.
"""

import logging
from fastapi import APIRouter, Depends, HTTPException, Path, Query
from fastapi.responses import JSONResponse
from typing import Optional

from ..deps import get_db, get_sync_service
from ..schemas import (
    FieldUpdateRequest,
    FieldUpdateResponse,
    OrderListResponse,
    OrderRecord,
    OrderResponse,
    SyncResponse,
)
from ...core.database import Database
from ...orders.client import ProviderError
from ...orders.fields import OperatorField
from ...orders.service import OrderSyncService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/orders", tags=["orders"])

DATE_PATTERN = r"^\d{4}-\d{2}-\d{2}"


@router.post("/sync", response_model=SyncResponse)
def sync_orders(service: OrderSyncService = Depends(get_sync_service)):
    """
    Pull every Yampi order into the local table.
    Per-order failures only show up in `errors`; a Yampi failure fails the run.
    """
    try:
        result = service.sync()
    except ProviderError as e:
        logger.error(f"Order sync failed: {e}")
        failed = SyncResponse(success=False, message=f"Failed to sync orders: {e}")
        return JSONResponse(status_code=502, content=failed.model_dump())

    return SyncResponse(success=True, message=result.message, **result.to_dict())


@router.get("", response_model=OrderListResponse)
def list_orders(
    q: Optional[str] = Query(None, description="Search customer, CPF, CNPJ or phone"),
    payment_method: Optional[str] = Query(None),
    status: Optional[str] = Query(None, description="Status code or label"),
    date_from: Optional[str] = Query(None, pattern=DATE_PATTERN),
    date_to: Optional[str] = Query(None, pattern=DATE_PATTERN),
    limit: Optional[int] = Query(None, ge=1, le=10000),
    offset: int = Query(0, ge=0),
    db: Database = Depends(get_db)
):
    """
    List stored orders with optional filtering.
    `total` counts every match, regardless of limit/offset.
    """
    filters = dict(
        search=q,
        payment_method=payment_method,
        status=status,
        date_from=date_from,
        date_to=date_to
    )
    rows = db.get_orders(limit=limit, offset=offset, **filters)

    return OrderListResponse(
        data=[OrderRecord(**row) for row in rows],
        total=db.count_orders(**filters)
    )


@router.get("/{order_id}", response_model=OrderResponse)
def get_order(order_id: int = Path(..., ge=1), db: Database = Depends(get_db)):
    """
    Get a single order by local id.
    """
    order = db.get_order(order_id)
    if not order:
        raise HTTPException(status_code=404, detail=f"Order {order_id} not found")
    return OrderResponse(data=OrderRecord(**order))


@router.patch("/{order_id}", response_model=FieldUpdateResponse)
def update_order_field(
    update: FieldUpdateRequest,
    order_id: int = Path(..., ge=1),
    db: Database = Depends(get_db)
):
    """
    Set one operator field on an order.
    Provider-sourced fields cannot be edited here.
    """
    try:
        field = OperatorField.parse(update.field)
        value = field.coerce(update.value)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    order = db.update_operator_field(order_id, field, value)
    if order is None:
        raise HTTPException(status_code=404, detail=f"Order {order_id} not found")

    logger.info(f"Order {order_id}: {field.value} updated")
    return FieldUpdateResponse(success=True, data=OrderRecord(**order))
