"""
Live Yampi endpoints.
Reads straight from Yampi without touching the local table.
"""

import logging
from fastapi import APIRouter, Depends, HTTPException, Query
from typing import List, Optional

from ..deps import get_provider_client
from ..schemas import OrderStatus, ProviderOrder, ProviderOrderListResponse
from ...orders.client import OrderFilter, ProviderError, YampiClient
from ...orders.normalizer import NormalizationError, normalize

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/provider", tags=["provider"])


def _require_client(client: Optional[YampiClient]) -> YampiClient:
    if client is None:
        raise HTTPException(status_code=503, detail="Yampi not configured")
    return client


@router.get("/orders", response_model=ProviderOrderListResponse)
def list_provider_orders(
    q: Optional[str] = Query(None),
    status_id: List[str] = Query([]),
    payment_method: List[str] = Query([]),
    date_from: Optional[str] = Query(None),
    date_to: Optional[str] = Query(None),
    client: Optional[YampiClient] = Depends(get_provider_client)
):
    """
    Fetch every matching order from Yampi and return it normalized.
    """
    client = _require_client(client)
    filters = OrderFilter(
        statuses=status_id,
        payment_methods=payment_method,
        date_from=date_from,
        date_to=date_to,
        q=q
    )

    try:
        raw_orders = client.fetch_all_orders(filters)
    except ProviderError as e:
        raise HTTPException(status_code=502, detail=str(e))

    orders = []
    for raw in raw_orders:
        try:
            orders.append(ProviderOrder(**normalize(raw).to_dict()))
        except NormalizationError as e:
            logger.warning(f"Skipping malformed Yampi order: {e}")

    return ProviderOrderListResponse(data=orders, total=len(orders))


@router.get("/statuses", response_model=List[OrderStatus])
def list_order_statuses(client: Optional[YampiClient] = Depends(get_provider_client)):
    """
    Yampi order status catalog, for building status filters.
    """
    client = _require_client(client)
    statuses = []
    for status in client.fetch_order_statuses():
        if isinstance(status, dict) and status.get('id') is not None and status.get('name'):
            statuses.append(OrderStatus(id=status['id'], name=status['name'], alias=status.get('alias')))
    return statuses
