"""
Order Sync Service.
Reconciles Yampi orders into the local orders table.

1. Fetch every page of orders from Yampi (all-or-nothing)
2. Normalize each payload into a CanonicalOrder
3. Insert new orders, refresh provider fields on known ones
"""

import logging
from dataclasses import dataclass, asdict
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from .client import YampiClient, OrderFilter, ProviderError, create_client_from_config
from .normalizer import normalize
from ..core.database import Database, get_database

logger = logging.getLogger(__name__)


@dataclass
class SyncResult:
    """Outcome counts for one sync run."""
    created: int = 0
    updated: int = 0
    errors: int = 0
    total: int = 0

    @property
    def message(self) -> str:
        return (
            f"Synced {self.total} orders: {self.created} created, "
            f"{self.updated} updated, {self.errors} errors"
        )

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


class OrderSyncService:
    """Service to pull Yampi orders into the local store."""

    def __init__(self, client: Optional[YampiClient] = None, db: Optional[Database] = None):
        self.db = db or get_database()
        self.client = client or create_client_from_config()

    def fetch_orders(self, filters: Optional[OrderFilter] = None) -> List[Dict[str, Any]]:
        """Fetch raw Yampi orders, raising ProviderError if Yampi is unusable."""
        if not self.client:
            raise ProviderError("Yampi not configured")
        return self.client.fetch_all_orders(filters)

    def sync(self, filters: Optional[OrderFilter] = None) -> SyncResult:
        """
        Run one reconciliation pass.

        A fetch failure propagates before anything is written. Failures on
        individual records are logged and counted, and the run moves on.
        """
        orders = self.fetch_orders(filters)
        result = SyncResult(total=len(orders))
        logger.info(f"Syncing {result.total} Yampi orders")

        for raw in orders:
            try:
                if self._sync_one(raw):
                    result.created += 1
                else:
                    result.updated += 1
            except Exception as e:
                order_ref = raw.get('id') if isinstance(raw, dict) else raw
                logger.error(f"Failed to sync order {order_ref}: {e}")
                result.errors += 1

        logger.info(result.message)
        return result

    def _sync_one(self, raw: Any) -> bool:
        """
        Persist one provider order.
        Returns True if a row was created, False if an existing one was updated.
        """
        order = normalize(raw)
        if order.yampi_order_id is None:
            raise ValueError("order has no Yampi id")

        synced_at = datetime.now(timezone.utc).isoformat()

        if self.db.get_order_id_by_provider_id(order.yampi_order_id) is None:
            self.db.insert_order(order, synced_at=synced_at)
            return True

        if not self.db.update_order_from_provider(order, synced_at=synced_at):
            raise RuntimeError(f"order {order.yampi_order_id} vanished during update")
        return False
