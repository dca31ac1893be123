"""
FastAPI dependencies shared by the routers.
"""

from typing import Optional

from ..core.database import Database, get_database
from ..orders.client import YampiClient, create_client_from_config
from ..orders.service import OrderSyncService


def get_db() -> Database:
    return get_database()


def get_provider_client() -> Optional[YampiClient]:
    return create_client_from_config()


def get_sync_service() -> OrderSyncService:
    return OrderSyncService(db=get_db())
