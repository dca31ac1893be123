"""
Shared pytest fixtures.
"""

from typing import Any, Dict, List, Optional

import pytest

from app.core.database import Database
from app.orders.client import ProviderError


def make_yampi_order(
    order_id: Optional[int] = 101,
    number: int = 5001,
    title: str = "Facility Mini - PLANO EXPRESS",
    customer_name: str = "Maria Souza",
    cpf: Optional[str] = "12345678901",
    value_total: float = 100.0,
    value_discount: float = 15.0,
    created_at: Any = "2024-03-10 14:22:00",
    wrapped: bool = False,
    quantities: List[int] = (1,),
    payments: Optional[List[Dict[str, Any]]] = None,
) -> Dict[str, Any]:
    """Yampi order payload; `wrapped` puts nested resources in {"data": ...}."""

    def wrap(value):
        return {"data": value} if wrapped else value

    items = [
        {
            "id": 900 + i,
            "quantity": qty,
            "sku": wrap({"title": title}),
            "product": wrap({"name": "Maquininha"}),
        }
        for i, qty in enumerate(quantities)
    ]

    return {
        "id": order_id,
        "number": number,
        "value_total": value_total,
        "value_discount": value_discount,
        "created_at": created_at,
        "customer": wrap({
            "name": customer_name,
            "cpf": cpf,
            "cnpj": None,
            "phone": {"full_number": "11987654321"},
        }),
        "status": wrap({"id": 4, "name": "Pago", "alias": "paid"}),
        "shipping_address": wrap({
            "street": "Rua das Flores",
            "number": "42",
            "neighborhood": "Centro",
            "city": "Campinas",
            "state": "SP",
            "zipcode": "13010-000",
        }),
        "items": wrap(items),
        "transactions": wrap([{"payment_method": "pix"}]),
        **({"payments": wrap(payments)} if payments is not None else {}),
    }


class FakeYampiClient:
    """Stands in for YampiClient; returns canned orders or fails."""

    def __init__(self, orders: Optional[List[Any]] = None, error: Optional[Exception] = None):
        self.orders = orders or []
        self.error = error
        self.calls = 0

    def fetch_all_orders(self, filters=None):
        self.calls += 1
        if self.error:
            raise self.error
        return list(self.orders)

    def fetch_order_statuses(self):
        if self.error:
            return []
        return [
            {"id": 4, "name": "Pago", "alias": "paid"},
            {"id": 1, "name": "Aguardando pagamento", "alias": "waiting_payment"},
        ]


@pytest.fixture
def db(tmp_path) -> Database:
    return Database(tmp_path / "orders.db")


@pytest.fixture
def yampi_order():
    return make_yampi_order


@pytest.fixture
def fake_client():
    return FakeYampiClient


@pytest.fixture
def provider_down():
    return FakeYampiClient(error=ProviderError("Yampi API error: 503 Service Unavailable", 503))
