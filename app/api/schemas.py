"""
Pydantic schemas for API request/response validation.
"""

from pydantic import BaseModel, Field
from typing import Any, Optional, List


# ==================== Order Schemas ====================

class OrderRecord(BaseModel):
    """One row of the local orders table."""
    id: int
    yampi_order_id: Optional[int] = None
    yampi_order_number: Optional[int] = None
    cliente: Optional[str] = None
    cpf: Optional[str] = None
    cnpj: Optional[str] = None
    telefone: Optional[str] = None
    endereco_entrega: Optional[str] = None
    data_venda: Optional[str] = None
    status: Optional[str] = None
    status_alias: Optional[str] = None
    forma_pagamento: Optional[str] = None
    forma_pagamento_code: Optional[str] = None
    modelo: Optional[str] = None
    plano: Optional[str] = None
    quantidade: Optional[int] = None
    link_cupom: Optional[str] = None
    valor_bruto: Optional[float] = None
    valor_liquido: Optional[float] = None
    valor_desconto: Optional[float] = None

    # Operator fields
    primeiro_contato: Optional[str] = None
    cad_portal: Optional[str] = None
    cad_pagseguro: Optional[str] = None
    data_aceite: Optional[str] = None
    maquina: Optional[str] = None
    maq_de_rua: Optional[str] = None
    data_envio_pos: Optional[str] = None
    forma_pag_pos: Optional[str] = None
    manual_cliente: Optional[str] = None
    data_envio_manual: Optional[str] = None
    custo_op_pagarme: Optional[float] = None
    custo_pos: Optional[float] = None
    comissao_afiliado: Optional[float] = None
    lucro: Optional[float] = None

    source: str
    created_at: Optional[str] = None
    updated_at: Optional[str] = None
    last_synced_at: Optional[str] = None


class OrderListResponse(BaseModel):
    """Response for the order list."""
    data: List[OrderRecord]
    total: int


class OrderResponse(BaseModel):
    data: OrderRecord


class FieldUpdateRequest(BaseModel):
    """Set one operator field on an order."""
    field: str = Field(..., description="Operator field name, e.g. cpf or custo_pos")
    value: Optional[Any] = None


class FieldUpdateResponse(BaseModel):
    success: bool
    data: OrderRecord


# ==================== Sync Schemas ====================

class SyncResponse(BaseModel):
    """Summary of a sync run."""
    success: bool
    created: int = 0
    updated: int = 0
    errors: int = 0
    total: int = 0
    message: str


# ==================== Provider Schemas ====================

class ProviderOrder(BaseModel):
    """A live Yampi order after normalization."""
    yampi_order_id: Optional[int] = None
    yampi_order_number: Optional[int] = None
    customer_name: Optional[str] = None
    cpf: Optional[str] = None
    cnpj: Optional[str] = None
    phone: Optional[str] = None
    delivery_address: Optional[str] = None
    sale_date: Optional[str] = None
    status: Optional[str] = None
    status_alias: Optional[str] = None
    payment_method: Optional[str] = None
    payment_method_code: Optional[str] = None
    model: str
    plan: str
    quantity: int
    product_title: Optional[str] = None
    gross_amount: float
    net_amount: float
    discount_amount: float


class ProviderOrderListResponse(BaseModel):
    data: List[ProviderOrder]
    total: int


class OrderStatus(BaseModel):
    id: int
    name: str
    alias: Optional[str] = None


# ==================== Generic Schemas ====================

class HealthResponse(BaseModel):
    """Health check response."""
    status: str
    version: str
    database_orders: int
    last_synced_at: Optional[str] = None
