"""
Yampi order normalization.
Flattens provider order payloads into the canonical shape stored locally.

The Yampi API is inconsistent about nested resources: depending on the
endpoint and `include` list, `customer`, `status`, `items` and friends come
back either as the value itself or wrapped as `{"data": value}`. Every nested
access goes through `unwrap`.
"""

import re
import logging
from dataclasses import dataclass, asdict
from typing import Any, Dict, List, Optional

logger = logging.getLogger(__name__)

PLACEHOLDER = '-'
BRAND_PREFIX = 'Facility'

# "Facility Mini - PLANO EXPRESS" -> plan "EXPRESS"
PLAN_PATTERN = re.compile(r'PLANO\s+(.+)$', re.IGNORECASE)
# "Facility Mini - PLANO EXPRESS" -> "Facility Mini"
MODEL_DELIMITER_PATTERN = re.compile(r'^(.+?)\s*-\s*PLANO\b', re.IGNORECASE)
BRAND_PATTERN = re.compile(rf'^\s*{BRAND_PREFIX}\b\s*', re.IGNORECASE)
BRAND_ANYWHERE_PATTERN = re.compile(rf'\b{BRAND_PREFIX}\s+(.+)$', re.IGNORECASE)


class NormalizationError(ValueError):
    """Raised when a provider payload is not an order object at all."""


@dataclass
class CanonicalOrder:
    """Flat order record built from one provider payload."""
    yampi_order_id: Optional[int]
    yampi_order_number: Optional[int]
    customer_name: Optional[str]
    cpf: Optional[str]
    cnpj: Optional[str]
    phone: Optional[str]
    delivery_address: Optional[str]
    sale_date: Optional[str]
    status: Optional[str]
    status_alias: Optional[str]
    payment_method: Optional[str]
    payment_method_code: Optional[str]
    model: str
    plan: str
    quantity: int
    product_title: Optional[str]
    gross_amount: float
    net_amount: float
    discount_amount: float

    def to_row(self) -> Dict[str, Any]:
        """Map to local `orders` column names."""
        return {
            'yampi_order_id': self.yampi_order_id,
            'yampi_order_number': self.yampi_order_number,
            'cliente': self.customer_name,
            'cpf': self.cpf,
            'cnpj': self.cnpj,
            'telefone': self.phone,
            'endereco_entrega': self.delivery_address,
            'data_venda': self.sale_date,
            'status': self.status,
            'status_alias': self.status_alias,
            'forma_pagamento': self.payment_method,
            'forma_pagamento_code': self.payment_method_code,
            'modelo': self.model,
            'plano': self.plan,
            'quantidade': self.quantity,
            'link_cupom': self.product_title,
            'valor_bruto': self.gross_amount,
            'valor_liquido': self.net_amount,
            'valor_desconto': self.discount_amount,
        }

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def parse_float(value: Any, default: Optional[float] = None) -> Optional[float]:
    """Safely parse a float value."""
    if value is None:
        return default
    try:
        if isinstance(value, str):
            # Remove currency symbols and whitespace
            value = re.sub(r'[^\d.,\-]', '', value)
            # The rightmost separator is the decimal mark, the other groups thousands
            if ',' in value and '.' in value:
                if value.rfind(',') > value.rfind('.'):
                    value = value.replace('.', '')
                else:
                    value = value.replace(',', '')
            value = value.replace(',', '.')
        return float(value)
    except (ValueError, TypeError):
        return default


def parse_int(value: Any, default: Optional[int] = None) -> Optional[int]:
    """Safely parse an integer value."""
    if value is None or isinstance(value, bool):
        return default
    try:
        if isinstance(value, str):
            value = re.sub(r'[^\d.\-]', '', value)
        return int(float(value))
    except (ValueError, TypeError):
        return default


def unwrap(value: Any) -> Any:
    """
    Return the payload of a `{"data": ...}` envelope, or the value itself.
    Empty values become None.
    """
    if not value:
        return None
    if isinstance(value, dict) and 'data' in value:
        return value['data'] or None
    return value


def _as_dict(value: Any) -> Dict[str, Any]:
    value = unwrap(value)
    return value if isinstance(value, dict) else {}


def _as_list(value: Any) -> List[Any]:
    value = unwrap(value)
    return value if isinstance(value, list) else []


def _text(value: Any) -> Optional[str]:
    if value is None or isinstance(value, (dict, list)):
        return None
    text = str(value).strip()
    return text or None


def extract_plan(title: Optional[str]) -> str:
    """Plan name after the PLANO keyword, uppercased."""
    if not title:
        return PLACEHOLDER
    match = PLAN_PATTERN.search(title)
    if match and match.group(1).strip():
        return match.group(1).strip().upper()
    return PLACEHOLDER


def extract_model(title: Optional[str]) -> str:
    """
    Device model from a product title.

    The model is whatever precedes " - PLANO", minus the brand word. Titles
    without the delimiter fall back to the text after the brand word.
    """
    if not title:
        return PLACEHOLDER

    match = MODEL_DELIMITER_PATTERN.search(title)
    if match:
        model = BRAND_PATTERN.sub('', match.group(1)).strip()
        return model or PLACEHOLDER

    match = BRAND_ANYWHERE_PATTERN.search(title)
    if match and match.group(1).strip():
        return match.group(1).strip()

    return PLACEHOLDER


def get_item_title(item: Any) -> Optional[str]:
    """Display title of a line item: SKU title first, then product name."""
    item = _as_dict(item)
    title = _text(_as_dict(item.get('sku')).get('title'))
    if title:
        return title
    return _text(_as_dict(item.get('product')).get('name'))


def format_address(address: Any) -> Optional[str]:
    """Single-line delivery address, None when the order has no address."""
    address = _as_dict(address)
    if not address:
        return None

    def part(key: str) -> str:
        return _text(address.get(key)) or ''

    return (
        f"{part('street')}, {part('number')} - {part('neighborhood')}, "
        f"{part('city')}/{part('state')}"
    )


def extract_date(created_at: Any) -> Optional[str]:
    """created_at comes either as a string or as {"date": "..."}."""
    if isinstance(created_at, dict):
        return _text(created_at.get('date'))
    return _text(created_at)


def extract_payment_method(order: Dict[str, Any]) -> Optional[str]:
    """Display label of the payment, falling back to the transaction code."""
    payments = _as_list(order.get('payments'))
    if payments:
        name = _text(_as_dict(payments[0]).get('name'))
        if name:
            return name

    transactions = _as_list(order.get('transactions'))
    if transactions:
        return _text(_as_dict(transactions[0]).get('payment_method'))
    return None


def extract_payment_code(order: Dict[str, Any]) -> Optional[str]:
    """Payment method code such as "pix" or "credit_card"."""
    for key in ('payments', 'transactions'):
        entries = _as_list(order.get(key))
        if entries:
            code = _text(_as_dict(entries[0]).get('payment_method'))
            if code:
                return code
    return None


def total_quantity(items: List[Any]) -> int:
    return sum(parse_int(_as_dict(item).get('quantity'), 0) for item in items)


def normalize(raw: Any) -> CanonicalOrder:
    """
    Build a CanonicalOrder from one Yampi order payload.

    Missing or malformed nested fields degrade to None or the "-"
    placeholder. Only a payload that is not an object raises.
    """
    if not isinstance(raw, dict):
        raise NormalizationError(
            f"Expected an order object, got {type(raw).__name__}"
        )

    items = _as_list(raw.get('items'))
    title = get_item_title(items[0]) if items else None

    customer = _as_dict(raw.get('customer'))
    phone = unwrap(customer.get('phone'))
    if isinstance(phone, dict):
        phone = phone.get('full_number')
    status = _as_dict(raw.get('status'))

    gross = parse_float(raw.get('value_total'), 0.0)
    discount = parse_float(raw.get('value_discount'), 0.0)

    return CanonicalOrder(
        yampi_order_id=parse_int(raw.get('id')),
        yampi_order_number=parse_int(raw.get('number')),
        customer_name=_text(customer.get('name')),
        cpf=_text(customer.get('cpf')),
        cnpj=_text(customer.get('cnpj')),
        phone=_text(phone),
        delivery_address=format_address(raw.get('shipping_address')),
        sale_date=extract_date(raw.get('created_at')),
        status=_text(status.get('name')),
        status_alias=_text(status.get('alias')),
        payment_method=extract_payment_method(raw),
        payment_method_code=extract_payment_code(raw),
        model=extract_model(title),
        plan=extract_plan(title),
        quantity=total_quantity(items),
        product_title=title,
        gross_amount=gross,
        net_amount=gross - discount,
        discount_amount=discount,
    )
