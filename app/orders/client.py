"""
Yampi API Client.
Handles fetching orders and order statuses from the Yampi store.
"""

import requests
import logging
from dataclasses import dataclass, field
from typing import List, Dict, Optional, Any, Tuple

from .normalizer import parse_int

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 100
ORDER_INCLUDES = 'customer,status,items,shipping_address,promocode,transactions'


class ProviderError(RuntimeError):
    """Raised when the Yampi API cannot serve a request."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


@dataclass
class OrderFilter:
    """Filters accepted by the Yampi order listing."""
    statuses: List[str] = field(default_factory=list)
    payment_methods: List[str] = field(default_factory=list)
    date_from: Optional[str] = None
    date_to: Optional[str] = None
    q: Optional[str] = None

    def to_params(self) -> List[Tuple[str, str]]:
        """Query parameters as pairs, since array filters repeat the key."""
        params = []
        if self.q:
            params.append(('q', self.q))
        for status_id in self.statuses:
            params.append(('status_id[]', str(status_id)))
        for method in self.payment_methods:
            params.append(('payment_method[]', method))
        # Yampi only understands a closed date range
        if self.date_from and self.date_to:
            params.append(('date', f"created_at:{self.date_from}|{self.date_to}"))
        return params


class YampiClient:
    """Client for the Yampi (Dooki) REST API."""

    def __init__(
        self,
        url: str,
        store_alias: str,
        user_token: str,
        user_secret_key: str,
        page_size: int = DEFAULT_PAGE_SIZE,
        timeout: int = 30
    ):
        self.base_url = f"{url.rstrip('/')}/{store_alias}/"
        self.page_size = page_size
        self.timeout = timeout
        self.session = requests.Session()
        self.session.headers.update({
            'User-Token': user_token,
            'User-Secret-Key': user_secret_key,
            'Content-Type': 'application/json',
        })

    def _get(self, endpoint: str, params: Optional[List[Tuple[str, str]]] = None) -> Any:
        """Make GET request to the Yampi API, raising ProviderError on failure."""
        url = self.base_url + endpoint
        try:
            response = self.session.get(url, params=params, timeout=self.timeout)
        except requests.exceptions.RequestException as e:
            logger.error(f"Yampi API unreachable: {e}")
            raise ProviderError(f"Yampi API unreachable: {e}") from e

        if not response.ok:
            logger.error(f"Yampi API error on {endpoint}: {response.status_code} {response.reason}")
            raise ProviderError(
                f"Yampi API error: {response.status_code} {response.reason}",
                status_code=response.status_code
            )

        try:
            return response.json()
        except ValueError as e:
            raise ProviderError(f"Yampi API returned invalid JSON: {e}") from e

    def fetch_orders(
        self,
        page: int = 1,
        limit: Optional[int] = None,
        filters: Optional[OrderFilter] = None
    ) -> Dict[str, Any]:
        """
        Fetch a single page of orders.

        Returns:
            Raw response body with `data` and `meta.pagination`
        """
        params = [
            ('page', str(page)),
            ('limit', str(limit or self.page_size)),
            ('include', ORDER_INCLUDES),
        ]
        if filters:
            params.extend(filters.to_params())

        body = self._get('orders', params)
        if not isinstance(body, dict):
            raise ProviderError("Yampi API returned an unexpected order listing")
        return body

    def fetch_all_orders(self, filters: Optional[OrderFilter] = None) -> List[Dict[str, Any]]:
        """
        Fetch every page of orders matching the filters.

        The batch is all-or-nothing: if any page fails, ProviderError
        propagates and nothing collected so far is returned.
        """
        orders: List[Dict[str, Any]] = []
        page = 1

        while True:
            body = self.fetch_orders(page=page, filters=filters)
            data = body.get('data') or []
            orders.extend(data)

            pagination = (body.get('meta') or {}).get('pagination') or {}
            total_pages = parse_int(pagination.get('total_pages'), 1) or 1
            logger.debug(f"Fetched orders page {page}/{total_pages} ({len(data)} records)")

            if page >= total_pages:
                break
            page += 1

        logger.info(f"Retrieved {len(orders)} orders from Yampi ({page} pages)")
        return orders

    def fetch_order_statuses(self) -> List[Dict[str, Any]]:
        """Fetch the store's order status catalog. Empty on any failure."""
        try:
            body = self._get('catalog/order-statuses')
        except ProviderError as e:
            logger.warning(f"Could not load order statuses: {e}")
            return []
        if not isinstance(body, dict):
            return []
        return body.get('data') or []


def create_client_from_config() -> Optional[YampiClient]:
    """Build a YampiClient from the `provider` config section."""
    from ..core.config import get_config

    config = get_config()
    provider = config.get('provider', default={}) or {}
    if not (provider.get('url') and provider.get('store_alias') and provider.get('user_token')):
        logger.warning("Yampi config missing")
        return None

    return YampiClient(
        url=provider['url'],
        store_alias=provider['store_alias'],
        user_token=provider['user_token'],
        user_secret_key=provider.get('user_secret_key', ''),
        page_size=config.get_int('provider', 'page_size', default=DEFAULT_PAGE_SIZE),
        timeout=config.get_int('provider', 'timeout', default=30)
    )
