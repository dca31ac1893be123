"""
Database operations for the Sales Operations backend.
Uses SQLite for storage.

Every public method opens its own connection and commits on exit, so each
insert or update is an independent statement. A sync run is never wrapped
in one transaction.
"""

import sqlite3
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional, List, Dict, Any, Tuple
from contextlib import contextmanager

from ..orders.fields import OperatorField
from ..orders.normalizer import CanonicalOrder

logger = logging.getLogger(__name__)

ORDERS_TABLE = "orders"
SOURCE_YAMPI = "yampi"

# Columns a sync is allowed to overwrite on an existing row
SYNC_UPDATE_COLUMNS = (
    'yampi_order_id',
    'yampi_order_number',
    'cliente',
    'telefone',
    'endereco_entrega',
    'data_venda',
    'status',
    'status_alias',
    'forma_pagamento',
    'forma_pagamento_code',
    'modelo',
    'plano',
    'quantidade',
    'link_cupom',
    'valor_bruto',
    'valor_liquido',
    'valor_desconto',
)

SEARCH_COLUMNS = ('cliente', 'cpf', 'cnpj', 'telefone')

# Added after the first release; older databases get them via ALTER TABLE
LATE_COLUMNS = {
    'forma_pagamento_code': 'TEXT',
}


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _casefold(value: Any) -> Optional[str]:
    """Unicode-aware lowercasing, since SQLite LOWER only folds ASCII."""
    return value.casefold() if isinstance(value, str) else value


class Database:
    """SQLite database manager."""

    def __init__(self, db_path: Path):
        self.db_path = db_path
        self._ensure_tables()

    @contextmanager
    def _connection(self):
        """Context manager for database connections."""
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        conn.create_function("casefold", 1, _casefold, deterministic=True)
        try:
            yield conn
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    def _ensure_tables(self) -> None:
        """Create tables if they don't exist."""
        with self._connection() as conn:
            cursor = conn.cursor()

            cursor.execute(f"""
                CREATE TABLE IF NOT EXISTS {ORDERS_TABLE} (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    yampi_order_id INTEGER UNIQUE,
                    yampi_order_number INTEGER,
                    cliente TEXT,
                    cpf TEXT,
                    cnpj TEXT,
                    telefone TEXT,
                    endereco_entrega TEXT,
                    data_venda TEXT,
                    status TEXT,
                    status_alias TEXT,
                    forma_pagamento TEXT,
                    forma_pagamento_code TEXT,
                    modelo TEXT,
                    plano TEXT,
                    quantidade INTEGER DEFAULT 0,
                    link_cupom TEXT,
                    valor_bruto REAL,
                    valor_liquido REAL,
                    valor_desconto REAL,
                    primeiro_contato TEXT,
                    cad_portal TEXT,
                    cad_pagseguro TEXT,
                    data_aceite TEXT,
                    maquina TEXT,
                    maq_de_rua TEXT,
                    data_envio_pos TEXT,
                    forma_pag_pos TEXT,
                    manual_cliente TEXT,
                    data_envio_manual TEXT,
                    custo_op_pagarme REAL,
                    custo_pos REAL,
                    comissao_afiliado REAL,
                    lucro REAL,
                    source TEXT NOT NULL DEFAULT 'manual',
                    created_at TEXT DEFAULT CURRENT_TIMESTAMP,
                    updated_at TEXT DEFAULT CURRENT_TIMESTAMP,
                    last_synced_at TEXT
                )
            """)

            cursor.execute(f"PRAGMA table_info({ORDERS_TABLE})")
            existing = {row['name'] for row in cursor.fetchall()}
            for column, column_type in LATE_COLUMNS.items():
                if column not in existing:
                    cursor.execute(f"ALTER TABLE {ORDERS_TABLE} ADD COLUMN {column} {column_type}")
                    logger.info(f"Added column {column} to {ORDERS_TABLE}")

            cursor.execute(f"""
                CREATE INDEX IF NOT EXISTS idx_orders_data_venda
                ON {ORDERS_TABLE}(data_venda DESC)
            """)

            logger.info(f"Database initialized at {self.db_path}")

    # ==================== Sync Operations ====================

    def get_order_id_by_provider_id(self, yampi_order_id: int) -> Optional[int]:
        """Local id of the row synced from this Yampi order, if any."""
        with self._connection() as conn:
            cursor = conn.cursor()
            cursor.execute(
                f"SELECT id FROM {ORDERS_TABLE} WHERE yampi_order_id = ?",
                (yampi_order_id,)
            )
            row = cursor.fetchone()
            return row['id'] if row else None

    def insert_order(self, order: CanonicalOrder, synced_at: Optional[str] = None) -> int:
        """
        Insert a row for a new Yampi order.
        Operator fields stay NULL except the tax ids, which start from the
        customer's registered values.
        Returns the local id.
        """
        synced_at = synced_at or _now()
        values = order.to_row()
        values.update({
            'source': SOURCE_YAMPI,
            'created_at': synced_at,
            'updated_at': synced_at,
            'last_synced_at': synced_at,
        })

        columns = ', '.join(values)
        placeholders = ', '.join('?' for _ in values)

        with self._connection() as conn:
            cursor = conn.cursor()
            cursor.execute(
                f"INSERT INTO {ORDERS_TABLE} ({columns}) VALUES ({placeholders})",
                tuple(values.values())
            )
            logger.debug(f"Inserted order yampi_id={order.yampi_order_id} as id={cursor.lastrowid}")
            return cursor.lastrowid

    def update_order_from_provider(self, order: CanonicalOrder, synced_at: Optional[str] = None) -> bool:
        """
        Overwrite the provider-sourced columns of an existing row.
        Operator fields are never part of this statement.
        Returns True if a row was updated.
        """
        synced_at = synced_at or _now()
        row = order.to_row()
        assignments = ', '.join(f"{col} = ?" for col in SYNC_UPDATE_COLUMNS)
        params = [row[col] for col in SYNC_UPDATE_COLUMNS]
        params.extend([synced_at, synced_at, order.yampi_order_id])

        with self._connection() as conn:
            cursor = conn.cursor()
            cursor.execute(f"""
                UPDATE {ORDERS_TABLE}
                SET {assignments}, updated_at = ?, last_synced_at = ?
                WHERE yampi_order_id = ?
            """, params)
            return cursor.rowcount > 0

    # ==================== Operator Edits ====================

    def update_operator_field(
        self,
        order_id: int,
        field: OperatorField,
        value: Any
    ) -> Optional[Dict[str, Any]]:
        """
        Set one operator-editable field.
        Returns the updated row, or None if the order does not exist.
        """
        # The column name only ever comes from the enum
        column = OperatorField(field).column

        with self._connection() as conn:
            cursor = conn.cursor()
            cursor.execute(f"""
                UPDATE {ORDERS_TABLE}
                SET {column} = ?, updated_at = ?
                WHERE id = ?
            """, (value, _now(), order_id))

            if cursor.rowcount == 0:
                return None

            cursor.execute(f"SELECT * FROM {ORDERS_TABLE} WHERE id = ?", (order_id,))
            row = cursor.fetchone()
            return dict(row) if row else None

    # ==================== Queries ====================

    def get_order(self, order_id: int) -> Optional[Dict[str, Any]]:
        """Get a single order by local id."""
        with self._connection() as conn:
            cursor = conn.cursor()
            cursor.execute(f"SELECT * FROM {ORDERS_TABLE} WHERE id = ?", (order_id,))
            row = cursor.fetchone()
            return dict(row) if row else None

    def _order_filters(
        self,
        search: Optional[str] = None,
        payment_method: Optional[str] = None,
        status: Optional[str] = None,
        date_from: Optional[str] = None,
        date_to: Optional[str] = None
    ) -> Tuple[str, List[Any]]:
        """Build the WHERE clause shared by get_orders and count_orders."""
        conditions = []
        params: List[Any] = []

        if search:
            term = f"%{search.strip().casefold()}%"
            conditions.append(
                "(" + " OR ".join(f"casefold({col}) LIKE ?" for col in SEARCH_COLUMNS) + ")"
            )
            params.extend([term] * len(SEARCH_COLUMNS))

        if payment_method:
            method = payment_method.casefold()
            conditions.append(
                "(casefold(forma_pagamento_code) = ? OR casefold(forma_pagamento) = ?)"
            )
            params.extend([method, method])

        if status:
            status = status.casefold()
            conditions.append("(casefold(status_alias) = ? OR casefold(status) = ?)")
            params.extend([status, status])

        # Compare on the day so both bounds are inclusive whatever the time part
        if date_from:
            conditions.append("substr(data_venda, 1, 10) >= ?")
            params.append(date_from[:10])

        if date_to:
            conditions.append("substr(data_venda, 1, 10) <= ?")
            params.append(date_to[:10])

        where = (" WHERE " + " AND ".join(conditions)) if conditions else ""
        return where, params

    def get_orders(
        self,
        search: Optional[str] = None,
        payment_method: Optional[str] = None,
        status: Optional[str] = None,
        date_from: Optional[str] = None,
        date_to: Optional[str] = None,
        limit: Optional[int] = None,
        offset: int = 0
    ) -> List[Dict[str, Any]]:
        """
        Get orders with optional filtering, newest sale first.

        Args:
            search: Substring of customer name, CPF, CNPJ or phone
            payment_method: Payment method code or label, case-insensitive
            status: Status code or label, case-insensitive
            date_from: Inclusive lower bound on the sale day (YYYY-MM-DD)
            date_to: Inclusive upper bound on the sale day (YYYY-MM-DD)
            limit: Max number of orders to return
            offset: Pagination offset
        """
        where, params = self._order_filters(search, payment_method, status, date_from, date_to)
        query = f"SELECT * FROM {ORDERS_TABLE}{where} ORDER BY data_venda DESC, id DESC"

        if limit:
            query += " LIMIT ? OFFSET ?"
            params.extend([limit, offset])

        with self._connection() as conn:
            cursor = conn.cursor()
            cursor.execute(query, params)
            return [dict(row) for row in cursor.fetchall()]

    def count_orders(
        self,
        search: Optional[str] = None,
        payment_method: Optional[str] = None,
        status: Optional[str] = None,
        date_from: Optional[str] = None,
        date_to: Optional[str] = None
    ) -> int:
        """Count orders matching the same filters as get_orders."""
        where, params = self._order_filters(search, payment_method, status, date_from, date_to)
        with self._connection() as conn:
            cursor = conn.cursor()
            cursor.execute(f"SELECT COUNT(*) as count FROM {ORDERS_TABLE}{where}", params)
            return cursor.fetchone()['count']

    def get_order_count(self) -> int:
        """Get total number of orders."""
        return self.count_orders()

    def get_last_synced_at(self) -> Optional[str]:
        """Timestamp of the most recent sync write."""
        with self._connection() as conn:
            cursor = conn.cursor()
            cursor.execute(f"SELECT MAX(last_synced_at) as last FROM {ORDERS_TABLE}")
            return cursor.fetchone()['last']


# Global database instance
_db_instance: Optional[Database] = None


def get_database(db_path: Optional[Path] = None) -> Database:
    """Get the global database instance."""
    global _db_instance
    if _db_instance is None:
        if db_path is None:
            from .config import get_config
            db_path = get_config().db_path
        _db_instance = Database(db_path)
    return _db_instance

