import sqlite3

import pytest

from app.core.database import SYNC_UPDATE_COLUMNS, Database
from app.orders.fields import OPERATOR_COLUMNS, OperatorField
from app.orders.normalizer import normalize


def _insert(db, yampi_order, **kwargs):
    return db.insert_order(normalize(yampi_order(**kwargs)))


def test_sync_columns_never_include_operator_fields():
    assert not set(SYNC_UPDATE_COLUMNS) & set(OPERATOR_COLUMNS)


def test_insert_and_lookup_by_provider_id(db, yampi_order):
    order_id = _insert(db, yampi_order, order_id=77)

    assert db.get_order_id_by_provider_id(77) == order_id
    assert db.get_order_id_by_provider_id(78) is None

    row = db.get_order(order_id)
    assert row["yampi_order_id"] == 77
    assert row["cpf"] == "12345678901"
    assert row["source"] == "yampi"
    assert row["created_at"] == row["last_synced_at"]


def test_provider_id_is_unique(db, yampi_order):
    _insert(db, yampi_order, order_id=5)

    with pytest.raises(sqlite3.IntegrityError):
        _insert(db, yampi_order, order_id=5)


def test_update_from_provider_leaves_operator_fields(db, yampi_order):
    order_id = _insert(db, yampi_order, order_id=5, cpf="111")
    db.update_operator_field(order_id, OperatorField.LUCRO, 42.0)
    db.update_operator_field(order_id, OperatorField.MAQUINA, "SN-0001")

    updated = db.update_order_from_provider(
        normalize(yampi_order(order_id=5, cpf="222", customer_name="Outro Nome")),
        synced_at="2030-01-01T00:00:00+00:00",
    )

    row = db.get_order(order_id)
    assert updated is True
    assert row["cliente"] == "Outro Nome"
    assert row["cpf"] == "111"
    assert row["lucro"] == 42.0
    assert row["maquina"] == "SN-0001"
    assert row["last_synced_at"] == "2030-01-01T00:00:00+00:00"


def test_update_from_provider_for_unknown_order(db, yampi_order):
    assert db.update_order_from_provider(normalize(yampi_order(order_id=404))) is False


def test_update_from_provider_refreshes_payment_code(db, yampi_order):
    order_id = _insert(db, yampi_order, order_id=6)
    assert db.get_order(order_id)["forma_pagamento_code"] == "pix"

    db.update_order_from_provider(normalize(yampi_order(
        order_id=6, payments=[{"name": "Boleto", "payment_method": "billet"}],
    )))

    row = db.get_order(order_id)
    assert row["forma_pagamento"] == "Boleto"
    assert row["forma_pagamento_code"] == "billet"


def test_existing_database_gains_new_columns(tmp_path, yampi_order):
    path = tmp_path / "old.db"
    conn = sqlite3.connect(path)
    conn.execute("""
        CREATE TABLE orders (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            yampi_order_id INTEGER UNIQUE,
            yampi_order_number INTEGER,
            cliente TEXT, cpf TEXT, cnpj TEXT, telefone TEXT,
            endereco_entrega TEXT, data_venda TEXT, status TEXT,
            status_alias TEXT, forma_pagamento TEXT, modelo TEXT, plano TEXT,
            quantidade INTEGER DEFAULT 0, link_cupom TEXT,
            valor_bruto REAL, valor_liquido REAL, valor_desconto REAL,
            source TEXT NOT NULL DEFAULT 'manual',
            created_at TEXT, updated_at TEXT, last_synced_at TEXT
        )
    """)
    conn.commit()
    conn.close()

    db = Database(path)
    order_id = _insert(db, yampi_order, order_id=8)

    assert db.get_order(order_id)["forma_pagamento_code"] == "pix"


def test_update_operator_field_returns_row(db, yampi_order):
    order_id = _insert(db, yampi_order)

    row = db.update_operator_field(order_id, OperatorField.CNPJ, "12.345.678/0001-90")

    assert row["id"] == order_id
    assert row["cnpj"] == "12.345.678/0001-90"


def test_update_operator_field_on_missing_row(db):
    assert db.update_operator_field(999, OperatorField.CPF, "123") is None
    assert db.get_order_count() == 0


def test_update_operator_field_rejects_other_columns(db, yampi_order):
    order_id = _insert(db, yampi_order)

    with pytest.raises(ValueError):
        db.update_operator_field(order_id, "cliente", "Hacker")

    assert db.get_order(order_id)["cliente"] == "Maria Souza"


class TestOrderQueries:
    @pytest.fixture(autouse=True)
    def seed(self, db, yampi_order):
        self.db = db
        _insert(db, yampi_order, order_id=1, customer_name="Maria Souza", cpf="11111111111",
                created_at="2024-01-05 10:00:00")
        _insert(db, yampi_order, order_id=2, customer_name="João Lima", cpf="22222222222",
                created_at="2024-01-20 23:59:00")
        third = yampi_order(order_id=3, customer_name="Ana Maria", cpf=None,
                            created_at="2024-02-01T08:00:00")
        third["status"] = {"id": 1, "name": "Aguardando pagamento", "alias": "waiting_payment"}
        third["transactions"] = [{"payment_method": "billet"}]
        db.insert_order(normalize(third))

    def _ids(self, rows):
        return sorted(r["yampi_order_id"] for r in rows)

    def test_newest_sale_first(self):
        assert [r["yampi_order_id"] for r in self.db.get_orders()] == [3, 2, 1]

    def test_search_matches_name_and_tax_id(self):
        assert self._ids(self.db.get_orders(search="maria")) == [1, 3]
        assert self._ids(self.db.get_orders(search="2222")) == [2]

    def test_status_matches_alias_or_label(self):
        assert self._ids(self.db.get_orders(status="paid")) == [1, 2]
        assert self._ids(self.db.get_orders(status="aguardando pagamento")) == [3]

    def test_payment_method_is_case_insensitive(self):
        assert self._ids(self.db.get_orders(payment_method="PIX")) == [1, 2]
        assert self._ids(self.db.get_orders(payment_method="billet")) == [3]

    def test_payment_method_matches_code_when_label_differs(self, yampi_order):
        _insert(self.db, yampi_order, order_id=4,
                payments=[{"name": "Cartão de Crédito", "payment_method": "credit_card"}])

        assert self._ids(self.db.get_orders(payment_method="credit_card")) == [4]
        assert self._ids(self.db.get_orders(payment_method="cartão de crédito")) == [4]
        assert self.db.count_orders(payment_method="pix") == 2

    def test_search_folds_accented_case(self):
        assert self._ids(self.db.get_orders(search="JOÃO")) == [2]
        assert self._ids(self.db.get_orders(search="joão lima")) == [2]

    def test_date_bounds_are_inclusive(self):
        rows = self.db.get_orders(date_from="2024-01-05", date_to="2024-01-20")
        assert self._ids(rows) == [1, 2]
        assert self._ids(self.db.get_orders(date_from="2024-01-21")) == [3]
        assert self._ids(self.db.get_orders(date_to="2024-01-05")) == [1]

    def test_count_ignores_limit(self):
        assert len(self.db.get_orders(limit=1)) == 1
        assert len(self.db.get_orders(limit=2, offset=2)) == 1
        assert self.db.count_orders() == 3
        assert self.db.count_orders(status="paid") == 2

    def test_last_synced_at(self):
        assert self.db.get_last_synced_at() is not None
