"""
Operator-editable order fields.

These columns are filled in by the sales team through the dashboard and are
never touched by a provider sync update. The enum is the only place a column
name for a single-field edit can come from.
"""

from datetime import date, datetime
from enum import Enum
from typing import Any, Optional

from .normalizer import parse_float


class UnsupportedFieldError(ValueError):
    """Raised when an edit targets a column outside the allow-list."""


class InvalidFieldValueError(ValueError):
    """Raised when an edit value cannot be stored in the target column."""


TEXT = 'text'
DATE = 'date'
MONEY = 'money'


class OperatorField(str, Enum):
    CPF = 'cpf'
    CNPJ = 'cnpj'
    PRIMEIRO_CONTATO = 'primeiro_contato'
    CAD_PORTAL = 'cad_portal'
    CAD_PAGSEGURO = 'cad_pagseguro'
    DATA_ACEITE = 'data_aceite'
    MAQUINA = 'maquina'
    MAQ_DE_RUA = 'maq_de_rua'
    DATA_ENVIO_POS = 'data_envio_pos'
    FORMA_PAG_POS = 'forma_pag_pos'
    MANUAL_CLIENTE = 'manual_cliente'
    DATA_ENVIO_MANUAL = 'data_envio_manual'
    CUSTO_OP_PAGARME = 'custo_op_pagarme'
    CUSTO_POS = 'custo_pos'
    COMISSAO_AFILIADO = 'comissao_afiliado'
    LUCRO = 'lucro'

    @property
    def column(self) -> str:
        return self.value

    @property
    def kind(self) -> str:
        return _FIELD_KINDS[self]

    @classmethod
    def parse(cls, name: str) -> 'OperatorField':
        """Resolve a client-supplied field name, rejecting anything else."""
        try:
            return cls(name)
        except ValueError:
            raise UnsupportedFieldError(f"Field not supported: {name}") from None

    def coerce(self, value: Any) -> Any:
        """
        Convert a client value into what the column stores.
        Empty values clear the field.
        """
        if value is None or (isinstance(value, str) and not value.strip()):
            return None

        if self.kind == DATE:
            return _coerce_date(self, value)

        if self.kind == MONEY:
            if isinstance(value, bool):
                raise InvalidFieldValueError(f"{self.value} expects a number")
            number = parse_float(value)
            if number is None:
                raise InvalidFieldValueError(f"{self.value} expects a number, got {value!r}")
            return number

        return str(value).strip()


_FIELD_KINDS = {
    OperatorField.CPF: TEXT,
    OperatorField.CNPJ: TEXT,
    OperatorField.PRIMEIRO_CONTATO: DATE,
    OperatorField.CAD_PORTAL: TEXT,
    OperatorField.CAD_PAGSEGURO: TEXT,
    OperatorField.DATA_ACEITE: DATE,
    OperatorField.MAQUINA: TEXT,
    OperatorField.MAQ_DE_RUA: TEXT,
    OperatorField.DATA_ENVIO_POS: DATE,
    OperatorField.FORMA_PAG_POS: TEXT,
    OperatorField.MANUAL_CLIENTE: TEXT,
    OperatorField.DATA_ENVIO_MANUAL: DATE,
    OperatorField.CUSTO_OP_PAGARME: MONEY,
    OperatorField.CUSTO_POS: MONEY,
    OperatorField.COMISSAO_AFILIADO: MONEY,
    OperatorField.LUCRO: MONEY,
}


def _coerce_date(field: OperatorField, value: Any) -> Optional[str]:
    if isinstance(value, datetime):
        return value.date().isoformat()
    if isinstance(value, date):
        return value.isoformat()
    try:
        # Accept full timestamps from date pickers, keep the day only
        return date.fromisoformat(str(value).strip()[:10]).isoformat()
    except ValueError:
        raise InvalidFieldValueError(
            f"{field.value} expects a date (YYYY-MM-DD), got {value!r}"
        ) from None


OPERATOR_COLUMNS = tuple(f.column for f in OperatorField)
