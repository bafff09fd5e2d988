from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from sqlalchemy import select, update
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from Models.base import Base
from Models.customers import Customer
from Services.exceptions import InvalidInput, NotFound, StorageUnavailable
import logging

logger = logging.getLogger(__name__)

SUMMARY_COLUMNS = (
    Customer.customer_id,
    Customer.first_name,
    Customer.last_name,
    Customer.points,
    Customer.balance,
    Customer.risk_level,
    Customer.status,
    Customer.segment,
    Customer.credit_limit,
    Customer.delinquent,
    Customer.created_at,
    Customer.updated_at,
)
DETAIL_COLUMNS = SUMMARY_COLUMNS + (Customer.notes,)

SEED_CUSTOMERS = [
    {
        "customer_id": "CUST-1001",
        "first_name": "Juan",
        "last_name": "Perez",
        "points": 250,
        "balance": Decimal("1500.75"),
        "risk_level": "low",
        "status": "active",
        "segment": "gold",
        "credit_limit": Decimal("5000.00"),
        "delinquent": False,
        "notes": "Prefers Spanish-speaking agents",
    },
    {
        "customer_id": "CUST-1002",
        "first_name": "Maria",
        "last_name": "Gomez",
        "points": 120,
        "balance": Decimal("320.00"),
        "risk_level": "medium",
        "status": "active",
        "segment": "standard",
        "credit_limit": Decimal("2000.00"),
        "delinquent": False,
        "notes": "Asked about the loyalty program upgrade",
    },
    {
        "customer_id": "CUST-1003",
        "first_name": "Carlos",
        "last_name": "Rodriguez",
        "points": 0,
        "balance": Decimal("-85.40"),
        "risk_level": "high",
        "status": "suspended",
        "segment": "standard",
        "credit_limit": Decimal("1000.00"),
        "delinquent": True,
        "notes": "Two missed payments, route to collections",
    },
    {
        "customer_id": "CUST-1004",
        "first_name": "Ana",
        "last_name": "Martinez",
        "points": 980,
        "balance": Decimal("0.00"),
        "risk_level": "low",
        "status": "active",
        "segment": "platinum",
        "credit_limit": Decimal("10000.00"),
        "delinquent": False,
        "notes": None,
    },
]

# INSERT ... ON CONFLICT DO NOTHING por dialeto
_INSERTS = {
    "postgresql": pg_insert,
    "sqlite": sqlite_insert,
}

OPTIONAL_FIELDS = ("risk_level", "status", "segment", "delinquent")


@dataclass
class CustomerAdjustment:
    """
    Ajuste de um cliente: deltas somados ao valor salvo e campos opcionais
    que só substituem o valor salvo quando informados (None = manter).
    """
    points_delta: int = 0
    balance_delta: Decimal = Decimal("0")
    risk_level: Optional[str] = None
    status: Optional[str] = None
    segment: Optional[str] = None
    delinquent: Optional[bool] = None


def merge_optional_fields(adjustment: CustomerAdjustment) -> dict:
    """Retorna só os campos opcionais informados, prontos para o UPDATE"""
    values = {}
    for field in OPTIONAL_FIELDS:
        value = getattr(adjustment, field)
        if value is not None:
            values[field] = value
    return values


class CustomerService:
    def __init__(self, db: Session):
        self.db = db

    @contextmanager
    def _storage_errors(self, action: str):
        try:
            yield
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Erro de banco ao {action}: {e}")
            raise StorageUnavailable(f"Erro de banco ao {action}") from e

    def bootstrap(self) -> int:
        """
        Cria a tabela customers se não existir e insere os clientes de
        exemplo, ignorando os que já existem. Retorna quantos foram inseridos.
        """
        with self._storage_errors("inicializar o banco"):
            conn = self.db.connection()
            Base.metadata.create_all(bind=conn)

            insert = _INSERTS.get(conn.dialect.name)
            if insert is None:
                self.db.rollback()
                raise StorageUnavailable(f"Dialeto não suportado: {conn.dialect.name}")

            now = datetime.now()
            rows = [{**seed, "created_at": now, "updated_at": now} for seed in SEED_CUSTOMERS]
            stmt = insert(Customer).values(rows).on_conflict_do_nothing(
                index_elements=["customer_id"]
            )
            result = self.db.execute(stmt)
            self.db.commit()

        inserted = max(result.rowcount or 0, 0)
        logger.info(f"Banco inicializado: {inserted} cliente(s) de exemplo inserido(s)")
        return inserted

    def list_customers(self) -> List[dict]:
        """
        Lista todos os clientes ordenados por customer_id, sem notes
        """
        with self._storage_errors("listar clientes"):
            rows = self.db.execute(
                select(*SUMMARY_COLUMNS).order_by(Customer.customer_id.asc())
            ).all()
        return [dict(row._mapping) for row in rows]

    def get_customer(self, customer_id: str) -> dict:
        """
        Busca o registro completo pelo customer_id exato
        """
        with self._storage_errors("buscar cliente"):
            row = self.db.execute(
                select(*DETAIL_COLUMNS).where(Customer.customer_id == customer_id)
            ).first()
        if not row:
            raise NotFound(f"Cliente {customer_id} não encontrado")
        return dict(row._mapping)

    def validate_customer(self, customer_id: Optional[str], last_name: Optional[str]) -> dict:
        """
        Confere customer_id + sobrenome (sem diferenciar maiúsculas).
        Id inexistente e sobrenome errado geram o mesmo NotFound.
        """
        customer_id = (customer_id or "").strip()
        last_name = (last_name or "").strip()
        if not customer_id or not last_name:
            raise InvalidInput("customerId e lastName são obrigatórios", code="MISSING_FIELDS")

        with self._storage_errors("validar cliente"):
            row = self.db.execute(
                select(*DETAIL_COLUMNS).where(Customer.customer_id == customer_id)
            ).first()
        # casefold no Python: lower() do SQLite só converte ASCII
        if not row or (row.last_name or "").strip().casefold() != last_name.casefold():
            raise NotFound("Cliente não encontrado")
        return dict(row._mapping)

    def adjust_customer(self, customer_id: str, adjustment: CustomerAdjustment) -> dict:
        """
        Soma os deltas de pontos e saldo e substitui os campos opcionais
        informados, num único UPDATE. Não há limite: pontos e saldo podem
        ficar negativos.
        """
        values = {
            "points": Customer.points + adjustment.points_delta,
            "balance": Customer.balance + adjustment.balance_delta,
            "updated_at": datetime.now(),
            **merge_optional_fields(adjustment),
        }

        with self._storage_errors("ajustar cliente"):
            result = self.db.execute(
                update(Customer)
                .where(Customer.customer_id == customer_id)
                .values(**values)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount == 0:
                self.db.rollback()
                raise NotFound(f"Cliente {customer_id} não encontrado")

            row = self.db.execute(
                select(*SUMMARY_COLUMNS).where(Customer.customer_id == customer_id)
            ).first()
            self.db.commit()

        logger.info(
            f"Cliente {customer_id} ajustado: pontos {adjustment.points_delta:+d}, "
            f"saldo {adjustment.balance_delta:+}"
        )
        return dict(row._mapping)
