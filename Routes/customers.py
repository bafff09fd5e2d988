from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from typing import List, Optional, Union
from datetime import datetime
from decimal import Decimal
from Services.customers_services import CustomerService, CustomerAdjustment
from Services.exceptions import ProxyError, StorageUnavailable
from Database.db import get_db
from pydantic import BaseModel, Field, StrictBool, StrictInt, StrictStr, confloat
import logging

router = APIRouter(tags=["customers"])
logger = logging.getLogger(__name__)

# Schemas para requests/responses
# JSON aceita 1e400 e NaN; saldo só recebe valores finitos
FiniteFloat = confloat(strict=True, allow_inf_nan=False)

class CustomerSummary(BaseModel):
    customer_id: str
    first_name: str
    last_name: str
    points: int
    balance: float
    risk_level: Optional[str] = None
    status: Optional[str] = None
    segment: Optional[str] = None
    credit_limit: float
    delinquent: bool
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

class CustomerDetail(CustomerSummary):
    notes: Optional[str] = None

class CustomerDetailResponse(BaseModel):
    ok: bool = True
    customer: CustomerDetail

class CustomerSummaryResponse(BaseModel):
    ok: bool = True
    customer: CustomerSummary

class InitDbResponse(BaseModel):
    ok: bool = True
    message: str
    inserted: int

class ValidateCustomerRequest(BaseModel):
    customer_id: Optional[StrictStr] = Field(None, alias="customerId")
    last_name: Optional[StrictStr] = Field(None, alias="lastName")

    class Config:
        populate_by_name = True

class AdjustCustomerRequest(BaseModel):
    points_delta: Optional[StrictInt] = Field(None, alias="pointsDelta")
    balance_delta: Optional[Union[StrictInt, FiniteFloat]] = Field(None, alias="balanceDelta")
    risk_level: Optional[StrictStr] = Field(None, alias="riskLevel")
    status: Optional[StrictStr] = None
    segment: Optional[StrictStr] = None
    delinquent: Optional[StrictBool] = None

    class Config:
        populate_by_name = True

    def to_adjustment(self) -> CustomerAdjustment:
        return CustomerAdjustment(
            points_delta=self.points_delta or 0,
            balance_delta=Decimal(str(self.balance_delta or 0)),
            risk_level=self.risk_level,
            status=self.status,
            segment=self.segment,
            delinquent=self.delinquent,
        )

@router.get("/init-db", response_model=InitDbResponse)
def init_db(db: Session = Depends(get_db)):
    """
    Cria a tabela customers e insere os clientes de exemplo (idempotente)
    """
    try:
        inserted = CustomerService(db).bootstrap()
        return {"ok": True, "message": "Tabela customers pronta", "inserted": inserted}
    except ProxyError:
        raise
    except Exception as e:
        logger.error(f"Erro ao inicializar banco: {str(e)}")
        raise StorageUnavailable("Erro interno do servidor")

@router.get("/customers", response_model=List[CustomerSummary])
def list_customers(db: Session = Depends(get_db)):
    """
    Lista todos os clientes ordenados por customer_id
    """
    try:
        return CustomerService(db).list_customers()
    except ProxyError:
        raise
    except Exception as e:
        logger.error(f"Erro ao buscar clientes: {str(e)}")
        raise StorageUnavailable("Erro interno do servidor")

@router.get("/customer/{customer_id}", response_model=CustomerDetailResponse)
def get_customer(customer_id: str, db: Session = Depends(get_db)):
    """
    Busca um cliente específico pelo customer_id
    """
    try:
        customer = CustomerService(db).get_customer(customer_id)
        return {"ok": True, "customer": customer}
    except ProxyError:
        raise
    except Exception as e:
        logger.error(f"Erro ao buscar cliente: {str(e)}")
        raise StorageUnavailable("Erro interno do servidor")

@router.post("/validate-customer", response_model=CustomerDetailResponse)
def validate_customer(payload: Optional[ValidateCustomerRequest] = None, db: Session = Depends(get_db)):
    """
    Valida customerId + lastName para o IVR do NICE
    """
    payload = payload or ValidateCustomerRequest()
    try:
        customer = CustomerService(db).validate_customer(payload.customer_id, payload.last_name)
        return {"ok": True, "customer": customer}
    except ProxyError:
        raise
    except Exception as e:
        logger.error(f"Erro ao validar cliente: {str(e)}")
        raise StorageUnavailable("Erro interno do servidor")

@router.post("/customer/{customer_id}/adjust", response_model=CustomerSummaryResponse)
def adjust_customer(customer_id: str, payload: Optional[AdjustCustomerRequest] = None, db: Session = Depends(get_db)):
    """
    Soma deltas de pontos/saldo e atualiza os campos informados
    """
    payload = payload or AdjustCustomerRequest()
    try:
        customer = CustomerService(db).adjust_customer(customer_id, payload.to_adjustment())
        return {"ok": True, "customer": customer}
    except ProxyError:
        raise
    except Exception as e:
        logger.error(f"Erro ao ajustar cliente: {str(e)}")
        raise StorageUnavailable("Erro interno do servidor")
