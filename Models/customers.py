from sqlalchemy import Column, Integer, String, Numeric, Text, Boolean, TIMESTAMP, false, text
from datetime import datetime
from .base import Base

class Customer(Base):
    __tablename__ = "customers"

    id = Column(Integer, primary_key=True, autoincrement=True)
    customer_id = Column(String(50), unique=True, nullable=False)
    first_name = Column(String(100), nullable=False)
    last_name = Column(String(100), nullable=False)
    points = Column(Integer, default=0, server_default=text("0"))
    balance = Column(Numeric(12,2), default=0, server_default=text("0"))
    risk_level = Column(String(20), default="low", server_default="low")
    status = Column(String(20), default="active", server_default="active")
    segment = Column(String(30), default="standard", server_default="standard")
    credit_limit = Column(Numeric(12,2), default=0, server_default=text("0"))
    delinquent = Column(Boolean, default=False, server_default=false())
    notes = Column(Text)
    created_at = Column(TIMESTAMP, default=datetime.now)
    updated_at = Column(TIMESTAMP, default=datetime.now)
