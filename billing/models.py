# billing/models.py
from sqlalchemy import (
    JSON, CheckConstraint, Column, Date, DateTime, DECIMAL, ForeignKey, Integer, String, Text,
    UniqueConstraint, func,
)
from sqlalchemy.orm import declarative_base

Base = declarative_base()

class User(Base):
    __tablename__ = 'users'
    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(100), nullable=False)
    email = Column(String(191), nullable=False, unique=True)
    password = Column(String(255), nullable=False)
    phone = Column(String(20))
    worktype = Column(String(255))   # comma-separated tags
    role = Column(String(20), nullable=False)   # admin | Client | Agent
    rate = Column(JSON)              # {"claimer": 1.2, ...} or a bare number
    agent_rates = Column(JSON)       # agent-specific override map
    created_at = Column(DateTime, server_default=func.now())

class Bank(Base):
    __tablename__ = 'banks'
    id = Column(Integer, primary_key=True, autoincrement=True)
    bank_name = Column(String(100), nullable=False, unique=True)
    created_at = Column(DateTime, server_default=func.now())

class Group(Base):
    __tablename__ = 'groups'
    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(100), nullable=False)
    type = Column(String(50))        # Claim | Depo | Processing | Payment
    owner = Column(Integer, ForeignKey('users.id', ondelete='CASCADE'), nullable=False)
    same_rate = Column(DECIMAL(10, 2))
    created_at = Column(DateTime, server_default=func.now())

class GroupBankRate(Base):
    __tablename__ = 'group_bank_rate'
    __table_args__ = (UniqueConstraint('group_id', 'bank_id', name='ux_group_bank'),)
    id = Column(Integer, primary_key=True, autoincrement=True)
    group_id = Column(Integer, ForeignKey('groups.id', ondelete='CASCADE'), nullable=False)
    bank_id = Column(Integer, ForeignKey('banks.id', ondelete='CASCADE'), nullable=False)
    rate = Column(DECIMAL(10, 2), nullable=False)
    created_at = Column(DateTime, server_default=func.now())

class Bill(Base):
    __tablename__ = 'bill'
    id = Column(Integer, primary_key=True, autoincrement=True)
    bill_date = Column(Date, nullable=False)
    group_id = Column(Integer, ForeignKey('groups.id'), nullable=False)
    bank_id = Column(Integer, ForeignKey('banks.id'))   # NULL for same-rate groups
    client_id = Column(Integer, ForeignKey('users.id'), nullable=False)
    agent_id = Column(Integer, ForeignKey('users.id'), nullable=False)
    amount = Column(DECIMAL(12, 2), nullable=False)
    rate = Column(DECIMAL(12, 2))
    created_at = Column(DateTime, server_default=func.now())

class AgentBill(Base):
    __tablename__ = 'agent_bill'
    id = Column(Integer, primary_key=True, autoincrement=True)
    bill_id = Column(Integer, ForeignKey('bill.id', ondelete='CASCADE'), nullable=False, unique=True)
    bill_date = Column(Date, nullable=False)
    group_id = Column(Integer, nullable=False)
    client_id = Column(Integer, nullable=False)
    agent_id = Column(Integer, nullable=False)
    source = Column(String(10), nullable=False)   # Claim | Depo
    bank_id = Column(Integer)
    amount = Column(DECIMAL(12, 2), nullable=False)
    rate = Column(DECIMAL(12, 4), nullable=False)
    total = Column(DECIMAL(14, 2), nullable=False)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

class OtherBill(Base):
    __tablename__ = 'other_bill'
    __table_args__ = (CheckConstraint("LOWER(`kind`) IN ('client','agent')", name='chk_other_bill_kind'),)
    id = Column(Integer, primary_key=True, autoincrement=True)
    kind = Column(String(20), nullable=False)
    bill_date = Column(Date, nullable=False)
    group_id = Column(Integer, ForeignKey('groups.id'))
    client_id = Column(Integer, ForeignKey('users.id'))
    agent_id = Column(Integer, ForeignKey('users.id'))
    comment = Column(Text)
    amount = Column(DECIMAL(12, 2), nullable=False)
    created_at = Column(DateTime, server_default=func.now())

class DollarRate(Base):
    __tablename__ = 'dollar_rate'
    id = Column(Integer, primary_key=True, autoincrement=True)
    rate_date = Column(Date, nullable=False)
    rate = Column(DECIMAL(12, 4), nullable=False)
    created_at = Column(DateTime, server_default=func.now())

class PaymentMethod(Base):
    __tablename__ = 'payment_methods'
    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(100), nullable=False, unique=True)
    created_at = Column(DateTime, server_default=func.now())

class TransactionDetail(Base):
    __tablename__ = 'transaction_details'
    id = Column(Integer, primary_key=True, autoincrement=True)
    transaction_date = Column(Date, nullable=False)
    payment_method_id = Column(Integer, ForeignKey('payment_methods.id', ondelete='RESTRICT'), nullable=False)
    amount = Column(DECIMAL(14, 2), nullable=False)
    dollar_rate_id = Column(Integer, ForeignKey('dollar_rate.id', ondelete='RESTRICT'), nullable=False)
    created_at = Column(DateTime, server_default=func.now())

class ProcessingCalculation(Base):
    __tablename__ = 'processing_calculation'
    id = Column(Integer, primary_key=True, autoincrement=True)
    processing_percent = Column(DECIMAL(5, 2), nullable=False)
    processing_group_id = Column(Integer, ForeignKey('groups.id', ondelete='CASCADE'), nullable=False)
    client_id = Column(Integer, ForeignKey('users.id', ondelete='CASCADE'), nullable=False)
    processing_total = Column(DECIMAL(14, 2))
    created_at = Column(DateTime, server_default=func.now())

class ProcessingGroupCalculation(Base):
    __tablename__ = 'processing_group_calculation'
    id = Column(Integer, primary_key=True, autoincrement=True)
    processing_percent = Column(DECIMAL(5, 2), nullable=False)
    processing_group_id = Column(Integer, ForeignKey('groups.id', ondelete='CASCADE'), nullable=False)
    client_id = Column(Integer, ForeignKey('users.id', ondelete='CASCADE'), nullable=False)
    processing_total = Column(DECIMAL(14, 2))
    created_at = Column(DateTime, server_default=func.now())

class GroupAdminNumber(Base):
    __tablename__ = 'group_admin_numbers'
    id = Column(Integer, primary_key=True, autoincrement=True)
    group_id = Column(Integer, ForeignKey('groups.id', ondelete='CASCADE'), nullable=False)
    number = Column(String(20), nullable=False)
    created_at = Column(DateTime, server_default=func.now())

class GroupEmployeeNumber(Base):
    __tablename__ = 'group_employee_numbers'
    id = Column(Integer, primary_key=True, autoincrement=True)
    group_id = Column(Integer, ForeignKey('groups.id', ondelete='CASCADE'), nullable=False)
    number = Column(String(20), nullable=False)
    created_at = Column(DateTime, server_default=func.now())
