"""SQLAlchemy models for tally database."""

from datetime import datetime, UTC
from decimal import Decimal
from sqlalchemy import (
    Column,
    Integer,
    String,
    ForeignKey,
    DateTime,
    Date,
    Numeric,
    Boolean,
    Float,
    Uuid,
    create_engine,
)
from sqlalchemy.orm import declarative_base, relationship, sessionmaker, Session

Base = declarative_base()

MONEY = Numeric(18, 2)


class Account(Base):
    """Account model."""

    __tablename__ = "accounts"

    id = Column(Uuid, primary_key=True)
    name = Column(String(50), nullable=False)
    tag = Column(String, unique=True, nullable=False)
    balance = Column(MONEY, default=Decimal("0"), nullable=False)
    opening_balance = Column(MONEY, default=Decimal("0"), nullable=False)
    is_default = Column(Boolean, default=False, nullable=False)
    account_type = Column(String, nullable=False)
    currency = Column(String(3), nullable=False)
    last_transaction_date = Column(Date, nullable=True)
    created_at = Column(DateTime, default=lambda: datetime.now(UTC), nullable=False)


class Category(Base):
    """Category model."""

    __tablename__ = "categories"

    id = Column(Uuid, primary_key=True)
    name = Column(String, unique=True, nullable=False)
    icon = Column(String, nullable=False)
    color_hex = Column(String(7), nullable=False)
    created_at = Column(DateTime, default=lambda: datetime.now(UTC), nullable=False)

    # Relationships
    transactions = relationship("Transaction", back_populates="category")


class Transaction(Base):
    """Transaction model.

    Account references are plain columns without a foreign key so that a
    detached account deletion leaves the ledger rows readable.
    """

    __tablename__ = "transactions"

    id = Column(Uuid, primary_key=True)
    timestamp = Column(DateTime, default=lambda: datetime.now(UTC), nullable=False)
    transaction_date = Column(Date, nullable=False, index=True)
    type = Column(String, nullable=False)
    amount = Column(MONEY, nullable=False)
    description = Column(String, nullable=False, default="")
    category_id = Column(Uuid, ForeignKey("categories.id"), nullable=True)
    from_account_id = Column(Uuid, nullable=True, index=True)
    to_account_id = Column(Uuid, nullable=True, index=True)
    parent_transaction_id = Column(Uuid, ForeignKey("transactions.id"), nullable=True, index=True)
    position = Column(Integer, nullable=False, default=0)
    transfer_id = Column(Uuid, nullable=True, index=True)
    bank_transaction_id = Column(String, nullable=True)
    pending_transaction_id = Column(Uuid, unique=True, nullable=True)
    version = Column(Integer, nullable=False, default=0)

    # Relationships
    category = relationship("Category", back_populates="transactions")
    children = relationship(
        "Transaction",
        cascade="all, delete-orphan",
        order_by="Transaction.position",
    )


class PendingTransaction(Base):
    """Bank-imported candidate awaiting review."""

    __tablename__ = "pending_transactions"

    id = Column(Uuid, primary_key=True)
    bank_transaction_id = Column(String, unique=True, nullable=True)
    amount = Column(MONEY, nullable=False)
    description_text = Column(String, nullable=False, default="")
    merchant_name = Column(String, nullable=True)
    transaction_date = Column(Date, nullable=False)
    type = Column(String, nullable=False)
    account_id = Column(Uuid, nullable=False, index=True)
    suggested_category_id = Column(Uuid, nullable=True)
    confidence = Column(Float, nullable=False, default=0.0)
    imported_at = Column(DateTime, default=lambda: datetime.now(UTC), nullable=False)
    status = Column(String, nullable=False, index=True)
    processed_at = Column(DateTime, nullable=True)
    processing_started_at = Column(DateTime, nullable=True)
    transaction_id = Column(Uuid, nullable=True)
    last_error = Column(String, nullable=True)


def create_session_factory(database_url: str) -> sessionmaker[Session]:
    """Create a SQLAlchemy session factory."""
    engine = create_engine(database_url, echo=False)
    Base.metadata.create_all(engine)
    return sessionmaker(bind=engine, expire_on_commit=False)
