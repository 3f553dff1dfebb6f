"""SQLAlchemy models for bankrecon database."""

from datetime import datetime, UTC
from sqlalchemy import (
    Column,
    Integer,
    String,
    Date,
    DateTime,
    Float,
    Numeric,
    JSON,
    UniqueConstraint,
    create_engine,
)
from sqlalchemy.orm import declarative_base, sessionmaker, Session

Base = declarative_base()


class LedgerLayout(Base):
    """Location of the two ledger spreadsheets (single row)."""

    __tablename__ = "ledger_layout"

    id = Column(Integer, primary_key=True)
    issued_ledger_id = Column(String, nullable=False)
    received_ledger_id = Column(String, nullable=False)
    updated_at = Column(DateTime, default=lambda: datetime.now(UTC), nullable=False)


class Partition(Base):
    """Bank partition: one bank's movement store."""

    __tablename__ = "partitions"

    id = Column(Integer, primary_key=True)
    bank_name = Column(String, unique=True, nullable=False)
    store_id = Column(String, nullable=False)
    created_at = Column(DateTime, default=lambda: datetime.now(UTC), nullable=False)


class LedgerRow(Base):
    """Raw row of a ledger tab, stored as a list of cell values."""

    __tablename__ = "ledger_rows"

    id = Column(Integer, primary_key=True)
    spreadsheet_id = Column(String, nullable=False)
    tab = Column(String, nullable=False)
    row_index = Column(Integer, nullable=False)
    cells = Column(JSON, nullable=False)

    __table_args__ = (
        UniqueConstraint("spreadsheet_id", "tab", "row_index", name="uq_ledger_row_position"),
    )


class MovementRow(Base):
    """Bank movement row within a month tab of a movement store."""

    __tablename__ = "movements"

    id = Column(Integer, primary_key=True)
    store_id = Column(String, nullable=False, index=True)
    sheet = Column(String, nullable=False)
    row_number = Column(Integer, nullable=False)
    date = Column(String, nullable=False, default="")
    description = Column(String, nullable=False, default="")
    debit = Column(Numeric(14, 2), nullable=True)
    credit = Column(Numeric(14, 2), nullable=True)
    balance = Column(Numeric(14, 2), nullable=True)
    matched_file_id = Column(String, nullable=False, default="")
    detail = Column(String, nullable=False, default="")

    __table_args__ = (
        UniqueConstraint("store_id", "sheet", "row_number", name="uq_movement_position"),
    )


class ExchangeRate(Base):
    """USD sell rate in ARS for one calendar day."""

    __tablename__ = "exchange_rates"

    rate_date = Column(Date, primary_key=True)
    sell_rate = Column(Numeric(14, 4), nullable=False)


class RunLock(Base):
    """Named lock held by one run; times are epoch seconds."""

    __tablename__ = "run_locks"

    lock_id = Column(String, primary_key=True)
    holder = Column(String, nullable=False)
    acquired_at = Column(Float, nullable=False)
    expires_at = Column(Float, nullable=False)


def create_session_factory(database_url: str) -> sessionmaker[Session]:
    """Create a SQLAlchemy session factory."""
    engine = create_engine(database_url, echo=False)
    Base.metadata.create_all(engine)
    return sessionmaker(bind=engine)
