# FILE: herbal_ledger/models/inventory.py
from __future__ import annotations

import enum
from datetime import datetime
from sqlalchemy import (
    Column, Integer, String, DateTime, Numeric, JSON, CheckConstraint, Index
)

from herbal_ledger.db.base import Base

Money = Numeric(14, 2)
Grams = Numeric(14, 4)


# -------------------------
# Enums
# -------------------------
class StorageType(str, enum.Enum):
    SEALED = "sealed"
    REFRIGERATED = "refrigerated"


class OutType(str, enum.Enum):
    PRESCRIPTION_USE = "prescription_use"
    VOID = "void"
    PROCESSING_LOSS = "processing_loss"


# -------------------------
# Masters
# -------------------------
class Source(Base):
    __tablename__ = "sources"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(200), unique=True, nullable=False, index=True)
    remark = Column(String(1000), default="")

    create_time = Column(DateTime, nullable=True)
    update_time = Column(DateTime, nullable=True)


class Drug(Base):
    __tablename__ = "drugs"
    __table_args__ = (
        CheckConstraint("min_stock >= 0", name="ck_drugs_min_stock"),
        CheckConstraint("use_count >= 0", name="ck_drugs_use_count"),
    )

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(200), unique=True, nullable=False, index=True)
    storage_type = Column(String(20),
                          default=StorageType.SEALED.value,
                          nullable=False)

    min_stock = Column(Grams, default=0, nullable=False)  # warning threshold
    default_estimate = Column(Grams, default=10, nullable=False)  # seed grams/use
    current_estimate = Column(Grams, default=10, nullable=False)  # running avg
    use_count = Column(Integer, default=0, nullable=False)
    total_used_grams = Column(Grams, default=0, nullable=False)

    create_time = Column(DateTime, nullable=True)
    update_time = Column(DateTime, nullable=True)


# -------------------------
# Ledgers
# -------------------------
class StockIn(Base):
    """
    Purchase event. grams/total_amount/unit_price never change after
    creation; remaining_grams is the batch balance FIFO draws down.
    """
    __tablename__ = "stock_ins"
    __table_args__ = (
        CheckConstraint("grams > 0", name="ck_stock_ins_grams"),
        CheckConstraint("remaining_grams >= 0", name="ck_stock_ins_remaining"),
    )

    id = Column(Integer, primary_key=True, index=True)
    drug_id = Column(Integer, nullable=False, index=True)
    drug_name = Column(String(200), nullable=False)  # denormalized at creation
    source_id = Column(Integer, nullable=False)
    source_name = Column(String(200), nullable=False)

    grams = Column(Grams, nullable=False)
    total_amount = Column(Money, nullable=False)
    unit_price = Column(Money, nullable=False)
    remaining_grams = Column(Grams, nullable=False)

    in_time = Column(DateTime, nullable=False, index=True)
    remark = Column(String(1000), default="")

    create_time = Column(DateTime, nullable=True)
    update_time = Column(DateTime, nullable=True)


class StockOut(Base):
    __tablename__ = "stock_outs"
    __table_args__ = (
        CheckConstraint("grams > 0", name="ck_stock_outs_grams"),
        Index("ix_stock_outs_drug_time", "drug_id", "out_time"),
    )

    id = Column(Integer, primary_key=True, index=True)
    drug_id = Column(Integer, nullable=False, index=True)
    drug_name = Column(String(200), nullable=False)
    out_type = Column(String(30), nullable=False, index=True)

    grams = Column(Grams, nullable=False)
    total_amount = Column(Money, nullable=False)  # FIFO-derived cost
    # [{"stock_in_id", "grams", "unit_price", "amount"}] oldest first
    allocations = Column(JSON, default=list)

    out_time = Column(DateTime, nullable=False, index=True)
    prescription_id = Column(Integer, nullable=True, index=True)
    remark = Column(String(1000), default="")

    create_time = Column(DateTime, nullable=True)
    update_time = Column(DateTime, nullable=True)
