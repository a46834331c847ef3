"""
GIMS Stock Models
SQLAlchemy models for stock items and issues
"""
from datetime import datetime
from sqlalchemy import Column, String, Integer, Numeric, DateTime, Date, Text, JSON, Index

from gims.core.database import Base


class StockItem(Base):
    """
    Stock item master

    One row per NAC code. ``current_balance`` is adjusted by receive
    approvals, borrow returns and issues.
    """
    __tablename__ = "stock_details"

    id = Column(Integer, primary_key=True, index=True)
    nac_code = Column(String(50), unique=True, nullable=False, index=True, doc="NAC code")
    item_name = Column(Text, nullable=False, default='', doc="Comma separated item names")
    part_numbers = Column(Text, nullable=False, default='', doc="Comma separated part numbers")
    applicable_equipments = Column(Text, nullable=False, default='', doc="Comma separated equipment numbers")
    current_balance = Column(Numeric(12, 2), nullable=False, default=0)
    open_quantity = Column(Numeric(12, 2), nullable=False, default=0, doc="Opening stock entered by hand")
    open_amount = Column(Numeric(14, 2), nullable=False, default=0, doc="Value of the opening stock")
    unit = Column(String(20), default='')
    location = Column(String(100), default='')
    card_number = Column(String(100), default='')
    image_url = Column(String(255))

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)


class IssueRecord(Base):
    """Stock issued against an equipment number"""
    __tablename__ = "issue_details"

    id = Column(Integer, primary_key=True, index=True)
    issue_slip_number = Column(String(50), nullable=False, index=True)
    issue_date = Column(Date, nullable=False)
    nac_code = Column(String(50), nullable=False, index=True)
    part_number = Column(String(100), default='')
    issue_quantity = Column(Numeric(12, 2), nullable=False)
    remaining_balance = Column(Numeric(12, 2), nullable=False, doc="Balance left after this issue")
    issued_for = Column(String(100), nullable=False, doc="Equipment number")
    issued_by = Column(JSON, nullable=False, doc="{name, staffId}")
    current_fy = Column(String(20), index=True)
    approval_status = Column(String(20), nullable=False, default="PENDING")
    approved_by = Column(String(100))
    rejected_by = Column(String(100))
    rejection_reason = Column(Text)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    __table_args__ = (
        Index("ix_issue_details_issue_date", "issue_date"),
    )
