"""
GIMS RRP Models
Receive reconciliation/purchase documents
"""
from datetime import datetime
from sqlalchemy import Column, String, Integer, Numeric, DateTime, Date, Text, JSON, ForeignKey
from sqlalchemy.orm import relationship

from gims.core.database import Base


class RRPHeader(Base):
    """One purchase document grouping costed receive lines"""
    __tablename__ = "rrp_headers"

    id = Column(Integer, primary_key=True, index=True)
    rrp_number = Column(String(50), unique=True, nullable=False, index=True)
    rrp_type = Column(String(10), nullable=False, default="local", doc="local or foreign")
    supplier_name = Column(String(255), nullable=False)
    rrp_date = Column(Date, nullable=False)
    currency = Column(String(10), nullable=False, default="NPR")
    forex_rate = Column(Numeric(12, 4), nullable=False, default=1)
    invoice_number = Column(String(100))
    invoice_date = Column(Date)
    po_number = Column(String(100))
    airway_bill_number = Column(String(100))
    customs_number = Column(String(100))
    customs_date = Column(Date)
    freight_charge = Column(Numeric(14, 2), nullable=False, default=0)
    custom_service_charge = Column(Numeric(14, 2), nullable=False, default=0)
    vat_rate = Column(Numeric(5, 2), nullable=False, default=0)
    inspection_details = Column(JSON)
    current_fy = Column(String(20))

    approval_status = Column(String(20), nullable=False, default="PENDING")
    created_by = Column(String(100), nullable=False)
    approved_by = Column(String(100))
    rejected_by = Column(String(100))
    rejection_reason = Column(Text)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    lines = relationship("RRPLine", back_populates="header", cascade="all, delete-orphan",
                         order_by="RRPLine.id")


class RRPLine(Base):
    """Costing of a single receive inside an RRP"""
    __tablename__ = "rrp_lines"

    id = Column(Integer, primary_key=True, index=True)
    rrp_id = Column(Integer, ForeignKey("rrp_headers.id", ondelete="CASCADE"), nullable=False, index=True)
    receive_fk = Column(Integer, ForeignKey("receive_details.id"), nullable=False, index=True)
    item_price = Column(Numeric(14, 2), nullable=False, default=0, doc="Unit currency price")
    customs_charge = Column(Numeric(14, 2), nullable=False, default=0)
    customs_service_charge = Column(Numeric(14, 2), nullable=False, default=0)
    freight_charge = Column(Numeric(14, 2), nullable=False, default=0)
    vat_percentage = Column(Numeric(5, 2), nullable=False, default=0)
    total_amount = Column(Numeric(14, 2), nullable=False, default=0)
    approval_status = Column(String(20), nullable=False, default="PENDING")

    created_at = Column(DateTime, default=datetime.utcnow)

    header = relationship("RRPHeader", back_populates="lines")
    receive = relationship("ReceiveRecord")
