"""
GIMS Receive Models
Stock arriving from purchase, tender and borrow sources
"""
from datetime import datetime
from sqlalchemy import Column, String, Integer, Numeric, DateTime, Date, Text, Boolean, ForeignKey, Index
from sqlalchemy.orm import relationship

from gims.core.database import Base


class BorrowSource(Base):
    """External lender for borrow receives, soft deleted through is_active"""
    __tablename__ = "borrow_sources"

    id = Column(Integer, primary_key=True, index=True)
    source_name = Column(String(255), unique=True, nullable=False)
    source_code = Column(String(50))
    contact_person = Column(String(255))
    contact_phone = Column(String(50))
    contact_email = Column(String(255))
    address = Column(Text)
    is_active = Column(Boolean, nullable=False, default=True)
    created_by = Column(String(100))

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    receives = relationship("ReceiveRecord", back_populates="borrow_source")


class ReceiveRecord(Base):
    """
    Receive line

    ``receive_source`` is one of purchase, tender, borrow or borrow_return.
    A borrow return row points back at the borrow it settles through the
    original's ``return_receive_fk``.
    """
    __tablename__ = "receive_details"

    id = Column(Integer, primary_key=True, index=True)
    receive_date = Column(Date, nullable=False)
    request_fk = Column(Integer, ForeignKey("request_details.id"), index=True)
    nac_code = Column(String(50), nullable=False, index=True)
    part_number = Column(String(100), nullable=False, default='')
    item_name = Column(String(255), nullable=False, default='')
    received_quantity = Column(Numeric(12, 2), nullable=False)
    unit = Column(String(20), default='')
    equipment_number = Column(String(100))
    location = Column(String(100))
    card_number = Column(String(100))
    image_path = Column(String(255))
    received_by = Column(String(100), nullable=False)

    # Workflow
    approval_status = Column(String(20), nullable=False, default="PENDING")
    approved_by = Column(String(100))
    rejected_by = Column(String(100))
    rejection_reason = Column(Text)
    rrp_fk = Column(Integer, doc="RRP line costing this receive")

    # Source specific
    receive_source = Column(String(20), nullable=False, default="purchase")
    tender_reference_number = Column(String(100))
    borrow_source_id = Column(Integer, ForeignKey("borrow_sources.id"), index=True)
    borrow_status = Column(String(20))
    borrow_date = Column(Date)
    borrow_reference_number = Column(String(100))
    return_date = Column(Date)
    return_receive_fk = Column(Integer, doc="Pending or approved return of this borrow")
    transferred_quantity = Column(Numeric(12, 2), nullable=False, default=0,
                                  doc="Quantity moved to other NAC codes by balance transfers")

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    request = relationship("RequestRecord")
    borrow_source = relationship("BorrowSource", back_populates="receives")

    __table_args__ = (
        Index("ix_receive_details_source_status", "receive_source", "borrow_status"),
    )
