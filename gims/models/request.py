"""
GIMS Request Models
Requisitions raised against stock items
"""
from datetime import datetime
from sqlalchemy import Column, String, Integer, Numeric, DateTime, Date, Text, Boolean, Index

from gims.core.database import Base


class RequestRecord(Base):
    """
    Request line

    Lines sharing a ``request_number`` form one request. ``receive_fk`` points
    at the latest approved receive and ``is_received`` is set once approved
    receives cover the requested quantity.
    """
    __tablename__ = "request_details"

    id = Column(Integer, primary_key=True, index=True)
    request_number = Column(String(50), nullable=False, index=True)
    request_date = Column(Date, nullable=False)
    nac_code = Column(String(50), nullable=False, index=True)
    part_number = Column(String(100), nullable=False)
    item_name = Column(String(255), nullable=False)
    unit = Column(String(20), nullable=False)
    requested_quantity = Column(Numeric(12, 2), nullable=False)
    current_balance = Column(String(20), doc="Stock balance snapshot at request time")
    previous_rate = Column(String(20), doc="Last purchase rate or N/A")
    equipment_number = Column(String(100), nullable=False)
    image_path = Column(String(255))
    specifications = Column(Text)
    remarks = Column(Text)
    requested_by = Column(String(100), nullable=False)
    requested_by_email = Column(String(100))

    # Workflow
    approval_status = Column(String(20), nullable=False, default="PENDING")
    approved_by = Column(String(100))
    rejected_by = Column(String(100))
    rejection_reason = Column(Text)
    is_received = Column(Boolean, nullable=False, default=False)
    receive_fk = Column(Integer, doc="Latest approved receive")

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    __table_args__ = (
        Index("ix_request_details_status_date", "approval_status", "request_date"),
    )
