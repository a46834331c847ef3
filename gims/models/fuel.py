"""
GIMS Fuel Models
Fuel issues with odometer readings, fuel receipts and NAC code balance transfers
"""
from datetime import datetime
from sqlalchemy import Column, String, Integer, Numeric, DateTime, Date, Boolean, ForeignKey
from sqlalchemy.orm import relationship

from gims.core.database import Base


class FuelRecord(Base):
    """
    Fuel issued to one equipment

    Every row is backed by an issue of the fuel NAC code; the issue carries
    the quantity, date and approval status.
    """
    __tablename__ = "fuel_records"

    id = Column(Integer, primary_key=True, index=True)
    fuel_type = Column(String(20), nullable=False, doc="diesel or petrol")
    kilometers = Column(Numeric(12, 2), nullable=False, default=0)
    is_kilometer_reset = Column(Boolean, nullable=False, default=False)
    fuel_price = Column(Numeric(12, 2), nullable=False, default=0)
    week_number = Column(Integer, nullable=False)
    fy = Column(String(20), index=True)
    issue_fk = Column(Integer, ForeignKey("issue_details.id"), nullable=False, index=True)
    approval_status = Column(String(20), nullable=False, default="PENDING")
    approved_by = Column(String(100))

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    issue = relationship("IssueRecord")


class FuelReceipt(Base):
    """Bulk fuel received into the fuel stock"""
    __tablename__ = "fuel_receipts"

    id = Column(Integer, primary_key=True, index=True)
    nac_code = Column(String(50), nullable=False, index=True)
    receive_date = Column(Date, nullable=False)
    quantity = Column(Numeric(12, 2), nullable=False)
    received_by = Column(String(100), nullable=False)

    created_at = Column(DateTime, default=datetime.utcnow)


class BalanceTransfer(Base):
    """
    Quantity moved from one NAC code to another

    Links the approved issue on the source code, the approved receive on the
    destination code and the receive the quantity was taken from.
    """
    __tablename__ = "balance_transfers"

    id = Column(Integer, primary_key=True, index=True)
    from_nac_code = Column(String(50), nullable=False, index=True)
    to_nac_code = Column(String(50), nullable=False, index=True)
    quantity = Column(Numeric(12, 2), nullable=False)
    transfer_cost = Column(Numeric(14, 2), nullable=False, default=0)
    transfer_date = Column(Date, nullable=False)
    transferred_by = Column(String(100), nullable=False)
    issue_fk = Column(Integer, ForeignKey("issue_details.id"), nullable=False)
    receive_fk = Column(Integer, ForeignKey("receive_details.id"), nullable=False)
    source_receive_fk = Column(Integer, ForeignKey("receive_details.id"), nullable=False)

    created_at = Column(DateTime, default=datetime.utcnow)

    issue = relationship("IssueRecord")
    receive = relationship("ReceiveRecord", foreign_keys=[receive_fk])
    source_receive = relationship("ReceiveRecord", foreign_keys=[source_receive_fk])
