"""
GIMS Business Services
Service classes holding the validation and workflow rules of each resource
"""

from .business_logic import ApprovalStatus, ReceiveSource, BorrowStatus

__all__ = ["ApprovalStatus", "ReceiveSource", "BorrowStatus"]
