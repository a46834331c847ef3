"""Procurement services: requests, receives and RRP documents"""

from .request_records import RequestRecordService
from .request_workflow import RequestWorkflowService
from .borrow_receive import BorrowReceiveService
from .receive import ReceiveService
from .tender_receive import TenderReceiveService
from .rrp import RRPService
from .receive_records import ReceiveRecordService

__all__ = [
    "RequestRecordService",
    "RequestWorkflowService",
    "BorrowReceiveService",
    "ReceiveService",
    "TenderReceiveService",
    "RRPService",
    "ReceiveRecordService",
]
