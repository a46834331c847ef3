"""Inventory services: stock master, issues, fuel and balance transfers"""

from .stock_master import StockMasterService
from .stock_issues import StockIssueService
from .issue_records import IssueRecordService
from .fuel import FuelService
from .balance_transfer import BalanceTransferService

__all__ = [
    "StockMasterService",
    "StockIssueService",
    "IssueRecordService",
    "FuelService",
    "BalanceTransferService",
]
