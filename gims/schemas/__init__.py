"""
GIMS Pydantic Schemas
Request/Response models for the inventory API
"""

from .common import ApiModel
from .settings import (
    NacUnitCreate, NacUnitUpdate, BorrowSourceCreate, BorrowSourceUpdate, ConfigUpdate,
    LocationPhraseCreate, LocationPhraseUpdate
)
from .stock import (
    StockItemCreate, StockItemUpdate, StockItemResponse, IssueCreate, IssueDecision, IssueRecordUpdate
)
from .request import (
    RequestRecordCreate, RequestRecordUpdate, RequestSubmission,
    ApprovalPayload, RejectionPayload
)
from .receive import (
    ReceiveCreate, TenderReceiveCreate, BorrowReceiveCreate,
    BorrowReturnCreate, ReceiveUpdate, ReceiveRejection, UnitConversionSave, ReceiveRecordUpdate
)
from .rrp import RRPCreate, RRPLineStatusUpdate
from .fuel import FuelCreate, FuelUpdate, FuelApproval, FuelReceiveCreate, BalanceTransferCreate
from .asset import AssetTypeCreate, AssetTypeUpdate, AssetCreate, AssetUpdate
from .prediction import PredictionBatchRequest, PredictionRefreshRequest
