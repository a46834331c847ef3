"""
Main API Router - Consolidates all module routes
"""

from fastapi import APIRouter
from gims.api.v1 import settings, procurement, inventory, assets, prediction, uploads, exports

api_router = APIRouter()

# Settings routes
api_router.include_router(settings.borrow_sources.router, prefix="/borrow-sources", tags=["borrow-sources"])
api_router.include_router(settings.nac_units.router, prefix="/settings/nac-units", tags=["nac-units"])
api_router.include_router(settings.config.router, prefix="/settings/config", tags=["settings"])
api_router.include_router(settings.location_phrases.router, prefix="/settings/location-phrases", tags=["location-phrases"])

# Procurement routes
api_router.include_router(procurement.request_records.router, prefix="/request-records", tags=["request-records"])
api_router.include_router(procurement.requests.router, prefix="/request", tags=["requests"])
api_router.include_router(procurement.receives.router, prefix="/receive", tags=["receives"])
api_router.include_router(procurement.receive_records.router, prefix="/receive-records", tags=["receive-records"])
api_router.include_router(procurement.tender_receives.router, prefix="/tender-receive", tags=["tender-receives"])
api_router.include_router(procurement.borrow_receives.router, prefix="/borrow-receive", tags=["borrow-receives"])
api_router.include_router(procurement.rrp.router, prefix="/rrp", tags=["rrp"])

# Inventory routes
api_router.include_router(inventory.issues.router, prefix="/issue", tags=["issues"])
api_router.include_router(inventory.issue_records.router, prefix="/issue-records", tags=["issue-records"])
api_router.include_router(inventory.fuel.router, prefix="/fuel", tags=["fuel"])
api_router.include_router(inventory.balance_transfer.router, prefix="/balance-transfer", tags=["balance-transfer"])
api_router.include_router(inventory.stock_items.router, prefix="/stock", tags=["stock"])

# Asset management routes
api_router.include_router(assets.types_router, prefix="/asset-types", tags=["asset-types"])
api_router.include_router(assets.router, prefix="/assets", tags=["assets"])

# Prediction routes
api_router.include_router(prediction.router, prefix="/prediction", tags=["prediction"])

# Uploads, images and exports
api_router.include_router(uploads.router, tags=["uploads"])
api_router.include_router(exports.router, prefix="/report", tags=["reports"])
