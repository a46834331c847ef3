"""
Report Export API endpoints
"""

from datetime import date
from typing import Optional
from fastapi import APIRouter, Depends, Query
from fastapi.responses import Response
from sqlalchemy.orm import Session

from gims.api import deps
from gims.core.security import Permissions
from gims.services.reporting import ExportService, XLSX_MEDIA_TYPE

router = APIRouter()


def _attachment(content: bytes, filename: str) -> Response:
    return Response(
        content=content,
        media_type=XLSX_MEDIA_TYPE,
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.get("/current-stock/excel")
def export_current_stock(
    search: Optional[str] = None,
    db: Session = Depends(deps.get_db),
    user: deps.UserContext = Depends(deps.require_permissions(Permissions.GENERATE_CURRENT_STOCK_REPORT))
):
    content, filename = ExportService(db).current_stock_excel(search)
    return _attachment(content, filename)


@router.get("/receive-rrp/excel")
def export_receive_rrp(
    from_date: Optional[date] = Query(None, alias="fromDate"),
    to_date: Optional[date] = Query(None, alias="toDate"),
    db: Session = Depends(deps.get_db),
    user: deps.UserContext = Depends(deps.require_permissions(Permissions.ACCESS_RRP_REPORTS))
):
    content, filename = ExportService(db).receive_rrp_excel(from_date, to_date)
    return _attachment(content, filename)
