"""
Export Service

Builds the current stock and receive/RRP spreadsheets. Rows are collected
into a pandas DataFrame and written to an openpyxl workbook with a styled
header row.
"""
import io
from typing import Optional, Tuple
from datetime import date

import pandas as pd
from openpyxl import Workbook
from openpyxl.styles import Font, Alignment, Border, Side, PatternFill
from openpyxl.utils.dataframe import dataframe_to_rows
from sqlalchemy.orm import Session
from sqlalchemy import func, or_, select

from gims.core.exceptions import ValidationError
from gims.core.logging import get_logger
from gims.models import StockItem, IssueRecord, ReceiveRecord, RequestRecord, RRPHeader, RRPLine
from gims.services.business_logic import ApprovalStatus, ReceiveSource, format_quantity

logger = get_logger("report")

XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


class ExportService:
    """Service for exporting inventory reports to Excel"""

    def __init__(self, db: Session):
        self.db = db

    def current_stock_excel(self, search: Optional[str] = None) -> Tuple[bytes, str]:
        """Current balances with approved receive and issue totals per NAC code"""
        received = (
            select(func.coalesce(func.sum(ReceiveRecord.received_quantity), 0))
            .where(
                ReceiveRecord.nac_code == StockItem.nac_code,
                ReceiveRecord.approval_status == ApprovalStatus.APPROVED.value,
                ReceiveRecord.receive_source != ReceiveSource.BORROW_RETURN.value,
            )
            .correlate(StockItem)
            .scalar_subquery()
        )
        issued = (
            select(func.coalesce(func.sum(IssueRecord.issue_quantity), 0))
            .where(
                IssueRecord.nac_code == StockItem.nac_code,
                IssueRecord.approval_status == ApprovalStatus.APPROVED.value,
            )
            .correlate(StockItem)
            .scalar_subquery()
        )
        query = self.db.query(StockItem, received.label("received"), issued.label("issued"))
        if search and search.strip():
            term = f"%{search.strip()}%"
            query = query.filter(or_(
                StockItem.nac_code.ilike(term),
                StockItem.item_name.ilike(term),
                StockItem.part_numbers.ilike(term),
                StockItem.applicable_equipments.ilike(term),
            ))

        frame = pd.DataFrame(
            [
                {
                    "NAC Code": item.nac_code,
                    "Item Name": item.item_name,
                    "Part Numbers": item.part_numbers,
                    "Equipment Numbers": item.applicable_equipments,
                    "Received Quantity": float(received_qty or 0),
                    "Issued Quantity": float(issued_qty or 0),
                    "Current Balance": float(item.current_balance or 0),
                    "Unit": item.unit or '',
                    "Location": item.location or '',
                    "Card Number": item.card_number or '',
                }
                for item, received_qty, issued_qty in query.order_by(StockItem.nac_code).all()
            ]
        )
        logger.info(f"Exporting current stock report: {len(frame)} items")
        return self._workbook_bytes(frame, "Stock Report"), f"Current_Stock_Report_{date.today().isoformat()}.xlsx"

    def receive_rrp_excel(self, from_date: Optional[date], to_date: Optional[date]) -> Tuple[bytes, str]:
        """Approved receives in a date range together with their RRP costing"""
        if from_date is None or to_date is None:
            raise ValidationError("fromDate and toDate are required")
        if from_date > to_date:
            raise ValidationError("fromDate cannot be after toDate")

        rows = (
            self.db.query(ReceiveRecord, RequestRecord, RRPLine, RRPHeader)
            .outerjoin(RequestRecord, ReceiveRecord.request_fk == RequestRecord.id)
            .outerjoin(RRPLine, ReceiveRecord.rrp_fk == RRPLine.id)
            .outerjoin(RRPHeader, RRPLine.rrp_id == RRPHeader.id)
            .filter(
                ReceiveRecord.approval_status == ApprovalStatus.APPROVED.value,
                ReceiveRecord.receive_date >= from_date,
                ReceiveRecord.receive_date <= to_date,
            )
            .order_by(ReceiveRecord.receive_date.desc(), ReceiveRecord.id.desc())
            .all()
        )

        records = []
        for receive, request, line, header in rows:
            records.append({
                "Receive Date": receive.receive_date.isoformat(),
                "Item Name": receive.item_name or "N/A",
                "Part Number": receive.part_number or "N/A",
                "NAC Code": receive.nac_code or "N/A",
                "Quantity": f"{format_quantity(receive.received_quantity)} {receive.unit or ''}".strip(),
                "Source": receive.receive_source,
                "Request Number": request.request_number if request else "N/A",
                "Request Date": request.request_date.isoformat() if request else "N/A",
                "Requested By": request.requested_by if request else "N/A",
                "Equipment Number": (request.equipment_number if request else receive.equipment_number) or "N/A",
                "RRP Number": header.rrp_number if header else "Not created",
                "RRP Date": header.rrp_date.isoformat() if header else "-",
                "Supplier Name": header.supplier_name if header else "-",
                "Currency": header.currency if header else "-",
                "Item Price": float(line.item_price) if line else None,
                "Customs Charge": float(line.customs_charge) if line else None,
                "VAT Percentage": float(line.vat_percentage) if line else None,
                "Total Amount": float(line.total_amount) if line else None,
                "Invoice Number": (header.invoice_number or "-") if header else "-",
                "RRP Approval Status": line.approval_status if line else "-",
                "Received By": receive.received_by or "-",
            })
        frame = pd.DataFrame(records)
        logger.info(f"Exporting receive and RRP report {from_date} to {to_date}: {len(frame)} items")
        return (
            self._workbook_bytes(frame, "Receive and RRP Report"),
            f"Receive_RRP_Report_{from_date.isoformat()}_{to_date.isoformat()}.xlsx",
        )

    def _workbook_bytes(self, frame: pd.DataFrame, title: str) -> bytes:
        wb = Workbook()
        ws = wb.active
        ws.title = title[:31]

        header_font = Font(bold=True, color="FFFFFF")
        header_fill = PatternFill(start_color="366092", end_color="366092", fill_type="solid")
        header_alignment = Alignment(horizontal="center", vertical="center")
        border = Border(
            left=Side(style='thin'),
            right=Side(style='thin'),
            top=Side(style='thin'),
            bottom=Side(style='thin')
        )

        if frame.empty:
            ws.append(["No records found for the selected criteria"])
        else:
            for row in dataframe_to_rows(frame.astype(object).where(pd.notnull(frame), None), index=False, header=True):
                ws.append(row)
            for cell in ws[1]:
                cell.font = header_font
                cell.fill = header_fill
                cell.alignment = header_alignment
                cell.border = border
            for row in ws.iter_rows(min_row=2):
                for cell in row:
                    cell.border = border
                    if isinstance(cell.value, float) and "Amount" in str(ws.cell(row=1, column=cell.column).value):
                        cell.number_format = '#,##0.00'

        # Auto-adjust column widths
        for column in ws.columns:
            max_length = max((len(str(cell.value)) for cell in column if cell.value is not None), default=0)
            ws.column_dimensions[column[0].column_letter].width = min(max_length + 2, 50)

        buffer = io.BytesIO()
        wb.save(buffer)
        return buffer.getvalue()
