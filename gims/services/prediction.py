"""
Prediction Service

Lead-time statistics per NAC code, computed from the gap between a request
and its first approved receive. Statistics are precomputed into
prediction_metrics and refreshed on demand.
"""
from typing import Dict, List, Optional
from datetime import datetime
from sqlalchemy.orm import Session
from sqlalchemy import func

import pandas as pd

from gims.core.config import settings
from gims.core.database import transaction, upsert
from gims.core.exceptions import NotFoundError
from gims.core.logging import get_logger
from gims.models import PredictionMetrics, RequestRecord, ReceiveRecord
from gims.services.business_logic import ApprovalStatus

logger = get_logger("prediction")

METRIC_FIELDS = [
    "sample_size", "mean_days", "weighted_average_days", "median_days",
    "percentile_10_days", "percentile_90_days", "min_days", "max_days",
    "std_dev_days", "confidence_level", "last_request_date", "last_receive_date",
    "calculated_at",
]


def confidence_level(sample_size: int) -> str:
    if sample_size >= 20:
        return "HIGH"
    if sample_size >= 10:
        return "MEDIUM"
    return "LOW"


def compute_metrics(samples: pd.DataFrame, window: int = 30) -> Dict:
    """
    Summarise one NAC code's lead times

    ``samples`` holds ``lead_days``, ``request_date`` and ``receive_date``
    columns. The weighted mean uses the ``window`` most recent samples by
    receive date with weights 1..n, oldest first.
    """
    lead = samples["lead_days"].astype(float)
    recent = samples.sort_values("receive_date", kind="stable").tail(window)
    weights = pd.Series(range(1, len(recent) + 1), index=recent.index, dtype=float)
    weighted = float((recent["lead_days"] * weights).sum() / weights.sum())
    latest = recent.iloc[-1]

    return {
        "sample_size": int(lead.size),
        "mean_days": round(float(lead.mean()), 2),
        "weighted_average_days": round(weighted, 2),
        "median_days": round(float(lead.median()), 2),
        "percentile_10_days": round(float(lead.quantile(0.1)), 2),
        "percentile_90_days": round(float(lead.quantile(0.9)), 2),
        "min_days": round(float(lead.min()), 2),
        "max_days": round(float(lead.max()), 2),
        "std_dev_days": round(float(lead.std(ddof=0)), 2),
        "confidence_level": confidence_level(int(lead.size)),
        "last_request_date": latest["request_date"],
        "last_receive_date": latest["receive_date"],
    }


def prediction_payload(metrics: PredictionMetrics) -> Dict:
    """API shape of a stored metrics row"""
    weighted = float(metrics.weighted_average_days or metrics.mean_days or 0)
    p10 = float(metrics.percentile_10_days) if metrics.percentile_10_days is not None else None
    p90 = float(metrics.percentile_90_days) if metrics.percentile_90_days is not None else None
    return {
        "nacCode": metrics.nac_code,
        "sampleSize": metrics.sample_size,
        "predictedDays": round(weighted),
        "rangeLowerDays": p10 if p10 is not None else weighted,
        "rangeUpperDays": p90 if p90 is not None else weighted,
        "confidence": metrics.confidence_level,
        "stats": {
            "averageDays": float(metrics.mean_days or 0),
            "weightedAverageDays": weighted,
            "medianDays": float(metrics.median_days or 0),
            "percentile10Days": p10,
            "percentile90Days": p90,
            "minDays": float(metrics.min_days) if metrics.min_days is not None else None,
            "maxDays": float(metrics.max_days) if metrics.max_days is not None else None,
            "standardDeviationDays": float(metrics.std_dev_days) if metrics.std_dev_days is not None else None,
            "confidenceLevel": metrics.confidence_level,
            "latestRequestDate": metrics.last_request_date,
            "latestReceiveDate": metrics.last_receive_date,
        },
        "calculatedAt": metrics.calculated_at,
    }


class PredictionService:

    def __init__(self, db: Session):
        self.db = db

    def lead_times(self, nac_code: Optional[str] = None) -> pd.DataFrame:
        """One row per request with at least one approved receive"""
        query = (
            self.db.query(
                RequestRecord.nac_code,
                RequestRecord.request_date,
                func.min(ReceiveRecord.receive_date).label("receive_date"),
            )
            .join(ReceiveRecord, ReceiveRecord.request_fk == RequestRecord.id)
            .filter(
                ReceiveRecord.approval_status == ApprovalStatus.APPROVED.value,
                ReceiveRecord.receive_date.isnot(None),
                RequestRecord.request_date.isnot(None),
            )
            .group_by(RequestRecord.id, RequestRecord.nac_code, RequestRecord.request_date)
        )
        if nac_code:
            query = query.filter(RequestRecord.nac_code == nac_code)

        frame = pd.DataFrame(query.all(), columns=["nac_code", "request_date", "receive_date"])
        if frame.empty:
            frame["lead_days"] = pd.Series(dtype=float)
            return frame

        delta = pd.to_datetime(frame["receive_date"]) - pd.to_datetime(frame["request_date"])
        frame["lead_days"] = delta.dt.days.clip(lower=0).astype(float)
        return frame[frame["nac_code"].astype(bool)]

    def refresh(self, nac_code: Optional[str] = None) -> int:
        """
        Recompute metrics for one NAC code or rebuild the whole table

        Returns the number of NAC codes written.
        """
        frame = self.lead_times(nac_code)
        calculated_at = datetime.utcnow()

        with transaction(self.db):
            if nac_code:
                if frame.empty:
                    self.db.query(PredictionMetrics).filter(PredictionMetrics.nac_code == nac_code).delete()
                    logger.info(f"No lead-time data for NAC {nac_code}, metrics removed")
                    return 0
            else:
                self.db.query(PredictionMetrics).delete()

            written = 0
            for code, samples in frame.groupby("nac_code"):
                values = compute_metrics(samples, settings.PREDICTION_WINDOW)
                values.update(nac_code=code, calculated_at=calculated_at)
                upsert(self.db, PredictionMetrics, values,
                       index_elements=["nac_code"], update_fields=METRIC_FIELDS)
                written += 1

        logger.info(f"Refreshed prediction metrics for {nac_code or f'{written} NAC codes'}")
        return written

    def refresh_quietly(self, nac_code: str) -> None:
        """Refresh after a committed write; failures are logged only"""
        try:
            self.refresh(nac_code)
        except Exception as e:
            logger.warning(f"Failed to refresh prediction metrics for NAC {nac_code}: {e}")

    def get_metrics(self, nac_code: str) -> Dict:
        metrics = self.db.query(PredictionMetrics).filter(PredictionMetrics.nac_code == nac_code).first()
        if not metrics:
            raise NotFoundError(f"No prediction metrics found for NAC code: {nac_code}")
        return prediction_payload(metrics)

    def get_batch(self, nac_codes: List[str]) -> List[Dict]:
        rows = self.db.query(PredictionMetrics).filter(PredictionMetrics.nac_code.in_(nac_codes)).all()
        return [prediction_payload(row) for row in rows]

    def list_metrics(self, search: Optional[str] = None, page: int = 1, page_size: int = 20) -> Dict:
        query = self.db.query(PredictionMetrics)
        if search:
            query = query.filter(PredictionMetrics.nac_code.ilike(f"%{search.strip()}%"))
        total = query.count()
        rows = (
            query.order_by(PredictionMetrics.calculated_at.desc(), PredictionMetrics.nac_code)
            .offset((page - 1) * page_size)
            .limit(page_size)
            .all()
        )
        return {
            "data": [prediction_payload(row) for row in rows],
            "pagination": {"page": page, "pageSize": page_size, "total": total},
        }
