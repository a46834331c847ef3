"""
GIMS Prediction Models
Precomputed lead-time statistics per NAC code
"""
from datetime import datetime
from sqlalchemy import Column, String, Integer, Numeric, DateTime, Date

from gims.core.database import Base


class PredictionMetrics(Base):
    """Lead-time summary, refreshed on demand"""
    __tablename__ = "prediction_metrics"

    id = Column(Integer, primary_key=True, index=True)
    nac_code = Column(String(50), unique=True, nullable=False, index=True)
    sample_size = Column(Integer, nullable=False, default=0)
    mean_days = Column(Numeric(10, 2))
    weighted_average_days = Column(Numeric(10, 2))
    median_days = Column(Numeric(10, 2))
    percentile_10_days = Column(Numeric(10, 2))
    percentile_90_days = Column(Numeric(10, 2))
    min_days = Column(Numeric(10, 2))
    max_days = Column(Numeric(10, 2))
    std_dev_days = Column(Numeric(10, 2))
    confidence_level = Column(String(10), nullable=False, default="LOW")
    last_request_date = Column(Date)
    last_receive_date = Column(Date)
    calculated_at = Column(DateTime, default=datetime.utcnow)
