"""
Application Config Service
Typed access to app_config rows (current fiscal year, section code, ...)
"""
from typing import Dict, Optional
from sqlalchemy.orm import Session

from gims.core.database import transaction, upsert
from gims.core.logging import get_logger
from gims.models import AppConfig

logger = get_logger("settings")


class AppConfigService:

    def __init__(self, db: Session):
        self.db = db

    def get_config(self, config_type: str) -> Dict[str, str]:
        rows = self.db.query(AppConfig).filter(AppConfig.config_type == config_type).all()
        return {row.config_name: row.config_value for row in rows}

    def get_value(self, config_name: str, default: Optional[str] = None) -> Optional[str]:
        row = (
            self.db.query(AppConfig)
            .filter(AppConfig.config_name == config_name)
            .order_by(AppConfig.id)
            .first()
        )
        return row.config_value if row else default

    def set_values(self, config_type: str, values: Dict[str, str]) -> Dict[str, str]:
        with transaction(self.db):
            for name, value in values.items():
                upsert(
                    self.db, AppConfig,
                    {"config_type": config_type, "config_name": name, "config_value": str(value)},
                    index_elements=["config_type", "config_name"],
                    update_fields=["config_value"],
                )
        logger.info(f"Config {config_type} updated: {', '.join(values)}")
        return self.get_config(config_type)

    @property
    def current_fy(self) -> str:
        return self.get_value("current_fy", "") or ""

    @property
    def section_code(self) -> str:
        return self.get_value("section_code", "") or ""
