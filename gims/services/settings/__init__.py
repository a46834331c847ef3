"""Settings services: NAC units, borrow sources, application config"""

from .nac_units import NacUnitService
from .borrow_sources import BorrowSourceService
from .app_config import AppConfigService
from .location_phrases import LocationPhraseService

__all__ = ["NacUnitService", "BorrowSourceService", "AppConfigService", "LocationPhraseService"]
