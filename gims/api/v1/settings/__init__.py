from . import borrow_sources, nac_units, config, location_phrases
