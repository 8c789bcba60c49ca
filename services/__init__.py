"""
Business logic services.

Each service handles one domain area.
"""

from services.mapping_engine import MappingEngine
from services.import_wizard_service import ImportWizardSession

__all__ = [
    "MappingEngine",
    "ImportWizardSession",
]
