"""
API route modules.

Each module defines routes for one domain area.
"""

from routes.import_wizard import router as import_wizard_router

__all__ = [
    "import_wizard_router",
]
