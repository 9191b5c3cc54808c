"""
hr_api -- HTTP surface (FastAPI) over the timesheet service and the
month-closing orchestrator.
"""

from hr_api.app import create_app

__all__ = ["create_app"]
