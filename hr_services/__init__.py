"""
hr_services -- stateful orchestration over engines and modules.

Currently hosts the month-closing orchestrator.
"""

from hr_services._close_types import MonthCloseResult
from hr_services.month_close_orchestrator import MonthCloseOrchestrator

__all__ = ["MonthCloseOrchestrator", "MonthCloseResult"]
