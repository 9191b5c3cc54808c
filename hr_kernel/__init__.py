"""
HR Kernel -- shared foundation of the payroll system.

Typed exceptions, structured logging, the clock and payroll-month value
objects, timesheet record DTOs, and the SQLAlchemy persistence base.
"""

__version__ = "0.1.0"
