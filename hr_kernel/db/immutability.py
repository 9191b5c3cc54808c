"""
ORM-Level Immutability Enforcement for closed payroll months.

===============================================================================
WHY THIS EXISTS
===============================================================================

A closed month is a payroll fact: the payslip it produced may already have
been paid and declared.  Editing either record afterwards would make the
payslip disagree with the month it summarizes, so both are append-only.

SQLAlchemy fires mapper events before UPDATE/DELETE reach the database:

    session.flush()
         |
         v
    [before_update] --> _check_*_immutability() --> ImmutabilityViolationError
    [before_delete] --> _check_*_delete() ---------^

If a check fails the flush aborts and the database is never modified.

===============================================================================
PROTECTED ENTITIES
===============================================================================

Entity            | When Immutable                     | Why
------------------|------------------------------------|-----------------------------
PayslipModel      | ALWAYS (from creation)             | Paid and declared document
ClosedMonthModel  | ALWAYS (from creation)             | Locks the month
TimeEntryModel    | Once status left "pending"         | Reviewed hours feed payroll
AbsenceModel      | Once status left "pending"         | Reviewed absences feed payroll

Reviewed entries are checked with the attribute history ("was reviewed", not
"is reviewed") so the single pending -> approved/rejected transition itself
still flushes.

===============================================================================
USAGE
===============================================================================

    from hr_kernel.db.immutability import register_immutability_listeners
    register_immutability_listeners()  # once at startup, after models import
"""

from sqlalchemy import event
from sqlalchemy.orm.attributes import get_history

from hr_kernel.exceptions import ImmutabilityViolationError
from hr_kernel.logging_config import get_logger

logger = get_logger("db.immutability")

_AUDIT_METADATA_FIELDS = frozenset({"updated_at", "updated_by_id"})
_REVIEWED_FIELDS = frozenset(
    {"entry_date", "start_time", "end_time", "break_hours", "overtime_hours",
     "absence_date", "absence_type", "duration_days", "status"}
)


def _blocked(entity_type: str, entity_id, operation: str, reason: str):
    logger.error(
        "immutability_violation_blocked",
        extra={
            "entity_type": entity_type,
            "entity_id": str(entity_id),
            "operation": operation,
        },
    )
    return ImmutabilityViolationError(
        entity_type=entity_type,
        entity_id=str(entity_id),
        reason=reason,
    )


def _changed_fields(mapper, target) -> set[str]:
    changed = set()
    for attr in mapper.column_attrs:
        if get_history(target, attr.key).has_changes():
            changed.add(attr.key)
    return changed


# =============================================================================
# Payslip and closed-month marker: always immutable
# =============================================================================


def _check_payslip_immutability(mapper, connection, target):
    if not _changed_fields(mapper, target) - _AUDIT_METADATA_FIELDS:
        return
    raise _blocked("Payslip", target.id, "UPDATE", "Payslips are immutable once issued")


def _check_payslip_delete(mapper, connection, target):
    raise _blocked("Payslip", target.id, "DELETE", "Payslips cannot be deleted")


def _check_closed_month_immutability(mapper, connection, target):
    if not _changed_fields(mapper, target) - _AUDIT_METADATA_FIELDS:
        return
    raise _blocked(
        "ClosedMonth", target.id, "UPDATE", "Closed-month markers are immutable"
    )


def _check_closed_month_delete(mapper, connection, target):
    raise _blocked(
        "ClosedMonth", target.id, "DELETE", "A closed month cannot be reopened"
    )


# =============================================================================
# Reviewed records: frozen after leaving "pending"
# =============================================================================


def _entity_name(target) -> str:
    return type(target).__name__.removesuffix("Model")


def _status_before_flush(target) -> str:
    history = get_history(target, "status")
    if history.deleted:
        return history.deleted[0]
    return target.status


def _check_reviewed_record_immutability(mapper, connection, target):
    if _status_before_flush(target) == "pending":
        return
    changed = _changed_fields(mapper, target) & _REVIEWED_FIELDS
    if not changed:
        return
    raise _blocked(
        _entity_name(target),
        target.id,
        "UPDATE",
        f"Reviewed records cannot change ({', '.join(sorted(changed))})",
    )


def _check_reviewed_record_delete(mapper, connection, target):
    if _status_before_flush(target) == "pending":
        return
    raise _blocked(
        _entity_name(target), target.id, "DELETE", "Reviewed records cannot be deleted"
    )


def _listeners():
    from hr_modules.timesheet.orm import (
        AbsenceModel,
        ClosedMonthModel,
        PayslipModel,
        TimeEntryModel,
    )

    return (
        (PayslipModel, "before_update", _check_payslip_immutability),
        (PayslipModel, "before_delete", _check_payslip_delete),
        (ClosedMonthModel, "before_update", _check_closed_month_immutability),
        (ClosedMonthModel, "before_delete", _check_closed_month_delete),
        (TimeEntryModel, "before_update", _check_reviewed_record_immutability),
        (TimeEntryModel, "before_delete", _check_reviewed_record_delete),
        (AbsenceModel, "before_update", _check_reviewed_record_immutability),
        (AbsenceModel, "before_delete", _check_reviewed_record_delete),
    )


def register_immutability_listeners():
    """Register all immutability listeners. Safe to call more than once."""
    for target, name, fn in _listeners():
        if not event.contains(target, name, fn):
            event.listen(target, name, fn)
