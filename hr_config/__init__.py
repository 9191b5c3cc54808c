"""
hr_config -- single public entrypoint for payroll rules.

Responsibility:
    ``get_payroll_rules()`` is the only way services obtain the statutory
    constants at runtime.  Engines receive the returned ``PayrollRules`` as a
    parameter and never read configuration themselves.

Architecture position:
    Configuration -- sits above ``hr_kernel`` and below ``hr_engines`` /
    ``hr_modules`` / ``hr_services``.  The kernel never imports from here.

Failure modes:
    - ``FileNotFoundError`` -- the rules file does not exist.
    - ``ValueError`` / ``KeyError`` -- the file is structurally invalid.

Audit relevance:
    Every load emits an ``HR_CONFIG_TRACE`` record with the rules version and
    checksum, tying each closed month to the rules that priced it.
"""

from __future__ import annotations

import os
from pathlib import Path

from hr_config.loader import compute_checksum, load_yaml_file, parse_payroll_rules
from hr_config.schema import DEFAULT_RULES, PayrollRules
from hr_kernel.logging_config import get_logger

__all__ = ["DEFAULT_RULES", "PayrollRules", "get_payroll_rules"]

_logger = get_logger("config")

_DEFAULT_RULES_FILE = Path(__file__).parent / "sets" / "payroll_rules.yaml"
_RULES_FILE_ENV = "HR_PAYROLL_RULES"


def get_payroll_rules(path: Path | str | None = None) -> PayrollRules:
    """
    Load and validate the payroll rules.

    Resolution order: explicit ``path``, then the ``HR_PAYROLL_RULES``
    environment variable, then the bundled ``sets/payroll_rules.yaml``.
    """
    rules_path = Path(path or os.environ.get(_RULES_FILE_ENV) or _DEFAULT_RULES_FILE)
    data = load_yaml_file(rules_path)
    rules = parse_payroll_rules(data)

    _logger.info(
        "HR_CONFIG_TRACE",
        extra={
            "trace_type": "HR_CONFIG_TRACE",
            "rules_path": str(rules_path),
            "rules_version": rules.version,
            "checksum": compute_checksum(data),
            "holiday_count": len(rules.holidays),
        },
    )
    return rules
