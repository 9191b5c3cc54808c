"""HR Payroll API routers."""
