"""HR business modules. Each sub-package owns its DTOs, ORM models, store and service."""
