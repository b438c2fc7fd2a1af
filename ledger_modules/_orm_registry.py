"""
Module ORM Registry (``ledger_modules._orm_registry``).

Responsibility
--------------
Ensure all SQLAlchemy ORM models are imported so that ``Base.metadata``
contains their table definitions before tables are created.

Architecture position
---------------------
**Modules layer** -- utility.  Imported lazily by
``ledger_kernel.db.engine.create_tables``; MUST NOT be imported at module
level by ``ledger_kernel``.
"""


def import_all_orm_models() -> None:
    """Import kernel models and every ``ledger_modules.*.orm`` module.

    This function is idempotent -- repeated calls are harmless.
    """
    # Kernel tables first (ledgers, audit log)
    import ledger_kernel.models  # noqa: F401
    # fmt: off
    import ledger_modules.collections.orm  # noqa: F401
    import ledger_modules.dre.orm  # noqa: F401
    import ledger_modules.settlements.orm  # noqa: F401
    # fmt: on
