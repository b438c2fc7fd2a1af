"""
Income Statement (DRE) ORM Models (``ledger_modules.dre.orm``).

Responsibility
--------------
SQLAlchemy persistence for the category mapping dictionary.

Architecture position
---------------------
**Modules layer** -- persistence.  Imports from ``ledger_kernel.db.base``
and sibling ``models.py``.  MUST NOT be imported by ``ledger_kernel``.
"""

from sqlalchemy import Boolean, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from ledger_engines.income_statement import DREGroup
from ledger_kernel.db.base import TrackedBase
from ledger_modules.dre.models import CategoryMapping


class CategoryMappingModel(TrackedBase):
    """
    ORM model for one category dictionary entry.

    Guarantees:
        - original_label is unique (uq_dre_category_mappings_label).
        - Rows are inserted or overwritten by label, never deleted.
    """

    __tablename__ = "dre_category_mappings"

    __table_args__ = (
        UniqueConstraint("original_label", name="uq_dre_category_mappings_label"),
    )

    original_label: Mapped[str] = mapped_column(String(255), nullable=False)
    group: Mapped[str] = mapped_column("dre_group", String(30), nullable=False)
    subgroup: Mapped[str] = mapped_column("dre_subgroup", String(100), nullable=False)
    verified: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    def to_dto(self) -> CategoryMapping:
        return CategoryMapping(
            id=self.id,
            original_label=self.original_label,
            group=DREGroup(self.group),
            subgroup=self.subgroup,
            verified=self.verified,
        )

    def __repr__(self) -> str:
        return f"<CategoryMappingModel {self.original_label!r} -> {self.group}/{self.subgroup}>"
