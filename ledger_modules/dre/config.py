"""
Income Statement (DRE) Configuration.

The ordered keyword rules behind category suggestion.  A label is folded
(upper-case, accents stripped) and the first rule with a matching keyword,
and no matching exclusion, wins.  Order matters: revenue rules are tried
first, and "Frete de compra" is kept off revenue freight by an exclusion.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field

from ledger_engines.income_statement import DREGroup
from ledger_kernel.domain.values import fold_text
from ledger_kernel.logging_config import get_logger

logger = get_logger("modules.dre.config")

_WORD_SPLIT = re.compile(r"[^A-Z0-9]+")


@dataclass(frozen=True)
class CategoryRule:
    """One keyword rule: any keyword present and no exclusion present.

    ``keywords`` are stems matched anywhere in the folded label
    ("DEVOLU" catches "Devolução" and "Devoluções").  ``words`` only match
    as whole words, so short English terms such as "tax" or "order" do not
    fire inside "Taxa" or "Borderô".
    """

    name: str
    group: DREGroup
    subgroup: str
    keywords: tuple[str, ...] = ()
    excludes: tuple[str, ...] = ()
    words: tuple[str, ...] = ()

    def __post_init__(self):
        if not self.keywords and not self.words:
            raise ValueError(f"Rule {self.name} has no keywords")
        object.__setattr__(self, "keywords", tuple(fold_text(k) for k in self.keywords))
        object.__setattr__(self, "excludes", tuple(fold_text(k) for k in self.excludes))
        object.__setattr__(self, "words", tuple(fold_text(w) for w in self.words))

    def matches(self, folded_label: str) -> bool:
        if any(word in folded_label for word in self.excludes):
            return False
        if any(stem in folded_label for stem in self.keywords):
            return True
        return not set(self.words).isdisjoint(_WORD_SPLIT.split(folded_label))


DEFAULT_CATEGORY_RULES: tuple[CategoryRule, ...] = (
    CategoryRule(
        name="sales",
        group=DREGroup.REVENUE_GROSS,
        subgroup="Sales",
        keywords=("venda", "pedido", "faturamento"),
        words=("sale", "sales", "revenue", "order", "orders"),
    ),
    CategoryRule(
        name="freight_revenue",
        group=DREGroup.REVENUE_GROSS,
        subgroup="Freight",
        keywords=("frete", "freight"),
        excludes=("compra", "purchase"),
    ),
    CategoryRule(
        name="returns",
        group=DREGroup.DEDUCTIONS,
        subgroup="Returns and Cancellations",
        keywords=("devolu", "cancel", "estorno", "refund"),
        words=("return", "returns"),
    ),
    CategoryRule(
        name="sales_taxes",
        group=DREGroup.DEDUCTIONS,
        subgroup="Sales Taxes",
        keywords=("imposto", "simples", "das", "icms"),
        words=("tax", "taxes"),
    ),
    CategoryRule(
        name="import_costs",
        group=DREGroup.COGS,
        subgroup="Import Costs",
        keywords=("import", "invoice", "despachante", "siscomex", "cambio", "customs"),
    ),
    CategoryRule(
        name="domestic_purchases",
        group=DREGroup.COGS,
        subgroup="Domestic Purchases",
        keywords=("compra", "fornecedor", "purchase", "supplier"),
    ),
    CategoryRule(
        name="sales_expenses",
        group=DREGroup.OPERATING_EXPENSES,
        subgroup="Sales",
        keywords=("comiss", "commission", "marketing", "ads", "google", "facebook"),
    ),
    CategoryRule(
        name="financial_expenses",
        group=DREGroup.OPERATING_EXPENSES,
        subgroup="Financial",
        keywords=("tarif", "juro", "banc", "iof", "interest"),
        words=("fee", "fees", "bank"),
    ),
)


DEFAULT_GROUP = DREGroup.OPERATING_EXPENSES
DEFAULT_SUBGROUP = "Administrative"


@dataclass(frozen=True)
class DREConfig:
    """
    Configuration for category suggestion.

    Override the rule list to teach the heuristic new vocabulary:

        config = DREConfig(rules=(my_rule, *DEFAULT_CATEGORY_RULES))
    """

    rules: tuple[CategoryRule, ...] = field(default=DEFAULT_CATEGORY_RULES)
    default_group: DREGroup = DEFAULT_GROUP
    default_subgroup: str = DEFAULT_SUBGROUP

    def suggest(self, label: str | None) -> tuple[DREGroup, str]:
        folded = fold_text(label)
        for rule in self.rules:
            if rule.matches(folded):
                logger.debug(
                    "category_rule_matched",
                    extra={"label": label, "rule": rule.name},
                )
                return rule.group, rule.subgroup
        return self.default_group, self.default_subgroup
