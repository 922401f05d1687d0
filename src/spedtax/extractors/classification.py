"""
Income statement account-group classification for ECF J150 lines.

The aggregation code (COD_AGL) prefix decides when it is one of the known
groups; otherwise the description is matched against keywords, ignoring
accents and case. When a description matches several groups the longest
keyword wins; a tie leaves the line unclassified.
"""

import unicodedata
from enum import Enum
from typing import Optional


class AccountGroup(Enum):
    """Income statement groups the extractor aggregates."""
    GROSS_REVENUE = "gross_revenue"
    REVENUE_DEDUCTION = "revenue_deduction"
    COST = "cost"
    OPERATING_EXPENSE = "operating_expense"


# Referential chart of accounts (plano referencial) prefixes
CODE_PREFIXES = [
    (AccountGroup.GROSS_REVENUE, ("3.01.01.01",)),
    (AccountGroup.REVENUE_DEDUCTION, ("3.01.01.02", "3.01.01.03", "3.01.01.04")),
    (AccountGroup.COST, ("3.02.01.01",)),
    (AccountGroup.OPERATING_EXPENSE, ("3.03.01", "3.04.01")),
]

DESCRIPTION_KEYWORDS = [
    (AccountGroup.GROSS_REVENUE, ("RECEITA BRUTA",)),
    (AccountGroup.REVENUE_DEDUCTION, ("DEDUCOES DA RECEITA", "IMPOSTOS INCIDENTES", "DEVOLUCOES")),
    (AccountGroup.COST, ("CUSTO DAS MERCADORIAS", "CUSTO DOS PRODUTOS", "CUSTO DOS SERVICOS")),
    (AccountGroup.OPERATING_EXPENSE, (
        "DESPESAS OPERACIONAIS", "DESPESAS COM VENDAS", "DESPESAS ADMINISTRATIVAS",
    )),
]


def normalize_text(text: str) -> str:
    """Uppercase and strip accents ('Deduções' -> 'DEDUCOES')."""
    decomposed = unicodedata.normalize("NFKD", text or "")
    return "".join(c for c in decomposed if not unicodedata.combining(c)).upper().strip()


def classify_by_code(account_code: str) -> Optional[AccountGroup]:
    code = (account_code or "").strip()
    if not code:
        return None
    for group, prefixes in CODE_PREFIXES:
        if code.startswith(prefixes):
            return group
    return None


def classify_by_description(description: str) -> Optional[AccountGroup]:
    text = normalize_text(description)
    if not text:
        return None
    # Longest matching keyword per group: "DEDUCOES DA RECEITA BRUTA" is a
    # deduction even though it also contains "RECEITA BRUTA"
    best = {}
    for group, keywords in DESCRIPTION_KEYWORDS:
        lengths = [len(keyword) for keyword in keywords if keyword in text]
        if lengths:
            best[group] = max(lengths)
    if not best:
        return None

    longest = max(best.values())
    winners = [group for group, length in best.items() if length == longest]
    if len(winners) == 1:
        return winners[0]
    return None


def classify_account(account_code: str, description: str = "") -> Optional[AccountGroup]:
    """
    Classify an income statement line.

    Args:
        account_code: Aggregation code (e.g. "3.01.01.01.01")
        description: Account description

    Returns:
        AccountGroup, or None when unknown or ambiguous
    """
    return classify_by_code(account_code) or classify_by_description(description)
