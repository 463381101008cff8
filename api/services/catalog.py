from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Tuple


@dataclass(frozen=True)
class FieldDefinition:
    id: str
    prompt: str
    key: str


# ============================================================
# Question catalogs (order defines the question sequence)
# ============================================================

FULL_CATALOG: Tuple[FieldDefinition, ...] = (
    FieldDefinition("name", "What is your name?", "name"),
    FieldDefinition("age", "What is your age?", "age"),
    FieldDefinition("income", "What is your annual income?", "income"),
    FieldDefinition("cash", "How much cash do you have?", "cash"),
    FieldDefinition("brokerage", "How much do you hold in brokerage or investment accounts?", "brokerage"),
    FieldDefinition("retirement", "How much do you have in your retirement account?", "retirement"),
    FieldDefinition("pension", "What is the value of any pension you are entitled to?", "pension"),
    FieldDefinition("annuities", "How much do you hold in annuities?", "annuities"),
    FieldDefinition("properties", "What is the total value of any properties you own?", "properties"),
    FieldDefinition("mortgage", "How much do you still owe on your mortgage?", "mortgage"),
    FieldDefinition("autoLoan", "How much do you owe on auto loans?", "autoLoan"),
    FieldDefinition("studentLoans", "How much do you owe in student loans?", "studentLoans"),
    FieldDefinition("otherDebts", "Do you have any other debts? If so, how much in total?", "otherDebts"),
    FieldDefinition("otherAssets", "Do you have any other assets? If so, what are they worth?", "otherAssets"),
)

MINIMAL_CATALOG: Tuple[FieldDefinition, ...] = (
    FieldDefinition("name", "What is your name?", "name"),
    FieldDefinition("age", "What is your age?", "age"),
    FieldDefinition("income", "What is your annual income?", "income"),
    FieldDefinition("cash", "How much cash do you have?", "cash"),
    FieldDefinition("retirement", "How much do you have in your retirement account?", "retirement"),
)

CATALOGS: Dict[str, Tuple[FieldDefinition, ...]] = {
    "full": FULL_CATALOG,
    "minimal": MINIMAL_CATALOG,
}

# Net worth = sum(ASSET_KEYS) - sum(LIABILITY_KEYS); absent keys count as zero.
ASSET_KEYS: Tuple[str, ...] = (
    "cash",
    "brokerage",
    "retirement",
    "pension",
    "annuities",
    "properties",
    "otherAssets",
)
LIABILITY_KEYS: Tuple[str, ...] = (
    "mortgage",
    "autoLoan",
    "studentLoans",
    "otherDebts",
)


def get_catalog(name: str) -> Tuple[FieldDefinition, ...]:
    """Look up a catalog by name ("full" or "minimal")."""
    catalog = CATALOGS.get((name or "").strip().lower())
    if catalog is None:
        raise ValueError(f"Unknown questionnaire catalog: {name!r}")
    return catalog


def catalog_keys(catalog: Tuple[FieldDefinition, ...]) -> List[str]:
    return [f.key for f in catalog]
