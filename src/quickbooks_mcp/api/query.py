"""Builders for QuickBooks query-language statements.

QuickBooks accepts a SQL-like dialect on its ``query`` endpoint:

    SELECT * FROM Customer WHERE Active = true AND DisplayName LIKE 'Ac%'
    ORDER BY Metadata.LastUpdatedTime DESC STARTPOSITION 1 MAXRESULTS 50
"""

from __future__ import annotations

from typing import Iterable, Literal

SortOrder = Literal["ASC", "DESC"]

DEFAULT_ORDER_BY = "Metadata.LastUpdatedTime"

CUSTOMER_PREFIX_FIELDS = {
    "display_name": "DisplayName",
    "company_name": "CompanyName",
    "given_name": "GivenName",
    "family_name": "FamilyName",
    "email": "PrimaryEmailAddr.Address",
    "phone": "PrimaryPhone.FreeFormNumber",
}

ACCOUNT_PREFIX_FIELDS = {
    "name": "Name",
}

ACCOUNT_EQUALITY_FIELDS = {
    "account_type": "AccountType",
    "account_sub_type": "AccountSubType",
    "classification": "Classification",
}


def escape_literal(value: str) -> str:
    """Escape a value for use inside a single-quoted literal."""
    return value.replace("'", "\\'")


def _literal(value: str | bool | int | float) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float)):
        return str(value)
    return f"'{escape_literal(value)}'"


def equals(field: str, value: str | bool | int | float) -> str:
    return f"{field} = {_literal(value)}"


def starts_with(field: str, value: str) -> str:
    return f"{field} LIKE '{escape_literal(value)}%'"


def build_select(
    entity: str,
    conditions: Iterable[str] = (),
    order_by: str | None = DEFAULT_ORDER_BY,
    sort: SortOrder = "DESC",
    start_position: int | None = 1,
    max_results: int | None = 50,
) -> str:
    """Assemble a ``SELECT * FROM <entity>`` statement.

    Conditions are joined with AND. Ordering and paging clauses are emitted
    only when their values are given.
    """
    statement = f"SELECT * FROM {entity}"

    clauses = list(conditions)
    if clauses:
        statement += " WHERE " + " AND ".join(clauses)
    if order_by:
        statement += f" ORDER BY {order_by} {sort}"
    if start_position is not None:
        statement += f" STARTPOSITION {start_position}"
    if max_results is not None:
        statement += f" MAXRESULTS {max_results}"

    return statement


def customer_search_conditions(
    active_only: bool | None = True, **prefixes: str | None
) -> list[str]:
    """Conditions for a customer search.

    Args:
        active_only: Filter on the Active flag; None leaves it unfiltered
        **prefixes: Keys of ``CUSTOMER_PREFIX_FIELDS`` mapped to prefixes
    """
    conditions = []
    if active_only is not None:
        conditions.append(equals("Active", active_only))
    for key, field in CUSTOMER_PREFIX_FIELDS.items():
        if prefixes.get(key):
            conditions.append(starts_with(field, prefixes[key]))
    return conditions


def account_search_conditions(
    active_only: bool | None = True, **filters: str | None
) -> list[str]:
    """Conditions for an account search (prefix on name, exact on type fields)."""
    conditions = []
    if active_only is not None:
        conditions.append(equals("Active", active_only))
    for key, field in ACCOUNT_PREFIX_FIELDS.items():
        if filters.get(key):
            conditions.append(starts_with(field, filters[key]))
    for key, field in ACCOUNT_EQUALITY_FIELDS.items():
        if filters.get(key):
            conditions.append(equals(field, filters[key]))
    return conditions
