"""SOQL fragment rendering.

Builds the comparisons and SELECT statements sent to the Salesforce query
endpoint:

    SELECT Id, Name FROM Pet__c WHERE Name = 'Rex' ORDER BY CreatedDate DESC
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any

ORDER_BY = "ORDER BY CreatedDate DESC"


def escape_string_literal(value: str) -> str:
    """Escape backslashes and single quotes for use inside a SOQL string literal."""
    return value.replace("\\", "\\\\").replace("'", "\\'")


def format_literal(value: Any) -> str:
    """Render a non-string scalar as a SOQL literal (no quoting)."""
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def build_comparison(field_name: str, value: Any) -> str:
    """Render a single predicate fragment for *field_name*.

    Examples:
        build_comparison("Id", "a01")        -> "Id = 'a01'"
        build_comparison("Age__c", 25)       -> "Age__c = 25"
        build_comparison("Age__c", [24, 25]) -> "(Age__c = 24 OR Age__c = 25)"

    List values are ORed together and wrapped in parentheses so they can be
    ANDed with other comparisons.
    """
    if isinstance(value, str):
        return f"{field_name} = '{escape_string_literal(value)}'"
    if isinstance(value, (list, tuple)):
        alternatives = " OR ".join(build_comparison(field_name, item) for item in value)
        return f"({alternatives})"
    return f"{field_name} = {format_literal(value)}"


def build_predicate(comparisons: Sequence[str]) -> str:
    """Join *comparisons* into a WHERE clause, or return '' when there are none."""
    if not comparisons:
        return ""
    return "WHERE " + " AND ".join(comparisons)


def build_select_statement(
    field_names: Sequence[str], object_name: str, predicate: str = ""
) -> str:
    """Assemble a full SELECT statement.

    The predicate slot is always surrounded by single spaces, so an empty
    predicate leaves a double space before ORDER BY.
    """
    return f"SELECT {', '.join(field_names)} FROM {object_name} {predicate} {ORDER_BY}"
