# extract_builder/extracts/compiler.py
"""Render selected fields and a criteria chain into the extract's SELECT statement.

Literals are escaped and inlined so the stored statement stays readable:
string values have embedded quotes doubled, dates must be ISO dates and
everything else must be a plain number.
"""

import re
from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional, Sequence

import sqlparse

from extract_builder.core.exceptions import CompileFailure, ValidationFailure

FROM_CLAUSE = "FROM MEMBERSHIP M INNER JOIN MEMBER_COVERAGE MC ON M.MEMBER_ID = MC.MEMBER_ID"

STRING_FIELD_TYPES = {"VARCHAR", "VARCHAR2", "NVARCHAR2", "CHAR", "NCHAR"}
DATE_FIELD_TYPE = "DATE"

_ISO_DATE = re.compile(r"^\d{4}-\d{2}-\d{2}$")
_NUMBER = re.compile(r"^-?\d+(\.\d+)?$")


@dataclass(frozen=True)
class SelectedColumn:
    column: str
    alias: str


@dataclass(frozen=True)
class Condition:
    column: str
    operator: str
    value: str
    field_type: str
    connector: Optional[str] = None


# ===== LITERALS =====


def quote_string(value: str) -> str:
    return "'" + value.replace("'", "''") + "'"


def quote_alias(alias: str) -> str:
    return '"' + alias.replace('"', '""') + '"'


def render_literal(value: str, field_type: str) -> str:
    """Render ``value`` as a SQL literal appropriate for ``field_type``."""
    field_type = (field_type or "").upper()

    if field_type == DATE_FIELD_TYPE:
        value = value.strip()
        if not _ISO_DATE.match(value):
            raise ValidationFailure(f"Date value {value!r} must be in YYYY-MM-DD format")
        try:
            datetime.strptime(value, "%Y-%m-%d")
        except ValueError as e:
            raise ValidationFailure(f"Date value {value!r} is not a valid date") from e
        return f"TO_DATE('{value}', 'YYYY-MM-DD')"

    if field_type in STRING_FIELD_TYPES:
        return quote_string(value)

    value = value.strip()
    if not _NUMBER.match(value):
        raise ValidationFailure(f"Value {value!r} is not a valid {field_type or 'numeric'} literal")
    return value


def render_condition(condition: Condition) -> str:
    literal = render_literal(condition.value, condition.field_type)
    return f"{condition.column} {condition.operator} {literal}"


# ===== CLAUSES =====


def build_select_list(columns: Sequence[SelectedColumn]) -> str:
    return ", ".join(f"{col.column} {quote_alias(col.alias)}" for col in columns)


def build_where_clause(conditions: Sequence[Condition], source_sys_id: str, row_ceiling: int) -> str:
    """WHERE clause with the tenant filter and row ceiling always applied.

    More than one condition is parenthesized so an OR cannot bypass the tenant filter.
    """
    tenant_filter = f"M.SOURCE_SYS_ID={quote_string(source_sys_id)} and rownum <={int(row_ceiling)}"
    if not conditions:
        return f"WHERE {tenant_filter}"

    chain: List[str] = []
    last = len(conditions) - 1
    for position, condition in enumerate(conditions):
        chain.append(render_condition(condition))
        if position < last:
            connector = (condition.connector or "").upper()
            if connector not in ("AND", "OR"):
                raise ValidationFailure(f"Criteria row {position + 1} needs an AND/OR connector")
            chain.append(connector)

    expression = " ".join(chain)
    if len(conditions) > 1:
        expression = f"({expression})"
    return f"WHERE {expression} AND {tenant_filter}"


def compile_statement(
    columns: Sequence[SelectedColumn],
    conditions: Sequence[Condition],
    source_sys_id: str = "2001",
    row_ceiling: int = 50,
) -> str:
    """Build the full extract statement.

    Output is deterministic for the same ordered inputs.
    """
    parts = ["SELECT", build_select_list(columns), FROM_CLAUSE, build_where_clause(conditions, source_sys_id, row_ceiling)]
    statement = " ".join(part for part in parts if part)
    ensure_single_statement(statement)
    return statement


def ensure_single_statement(statement: str) -> None:
    """Reject text that parses as anything other than exactly one statement."""
    statements = [s for s in sqlparse.split(statement) if s.strip()]
    if len(statements) != 1:
        raise CompileFailure(f"Generated SQL must be a single statement, found {len(statements)}")
