"""
Expression filter dialect ($filter query parameter).

    status eq 'shipped' and total gt 100

Clauses are joined by the word ``and``; each clause is
``<field> <op> <literal>`` with op one of eq, ne, gt, lt, ge, le, like.
One layer of single quotes around a literal is stripped. There is no OR
and no range operator in this dialect.
"""

import re

from tablebridge.core.schema import TableSchema
from tablebridge.errors import ValidationError
from tablebridge.filters.predicates import Predicate
from tablebridge.filters.structured import compile_operation

# Expression operator -> structured operation
EXPRESSION_OPERATORS: dict[str, str] = {
    "eq": "equals",
    "ne": "notEqual",
    "gt": "greaterThan",
    "lt": "lessThan",
    "ge": "greaterThanOrEqual",
    "le": "lessThanOrEqual",
    "like": "contains",
}

CLAUSE_PATTERN = re.compile(r"^\s*(?P<field>\S+)\s+(?P<op>\S+)\s+(?P<literal>.+?)\s*$", re.DOTALL)
SEPARATOR = re.compile(r"\s+and(?:\s+|$)")


def split_clauses(expression: str) -> list[str]:
    """Split on the ``and`` separator, leaving quoted literals intact."""
    clauses: list[str] = []
    start = 0
    pos = 0
    in_quotes = False
    while pos < len(expression):
        ch = expression[pos]
        if ch == "'":
            in_quotes = not in_quotes
            pos += 1
            continue
        if not in_quotes:
            match = SEPARATOR.match(expression, pos)
            if match:
                clauses.append(expression[start:pos])
                start = pos = match.end()
                continue
        pos += 1
    if in_quotes:
        raise ValidationError(f"Unterminated quoted literal in filter expression: '{expression}'")
    clauses.append(expression[start:])
    return [clause.strip() for clause in clauses]


def strip_quotes(literal: str) -> str:
    if len(literal) >= 2 and literal[0] == "'" and literal[-1] == "'":
        return literal[1:-1]
    return literal


def parse_clause(clause: str) -> tuple[str, str, str]:
    """Split one clause into (field, op, literal)."""
    match = CLAUSE_PATTERN.match(clause)
    if not match:
        raise ValidationError(f"Malformed filter clause: '{clause}'")

    op = match["op"]
    if op not in EXPRESSION_OPERATORS:
        raise ValidationError(
            f"Unsupported operator '{op}' in clause '{clause}'. "
            f"Supported: {', '.join(EXPRESSION_OPERATORS)}"
        )
    return match["field"], op, strip_quotes(match["literal"])


def parse_expression(expression: str | None, schema: TableSchema) -> list[Predicate]:
    """
    Compile a $filter expression against a table schema.

    All clauses are parsed and their fields validated before any predicate
    is built.

    Raises:
        ValidationError: malformed clause, unknown operator or unknown field
    """
    if expression is None or not expression.strip():
        return []

    parsed: list[tuple[str, str, str]] = []
    for clause in split_clauses(expression.strip()):
        if not clause:
            raise ValidationError(f"Empty clause in filter expression: '{expression}'")
        field, op, literal = parse_clause(clause)
        if not schema.has_column(field):
            raise ValidationError(f"Unknown filter field '{field}' for table '{schema.table}'")
        parsed.append((field, op, literal))

    return [
        compile_operation(schema, field, EXPRESSION_OPERATORS[op], literal)
        for field, op, literal in parsed
    ]
