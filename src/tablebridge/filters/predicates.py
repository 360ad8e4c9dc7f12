"""
Predicate IR shared by both filter dialects.

A Predicate is one compiled filter term: a validated column, an SQL
operator, and the values to bind. The executor turns a predicate list into
a single SQLAlchemy WHERE clause; values only ever travel as bind
parameters and column identifiers are quoted by SQLAlchemy.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any

from sqlalchemy import ColumnElement, TableClause, and_, or_


class Combinator(str, Enum):
    AND = "AND"
    OR = "OR"


# SQL operator fragment -> number of bound parameters it takes
OPERATOR_ARITY: dict[str, int] = {
    "=": 1,
    "<>": 1,
    ">": 1,
    "<": 1,
    ">=": 1,
    "<=": 1,
    "LIKE": 1,
    "BETWEEN": 2,
    "IS NULL": 0,
    "IS NOT NULL": 0,
}


@dataclass(frozen=True)
class Predicate:
    """
    One filter term.

    Leaf predicates have a field, an operator from OPERATOR_ARITY and their
    bound parameters. A group predicate has no field of its own; it holds
    children that are combined according to its role: an OR-role group is
    "(a) OR (b)", an AND-role group is a parenthesised "a AND b" used inside
    an OR branch.
    """

    field: str | None
    operator: str
    params: tuple[Any, ...] = ()
    role: Combinator = Combinator.AND
    children: tuple["Predicate", ...] = ()

    def __post_init__(self) -> None:
        if self.children:
            if len(self.children) < 2:
                raise ValueError("Group predicate needs at least two children")
            return
        arity = OPERATOR_ARITY.get(self.operator)
        if arity is None:
            raise ValueError(f"Unsupported operator: {self.operator}")
        if len(self.params) != arity:
            raise ValueError(f"Operator {self.operator} takes {arity} parameter(s)")

    @classmethod
    def any_of(cls, *children: "Predicate") -> "Predicate":
        return cls(field=None, operator="OR", role=Combinator.OR, children=tuple(children))

    @classmethod
    def all_of(cls, *children: "Predicate") -> "Predicate":
        return cls(field=None, operator="AND", role=Combinator.AND, children=tuple(children))

    @property
    def fields(self) -> set[str]:
        """Every column this predicate touches."""
        if self.children:
            return set().union(*(child.fields for child in self.children))
        return {self.field}

    def to_clause(self, table: TableClause) -> ColumnElement[bool]:
        if self.children:
            combine = or_ if self.role is Combinator.OR else and_
            return combine(*(child.to_clause(table) for child in self.children)).self_group()

        column = table.c[self.field]
        match self.operator:
            case "=":
                return column == self.params[0]
            case "<>":
                return column != self.params[0]
            case ">":
                return column > self.params[0]
            case "<":
                return column < self.params[0]
            case ">=":
                return column >= self.params[0]
            case "<=":
                return column <= self.params[0]
            case "LIKE":
                return column.like(self.params[0])
            case "BETWEEN":
                return column.between(self.params[0], self.params[1])
            case "IS NULL":
                return column.is_(None)
            case "IS NOT NULL":
                return column.is_not(None)
        raise ValueError(f"Unsupported operator: {self.operator}")


def where_clause(table: TableClause, predicates: list[Predicate]) -> ColumnElement[bool] | None:
    """AND every predicate together; None when there is nothing to filter."""
    if not predicates:
        return None
    return and_(*(p.to_clause(table) for p in predicates))


def contains_pattern(value: Any) -> str:
    """LIKE pattern for a substring match."""
    return f"%{value}%"
