"""
AST nodes for parsed expressions.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, List


class Expr:
    """Base class for expression nodes."""


@dataclass
class Literal(Expr):
    value: Any


@dataclass
class Identifier(Expr):
    name: str


@dataclass
class Member(Expr):
    obj: Expr
    prop: Expr
    computed: bool = False


@dataclass
class Call(Expr):
    callee: Expr
    args: List[Expr] = field(default_factory=list)


@dataclass
class UnaryOp(Expr):
    op: str
    operand: Expr


@dataclass
class BinaryOp(Expr):
    left: Expr
    op: str
    right: Expr


@dataclass
class LogicalOp(Expr):
    left: Expr
    op: str
    right: Expr


@dataclass
class Conditional(Expr):
    test: Expr
    consequent: Expr
    alternate: Expr
