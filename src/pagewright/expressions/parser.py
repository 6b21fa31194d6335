"""
Recursive-descent parser for binding expressions.

Precedence, loosest first: ternary, `||`, `&&`, equality, relational,
additive, multiplicative, unary, postfix (member access and calls).
"""

from __future__ import annotations

from functools import lru_cache
from typing import List, Optional

from ..errors import ExpressionError
from . import ast_nodes
from .lexer import Lexer, Token

__all__ = ["Parser", "parse_expression"]


class Parser:
    def __init__(self, tokens: List[Token]) -> None:
        self.tokens = tokens
        self.position = 0

    @classmethod
    def from_source(cls, source: str) -> "Parser":
        return cls(Lexer(source).tokenize())

    def peek(self) -> Token:
        return self.tokens[self.position]

    def advance(self) -> Token:
        token = self.tokens[self.position]
        if token.type != "EOF":
            self.position += 1
        return token

    def check(self, token_type: str, value: Optional[str] = None) -> bool:
        token = self.peek()
        if token.type != token_type:
            return False
        return value is None or token.value == value

    def match(self, token_type: str, value: Optional[str] = None) -> bool:
        if self.check(token_type, value):
            self.advance()
            return True
        return False

    def consume(self, token_type: str, value: Optional[str] = None) -> Token:
        if self.check(token_type, value):
            return self.advance()
        token = self.peek()
        expected = value or token_type
        found = token.value if token.value is not None else token.type
        raise ExpressionError(f"Expected '{expected}' but found '{found}'", column=token.column)

    def parse(self) -> ast_nodes.Expr:
        if self.check("EOF"):
            raise ExpressionError("Empty expression", column=1)
        expr = self.parse_ternary()
        if not self.check("EOF"):
            token = self.peek()
            raise ExpressionError(f"Unexpected token '{token.value}'", column=token.column)
        return expr

    def parse_ternary(self) -> ast_nodes.Expr:
        test = self.parse_or()
        if self.match("PUNCT", "?"):
            consequent = self.parse_ternary()
            self.consume("PUNCT", ":")
            alternate = self.parse_ternary()
            return ast_nodes.Conditional(test=test, consequent=consequent, alternate=alternate)
        return test

    def parse_or(self) -> ast_nodes.Expr:
        expr = self.parse_and()
        while self.match("OP", "||"):
            right = self.parse_and()
            expr = ast_nodes.LogicalOp(left=expr, op="||", right=right)
        return expr

    def parse_and(self) -> ast_nodes.Expr:
        expr = self.parse_equality()
        while self.match("OP", "&&"):
            right = self.parse_equality()
            expr = ast_nodes.LogicalOp(left=expr, op="&&", right=right)
        return expr

    def parse_equality(self) -> ast_nodes.Expr:
        expr = self.parse_relational()
        while self.peek().type == "OP" and self.peek().value in {"==", "!=", "===", "!=="}:
            op = self.advance().value or ""
            right = self.parse_relational()
            expr = ast_nodes.BinaryOp(left=expr, op=op, right=right)
        return expr

    def parse_relational(self) -> ast_nodes.Expr:
        expr = self.parse_additive()
        while self.peek().type == "OP" and self.peek().value in {"<", ">", "<=", ">="}:
            op = self.advance().value or ""
            right = self.parse_additive()
            expr = ast_nodes.BinaryOp(left=expr, op=op, right=right)
        return expr

    def parse_additive(self) -> ast_nodes.Expr:
        expr = self.parse_multiplicative()
        while self.peek().type == "OP" and self.peek().value in {"+", "-"}:
            op = self.advance().value or ""
            right = self.parse_multiplicative()
            expr = ast_nodes.BinaryOp(left=expr, op=op, right=right)
        return expr

    def parse_multiplicative(self) -> ast_nodes.Expr:
        expr = self.parse_unary()
        while self.peek().type == "OP" and self.peek().value in {"*", "/", "%"}:
            op = self.advance().value or ""
            right = self.parse_unary()
            expr = ast_nodes.BinaryOp(left=expr, op=op, right=right)
        return expr

    def parse_unary(self) -> ast_nodes.Expr:
        if self.peek().type == "OP" and self.peek().value in {"!", "-", "+"}:
            op = self.advance().value or ""
            operand = self.parse_unary()
            return ast_nodes.UnaryOp(op=op, operand=operand)
        return self.parse_postfix()

    def parse_postfix(self) -> ast_nodes.Expr:
        expr = self.parse_primary()
        while True:
            if self.match("PUNCT", "."):
                token = self.peek()
                # Keywords are valid property names: `item.null` or `flags.true`.
                if token.type not in {"IDENT", "KEYWORD"}:
                    raise ExpressionError("Expected property name after '.'", column=token.column)
                self.advance()
                expr = ast_nodes.Member(obj=expr, prop=ast_nodes.Literal(token.value), computed=False)
                continue
            if self.match("PUNCT", "["):
                prop = self.parse_ternary()
                self.consume("PUNCT", "]")
                expr = ast_nodes.Member(obj=expr, prop=prop, computed=True)
                continue
            if self.match("PUNCT", "("):
                args: list[ast_nodes.Expr] = []
                if not self.check("PUNCT", ")"):
                    args.append(self.parse_ternary())
                    while self.match("PUNCT", ","):
                        args.append(self.parse_ternary())
                self.consume("PUNCT", ")")
                expr = ast_nodes.Call(callee=expr, args=args)
                continue
            return expr

    def parse_primary(self) -> ast_nodes.Expr:
        token = self.peek()
        if token.type == "NUMBER":
            self.advance()
            raw = token.value or "0"
            return ast_nodes.Literal(float(raw) if "." in raw else int(raw))
        if token.type == "STRING":
            self.advance()
            return ast_nodes.Literal(token.value)
        if token.type == "KEYWORD":
            self.advance()
            if token.value == "true":
                return ast_nodes.Literal(True)
            if token.value == "false":
                return ast_nodes.Literal(False)
            if token.value == "null":
                return ast_nodes.Literal(None)
            return ast_nodes.Identifier("undefined")
        if token.type == "IDENT":
            self.advance()
            return ast_nodes.Identifier(token.value or "")
        if self.match("PUNCT", "("):
            expr = self.parse_ternary()
            self.consume("PUNCT", ")")
            return expr
        found = token.value if token.value is not None else "end of expression"
        raise ExpressionError(f"Unexpected '{found}'", column=token.column)


@lru_cache(maxsize=1024)
def parse_expression(source: str) -> ast_nodes.Expr:
    """Parse one expression (the text between `{{` and `}}`), memoized by source."""

    return Parser.from_source(source).parse()
