"""
Tokenizer for the `{{ ... }}` expression language.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional

from ..errors import ExpressionError

KEYWORDS = {"true", "false", "null", "undefined"}

# Longest operators first so `===` is not read as `==` followed by `=`.
OPERATORS = (
    "===",
    "!==",
    "==",
    "!=",
    ">=",
    "<=",
    "&&",
    "||",
    ">",
    "<",
    "+",
    "-",
    "*",
    "/",
    "%",
    "!",
)

PUNCTUATION = {".", "[", "]", "(", ")", ",", "?", ":"}

_ESCAPES = {"n": "\n", "t": "\t", "r": "\r", "b": "\b", "f": "\f", "v": "\v", "0": "\0"}


@dataclass
class Token:
    type: str
    value: Optional[str]
    column: int

    def __repr__(self) -> str:  # pragma: no cover - debug helper
        return f"Token({self.type}, {self.value!r}, col {self.column})"


class Lexer:
    def __init__(self, source: str) -> None:
        self.source = source

    def tokenize(self) -> List[Token]:
        tokens: List[Token] = []
        text = self.source
        i = 0
        while i < len(text):
            char = text[i]
            if char.isspace():
                i += 1
                continue
            if char in {"'", '"'}:
                start = i
                value, i = self._read_string(text, i)
                tokens.append(Token("STRING", value, start + 1))
                continue
            if char.isdigit() or (char == "." and i + 1 < len(text) and text[i + 1].isdigit()):
                start = i
                while i < len(text) and (text[i].isdigit() or text[i] == "."):
                    i += 1
                raw = text[start:i]
                if raw.count(".") > 1:
                    raise ExpressionError(f"Malformed number '{raw}'", column=start + 1)
                tokens.append(Token("NUMBER", raw, start + 1))
                continue
            if char.isalpha() or char in {"_", "$"}:
                start = i
                while i < len(text) and (text[i].isalnum() or text[i] in {"_", "$"}):
                    i += 1
                ident = text[start:i]
                token_type = "KEYWORD" if ident in KEYWORDS else "IDENT"
                tokens.append(Token(token_type, ident, start + 1))
                continue
            matched = next((op for op in OPERATORS if text.startswith(op, i)), None)
            if matched:
                tokens.append(Token("OP", matched, i + 1))
                i += len(matched)
                continue
            if char in PUNCTUATION:
                tokens.append(Token("PUNCT", char, i + 1))
                i += 1
                continue
            raise ExpressionError(f"Unexpected character '{char}'", column=i + 1)
        tokens.append(Token("EOF", None, len(text) + 1))
        return tokens

    def _read_string(self, text: str, start: int) -> tuple[str, int]:
        quote = text[start]
        i = start + 1
        chars: list[str] = []
        while i < len(text):
            char = text[i]
            if char == "\\" and i + 1 < len(text):
                nxt = text[i + 1]
                chars.append(_ESCAPES.get(nxt, nxt))
                i += 2
                continue
            if char == quote:
                return "".join(chars), i + 1
            chars.append(char)
            i += 1
        raise ExpressionError("Unterminated string literal", column=start + 1)
