# ============================================================================
# SQL STATEMENT SPLITTER
# ============================================================================
# STATUS: Core - Multi-statement SQL handling
# PURPOSE: Split SQL scripts into executable statements outside literals
# CREATED: 19 OCT 2026
# EXPORTS: TokenType, Token, SQLLexer, split_sql_statements, strip_comments,
#          executable_statements
# ============================================================================
"""
SQL Statement Splitter

A small lexer that understands just enough SQL to find statement
boundaries: semicolons inside string literals, quoted identifiers,
comments or dollar-quoted bodies never end a statement.

Comments are kept in the statement text they belong to so that split output
can be printed back verbatim; ``executable_statements`` drops pieces that
contain nothing but comments.

Usage:
    from core.schema.sql_splitter import split_sql_statements

    split_sql_statements("INSERT INTO t (s) VALUES ('a;b');")
    # ["INSERT INTO t (s) VALUES ('a;b')"]
"""

import re
from dataclasses import dataclass
from enum import Enum
from typing import Iterator, List


class TokenType(str, Enum):
    """Token categories the splitter distinguishes."""
    STRING = "string"
    DOLLAR_STRING = "dollar_string"
    COMMENT = "comment"
    SEMICOLON = "semicolon"
    WHITESPACE = "whitespace"
    IDENTIFIER = "identifier"
    OPERATOR = "operator"


@dataclass(frozen=True)
class Token:
    type: TokenType
    value: str
    start: int
    end: int


_DOLLAR_TAG_RE = re.compile(r"\$(?:[A-Za-z_][A-Za-z0-9_]*)?\$")


class SQLLexer:
    """
    Tokenizer over one SQL string.

    Unterminated strings and comments run to the end of input rather than
    raising; the server reports the real syntax error when it executes the
    statement.
    """

    def __init__(self, text: str):
        self.text = text
        self.pos = 0

    def _peek(self, offset: int = 0) -> str:
        index = self.pos + offset
        return self.text[index] if index < len(self.text) else ""

    def tokens(self) -> Iterator[Token]:
        while self.pos < len(self.text):
            start = self.pos
            ch = self._peek()

            if ch.isspace():
                token_type = self._scan_whitespace()
            elif ch == ";":
                self.pos += 1
                token_type = TokenType.SEMICOLON
            elif ch in ("'", '"', "`"):
                token_type = self._scan_string(ch)
            elif ch == "-" and self._peek(1) == "-":
                token_type = self._scan_line_comment()
            elif ch == "/" and self._peek(1) == "*":
                token_type = self._scan_block_comment()
            elif ch == "$" and _DOLLAR_TAG_RE.match(self.text, self.pos):
                token_type = self._scan_dollar_string()
            elif ch.isalpha() or ch == "_":
                token_type = self._scan_identifier()
            else:
                self.pos += 1
                token_type = TokenType.OPERATOR

            yield Token(token_type, self.text[start:self.pos], start, self.pos)

    def _scan_whitespace(self) -> TokenType:
        while self.pos < len(self.text) and self.text[self.pos].isspace():
            self.pos += 1
        return TokenType.WHITESPACE

    def _scan_string(self, quote: str) -> TokenType:
        self.pos += 1
        while self.pos < len(self.text):
            ch = self.text[self.pos]
            if ch == "\\":
                self.pos += 2
                continue
            self.pos += 1
            if ch == quote:
                # Doubled quote is an escaped quote inside the literal
                if self._peek() == quote:
                    self.pos += 1
                    continue
                break
        self.pos = min(self.pos, len(self.text))
        return TokenType.STRING

    def _scan_line_comment(self) -> TokenType:
        while self.pos < len(self.text) and self.text[self.pos] not in "\r\n":
            self.pos += 1
        return TokenType.COMMENT

    def _scan_block_comment(self) -> TokenType:
        end = self.text.find("*/", self.pos + 2)
        self.pos = len(self.text) if end == -1 else end + 2
        return TokenType.COMMENT

    def _scan_dollar_string(self) -> TokenType:
        tag = _DOLLAR_TAG_RE.match(self.text, self.pos).group(0)
        end = self.text.find(tag, self.pos + len(tag))
        self.pos = len(self.text) if end == -1 else end + len(tag)
        return TokenType.DOLLAR_STRING

    def _scan_identifier(self) -> TokenType:
        while self.pos < len(self.text):
            ch = self.text[self.pos]
            if not (ch.isalnum() or ch in "_$"):
                break
            self.pos += 1
        return TokenType.IDENTIFIER


def tokenize(text: str) -> List[Token]:
    return list(SQLLexer(text).tokens())


def split_sql_statements(text: str) -> List[str]:
    """
    Split a SQL script on top-level semicolons.

    Statements are trimmed, lose their terminating semicolon, and empty
    statements (``;;``) are dropped. Comments stay attached to the statement
    they appear in.
    """
    if not text or not text.strip():
        return []

    statements: List[str] = []
    current: List[str] = []
    for token in SQLLexer(text).tokens():
        if token.type == TokenType.SEMICOLON:
            statement = "".join(current).strip()
            if statement:
                statements.append(statement)
            current = []
        else:
            current.append(token.value)

    statement = "".join(current).strip()
    if statement:
        statements.append(statement)
    return statements


def strip_comments(text: str) -> str:
    """Remove line and block comments that are not inside literals."""
    if not text or not text.strip():
        return text
    return "".join(t.value for t in SQLLexer(text).tokens() if t.type != TokenType.COMMENT)


def executable_statements(text: str) -> List[str]:
    """Split statements, skipping those that are only comments."""
    return [s for s in split_sql_statements(text) if strip_comments(s).strip()]


__all__ = [
    "TokenType",
    "Token",
    "SQLLexer",
    "tokenize",
    "split_sql_statements",
    "strip_comments",
    "executable_statements",
]
