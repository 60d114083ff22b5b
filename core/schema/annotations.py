# ============================================================================
# ANNOTATION COMMENTS
# ============================================================================
# STATUS: Core - Lexing of #migrator: comments
# PURPOSE: Turn one annotation comment into a normalized attribute bag
# CREATED: 19 OCT 2026
# ============================================================================
"""
Annotation Comments

An annotation is a single comment line such as::

    #migrator:schema:field name="email" type="VARCHAR(255)" not_null unique

The text after the directive is a sequence of attributes in two forms:

- verbose: ``key="value"`` or ``key=value`` (no spaces in unquoted values)
- shorthand: a bare word such as ``primary`` or ``not_null`` meaning true

Both forms feed the same attribute map. When a key appears in both forms
the verbose value wins. Dotted keys of the form ``platform.<dialect>.<key>``
are split out into per-dialect override maps.
"""

import re
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from core.contracts import AnnotationKind
from core.errors import AnnotationSyntaxError

ANNOTATION_PREFIX = "migrator:"

_COMMENT_RE = re.compile(r"^#\s*migrator:(?P<rest>.*)$")
_WORD_RE = re.compile(r"[A-Za-z_][\w.\-]*")

# Longest directive first so "embedded" is not read as "embed"
_DIRECTIVES = sorted((kind.value for kind in AnnotationKind), key=len, reverse=True)

TRUE_VALUES = ("true", "1", "yes", "on", "")


@dataclass
class Annotation:
    """One parsed ``#migrator:`` comment."""
    kind: AnnotationKind
    attrs: Dict[str, str] = field(default_factory=dict)
    flags: List[str] = field(default_factory=list)
    overrides: Dict[str, Dict[str, str]] = field(default_factory=dict)
    line: int = 0
    raw: str = ""

    def get(self, key: str, default: Optional[str] = None) -> Optional[str]:
        value = self.attrs.get(key)
        if value is None or value == "":
            return default
        return value

    def flag(self, key: str) -> bool:
        """True when the key was given as a bare flag or with a truthy value."""
        if key not in self.attrs:
            return False
        return self.attrs[key].strip().lower() in TRUE_VALUES

    def get_list(self, key: str) -> List[str]:
        """Comma separated value as a list of trimmed, non-empty items."""
        raw = self.attrs.get(key) or ""
        return [item.strip() for item in raw.split(",") if item.strip()]


def is_annotation(comment: str) -> bool:
    return bool(_COMMENT_RE.match(comment.strip()))


def parse_annotation(comment: str, line: int = 0) -> Optional[Annotation]:
    """
    Parse one comment line.

    Returns:
        Annotation, or None when the comment is not a ``#migrator:`` comment

    Raises:
        AnnotationSyntaxError: For unknown directives or malformed attributes
    """
    text = comment.strip()
    match = _COMMENT_RE.match(text)
    if not match:
        return None

    rest = match.group("rest")
    kind = None
    for directive in _DIRECTIVES:
        if rest == directive or rest.startswith(directive + " ") or rest.startswith(directive + "\t"):
            kind = AnnotationKind(directive)
            rest = rest[len(directive):]
            break

    if kind is None:
        directive = rest.split()[0] if rest.split() else ""
        raise AnnotationSyntaxError(f"unknown annotation directive '{directive}'", text=text)

    attrs, flags = parse_attributes(rest)
    plain, overrides = split_overrides(attrs)
    return Annotation(
        kind=kind,
        attrs=plain,
        flags=flags,
        overrides=overrides,
        line=line,
        raw=text,
    )


def parse_attributes(text: str):
    """
    Parse the attribute part of an annotation.

    Returns:
        Tuple of (attrs, flags). ``attrs`` maps every key to its value; bare
        flags are stored as ``"true"`` unless a verbose value exists.

    Raises:
        AnnotationSyntaxError: Unterminated quote, missing value, stray text
    """
    verbose: Dict[str, str] = {}
    flags: List[str] = []
    pos = 0
    length = len(text)

    while pos < length:
        char = text[pos]
        if char.isspace():
            pos += 1
            continue

        word = _WORD_RE.match(text, pos)
        if not word:
            raise AnnotationSyntaxError(
                f"unexpected character {char!r} at position {pos}", text=text, position=pos
            )
        key = word.group(0)
        pos = word.end()

        if pos < length and text[pos] == "=":
            pos += 1
            value, pos = _read_value(text, pos, key)
            verbose[key] = value
        else:
            if pos < length and not text[pos].isspace():
                raise AnnotationSyntaxError(
                    f"unexpected character {text[pos]!r} after '{key}'", text=text, position=pos
                )
            if key not in flags:
                flags.append(key)

    attrs = dict(verbose)
    for flag_name in flags:
        # verbose form wins
        attrs.setdefault(flag_name, "true")
    return attrs, flags


def _read_value(text: str, pos: int, key: str):
    length = len(text)
    if pos >= length or text[pos].isspace():
        raise AnnotationSyntaxError(f"missing value for '{key}'", text=text, position=pos)

    if text[pos] == '"':
        pos += 1
        chars = []
        while pos < length:
            char = text[pos]
            if char == "\\" and pos + 1 < length and text[pos + 1] in ('"', "\\"):
                chars.append(text[pos + 1])
                pos += 2
                continue
            if char == '"':
                end = pos + 1
                if end < length and not text[end].isspace():
                    raise AnnotationSyntaxError(
                        f"unexpected text after quoted value of '{key}'", text=text, position=end
                    )
                return "".join(chars), end
            chars.append(char)
            pos += 1
        raise AnnotationSyntaxError(f"unterminated quote in value of '{key}'", text=text, position=pos)

    start = pos
    while pos < length and not text[pos].isspace():
        if text[pos] == '"':
            raise AnnotationSyntaxError(
                f"unexpected quote in value of '{key}'", text=text, position=pos
            )
        pos += 1
    return text[start:pos], pos


def split_overrides(attrs: Dict[str, str]):
    """
    Split ``platform.<dialect>.<key>`` entries out of an attribute map.

    Returns:
        Tuple of (plain attrs, {dialect: {key: value}})
    """
    plain: Dict[str, str] = {}
    overrides: Dict[str, Dict[str, str]] = {}
    for key, value in attrs.items():
        parts = key.split(".")
        if len(parts) >= 3 and parts[0] == "platform":
            dialect = parts[1].lower()
            overrides.setdefault(dialect, {})[".".join(parts[2:])] = value
        else:
            plain[key] = value
    return plain, overrides


__all__ = [
    "ANNOTATION_PREFIX",
    "Annotation",
    "is_annotation",
    "parse_annotation",
    "parse_attributes",
    "split_overrides",
]
