# ============================================================================
# ANNOTATION SCANNER
# ============================================================================
# STATUS: Core - Source tree scanning
# PURPOSE: Locate annotated classes and attributes in Python source files
# CREATED: 19 OCT 2026
# ============================================================================
"""
Annotation Scanner

Finds ``#migrator:`` comments and attaches each contiguous comment block to
the declaration directly below it:

    #migrator:schema:table name="products"
    class Product:
        #migrator:schema:field name="id" type="SERIAL" primary
        id: int

Comments are located with ``tokenize`` and declarations with ``ast``; a
class receives table, embed and index annotations, a class-body attribute
receives field, embedded and index annotations.

Problems in one declaration are recorded as ParseIssue entries and the scan
continues. Only an unreadable root directory is fatal.
"""

import ast
import io
import os
import tokenize
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from core.config import ParserDefaults, get_defaults
from core.errors import AnnotationSyntaxError, ParseIssue, SchemaParseError
from core.logging import ComponentType, get_logger, log_context
from core.schema.annotations import Annotation, is_annotation, parse_annotation

logger = get_logger("schema.parser", ComponentType.PARSER)


# ============================================================================
# DECLARATIONS
# ============================================================================

@dataclass
class MemberDecl:
    """An annotated class-body attribute."""
    name: str
    line: int
    type_name: Optional[str] = None
    annotations: List[Annotation] = field(default_factory=list)


@dataclass
class ClassDecl:
    """An annotated class and its annotated members, in source order."""
    name: str
    file: str
    line: int
    annotations: List[Annotation] = field(default_factory=list)
    members: List[MemberDecl] = field(default_factory=list)

    @property
    def source(self) -> str:
        return f"{self.file}:{self.line}"


@dataclass
class ParsedFile:
    """Everything found in one source file."""
    path: str
    classes: List[ClassDecl] = field(default_factory=list)
    issues: List[ParseIssue] = field(default_factory=list)


# ============================================================================
# FILE PARSING
# ============================================================================

def _collect_comments(source: str) -> Dict[int, str]:
    """Map line number -> comment text for lines holding only a comment."""
    comments: Dict[int, str] = {}
    lines = source.splitlines()
    tokens = tokenize.generate_tokens(io.StringIO(source).readline)
    for token in tokens:
        if token.type != tokenize.COMMENT:
            continue
        row = token.start[0]
        if lines[row - 1].strip().startswith("#"):
            comments[row] = token.string
    return comments


def _comment_block(comments: Dict[int, str], first_line: int) -> List[Tuple[int, str]]:
    """Contiguous comment lines ending right above ``first_line``."""
    block = []
    row = first_line - 1
    while row in comments:
        block.append((row, comments[row]))
        row -= 1
    block.reverse()
    return block


def _annotation_type_name(node: ast.AST) -> Optional[str]:
    """
    Best-effort class name from an attribute annotation.

    Handles ``Address``, ``"Address"``, ``models.Address`` and
    ``Optional[Address]``.
    """
    if node is None:
        return None
    if isinstance(node, ast.Name):
        return node.id
    if isinstance(node, ast.Attribute):
        return node.attr
    if isinstance(node, ast.Constant) and isinstance(node.value, str):
        return node.value.strip().split(".")[-1] or None
    if isinstance(node, ast.Subscript):
        return _annotation_type_name(node.slice)
    if isinstance(node, ast.BinOp):
        # Address | None
        return _annotation_type_name(node.left)
    return None


def _member_targets(node: ast.stmt) -> List[Tuple[str, Optional[str]]]:
    if isinstance(node, ast.AnnAssign) and isinstance(node.target, ast.Name):
        return [(node.target.id, _annotation_type_name(node.annotation))]
    if isinstance(node, ast.Assign):
        return [(t.id, None) for t in node.targets if isinstance(t, ast.Name)][:1]
    return []


def _first_line(node: ast.AST) -> int:
    decorators = getattr(node, "decorator_list", None) or []
    lines = [node.lineno] + [d.lineno for d in decorators]
    return min(lines)


def _parse_block(
    block: List[Tuple[int, str]],
    path: str,
    issues: List[ParseIssue],
) -> List[Annotation]:
    annotations = []
    for row, text in block:
        if not is_annotation(text):
            continue
        try:
            annotation = parse_annotation(text, line=row)
        except AnnotationSyntaxError as e:
            issues.append(ParseIssue(file=path, line=row, message=str(e)))
            logger.warning(f"{path}:{row}: {e}")
            continue
        if annotation is not None:
            annotations.append(annotation)
    return annotations


def parse_source(source: str, path: str = "<string>") -> ParsedFile:
    """
    Scan Python source text for annotated declarations.

    A file that is not valid Python produces a single ParseIssue.
    """
    result = ParsedFile(path=path)

    try:
        tree = ast.parse(source, filename=path)
        comments = _collect_comments(source)
    except SyntaxError as e:
        result.issues.append(ParseIssue(file=path, line=e.lineno or 0, message=f"syntax error: {e.msg}"))
        return result
    except tokenize.TokenError as e:
        line = e.args[1][0] if len(e.args) > 1 else 0
        result.issues.append(ParseIssue(file=path, line=line, message=f"tokenize error: {e.args[0]}"))
        return result

    for node in tree.body:
        if not isinstance(node, ast.ClassDef):
            continue

        decl = ClassDecl(
            name=node.name,
            file=path,
            line=node.lineno,
            annotations=_parse_block(_comment_block(comments, _first_line(node)), path, result.issues),
        )

        for child in node.body:
            targets = _member_targets(child)
            if not targets:
                continue
            member_annotations = _parse_block(
                _comment_block(comments, child.lineno), path, result.issues
            )
            if not member_annotations:
                continue
            name, type_name = targets[0]
            decl.members.append(MemberDecl(
                name=name,
                line=child.lineno,
                type_name=type_name,
                annotations=member_annotations,
            ))

        if decl.annotations or decl.members:
            result.classes.append(decl)

    return result


def parse_file(path: str) -> ParsedFile:
    """Scan one file; read failures become a ParseIssue."""
    with log_context(file=path):
        try:
            with open(path, "r", encoding="utf-8") as f:
                source = f.read()
        except (OSError, UnicodeDecodeError) as e:
            logger.warning(f"Cannot read {path}: {e}")
            return ParsedFile(path=path, issues=[ParseIssue(file=path, line=0, message=f"cannot read file: {e}")])

        parsed = parse_source(source, path)
        logger.debug(f"Parsed {path}: {len(parsed.classes)} annotated classes")
        return parsed


# ============================================================================
# DIRECTORY WALK
# ============================================================================

def _is_skipped_file(name: str, defaults: ParserDefaults) -> bool:
    if not name.endswith(defaults.source_suffix):
        return True
    if name in defaults.skip_file_names:
        return True
    if any(name.startswith(prefix) for prefix in defaults.skip_file_prefixes):
        return True
    return any(name.endswith(suffix) for suffix in defaults.skip_file_suffixes)


def iter_source_files(root: str, defaults: Optional[ParserDefaults] = None) -> List[str]:
    """
    List source files under ``root`` in sorted, deterministic order.

    Raises:
        SchemaParseError: If ``root`` does not exist or is not readable
    """
    defaults = defaults or get_defaults().parser

    if os.path.isfile(root):
        return [root]
    if not os.path.isdir(root):
        raise SchemaParseError(f"source directory not found: {root}", operation="parse directory")

    files = []
    walk_errors = []

    def on_error(error: OSError) -> None:
        walk_errors.append(error)

    for dirpath, dirnames, filenames in os.walk(root, onerror=on_error):
        dirnames[:] = sorted(
            d for d in dirnames
            if not d.startswith(".") and d not in defaults.skip_dirs
        )
        for name in sorted(filenames):
            if not _is_skipped_file(name, defaults):
                files.append(os.path.join(dirpath, name))

    if walk_errors and not files:
        raise SchemaParseError(
            f"cannot read source directory {root}: {walk_errors[0]}",
            operation="parse directory",
        )
    return files


def parse_directory(root: str, defaults: Optional[ParserDefaults] = None) -> List[ParsedFile]:
    """Scan every eligible source file under ``root``."""
    files = iter_source_files(root, defaults)
    logger.info(f"Scanning {len(files)} source files under {root}")
    return [parse_file(path) for path in files]


__all__ = [
    "MemberDecl",
    "ClassDecl",
    "ParsedFile",
    "parse_source",
    "parse_file",
    "iter_source_files",
    "parse_directory",
]
