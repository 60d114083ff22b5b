# ============================================================================
# SOURCE SCANNER TESTS
# ============================================================================
# STATUS: Tests - Annotated declaration discovery
# PURPOSE: Verify comment attachment, file walking and issue collection
# CREATED: 19 OCT 2026
# ============================================================================
"""
Source Scanner Tests

Covers:
1. Comment blocks attached to the class or attribute directly below
2. Member type names from annotations (Optional[X], "X", mod.X)
3. Syntax errors and bad annotations recorded as issues
4. Directory walk order and skipped files
5. Unreadable root raising SchemaParseError

Run with:
    pytest tests/test_parser.py -v
"""

import textwrap

import pytest

from core.contracts import AnnotationKind
from core.errors import SchemaParseError
from core.schema.parser import iter_source_files, parse_directory, parse_file, parse_source


USER_SOURCE = textwrap.dedent('''
    from typing import Optional


    #migrator:schema:table name="users" comment="App users"
    class User:
        #migrator:schema:field name="id" type="SERIAL" primary
        id: int

        #migrator:schema:field name="email" type="VARCHAR(255)" not_null unique
        email: str

        name: str  # plain attribute

        #migrator:embedded mode="inline"
        address: Optional["Address"]


    class Helper:
        pass
''')


# ============================================================================
# ATTACHMENT
# ============================================================================

class TestAttachment:

    def test_annotated_class_found(self):
        parsed = parse_source(USER_SOURCE, "models/user.py")
        assert [c.name for c in parsed.classes] == ["User"]
        assert parsed.issues == []

    def test_class_annotation(self):
        decl = parse_source(USER_SOURCE).classes[0]
        assert len(decl.annotations) == 1
        assert decl.annotations[0].kind == AnnotationKind.TABLE
        assert decl.annotations[0].get("name") == "users"

    def test_members_in_source_order(self):
        decl = parse_source(USER_SOURCE).classes[0]
        assert [m.name for m in decl.members] == ["id", "email", "address"]

    def test_member_type_name_unwrapped(self):
        decl = parse_source(USER_SOURCE).classes[0]
        assert decl.members[2].type_name == "Address"
        assert decl.members[0].type_name == "int"

    def test_blank_line_breaks_block(self):
        source = textwrap.dedent('''
            #migrator:schema:table name="orphan"

            class Detached:
                pass
        ''')
        assert parse_source(source).classes == []

    def test_decorator_between_comment_and_class(self):
        source = textwrap.dedent('''
            from dataclasses import dataclass

            #migrator:schema:table name="points"
            @dataclass
            class Point:
                #migrator:schema:field name="x" type="INTEGER"
                x: int
        ''')
        decl = parse_source(source).classes[0]
        assert decl.annotations[0].get("name") == "points"
        assert decl.members[0].name == "x"

    def test_multiple_annotations_in_one_block(self):
        source = textwrap.dedent('''
            #migrator:schema:table name="events"
            #migrator:schema:index name="idx_events_kind" fields="kind"
            class Event:
                #migrator:schema:field name="kind" type="TEXT"
                kind: str
        ''')
        kinds = [a.kind for a in parse_source(source).classes[0].annotations]
        assert kinds == [AnnotationKind.TABLE, AnnotationKind.INDEX]

    def test_source_location(self):
        decl = parse_source(USER_SOURCE, "models/user.py").classes[0]
        assert decl.source.startswith("models/user.py:")


# ============================================================================
# ISSUES
# ============================================================================

class TestIssues:

    def test_syntax_error_is_one_issue(self):
        parsed = parse_source("class Broken(:\n    pass\n", "broken.py")
        assert parsed.classes == []
        assert len(parsed.issues) == 1
        assert "syntax error" in parsed.issues[0].message

    def test_bad_annotation_skipped_rest_kept(self):
        source = textwrap.dedent('''
            #migrator:schema:table name="t"
            class T:
                #migrator:schema:field name="a" type="INT" comment="unterminated
                a: int

                #migrator:schema:field name="b" type="INT"
                b: int
        ''')
        parsed = parse_source(source, "t.py")
        assert [m.name for m in parsed.classes[0].members] == ["b"]
        assert len(parsed.issues) == 1
        assert parsed.issues[0].file == "t.py"
        assert "unterminated quote" in parsed.issues[0].message

    def test_unreadable_file_is_issue(self, tmp_path):
        parsed = parse_file(str(tmp_path / "missing.py"))
        assert parsed.classes == []
        assert "cannot read file" in parsed.issues[0].message


# ============================================================================
# DIRECTORY WALK
# ============================================================================

class TestDirectoryWalk:

    def _make_tree(self, root):
        (root / "b_models.py").write_text(USER_SOURCE)
        (root / "a_models.py").write_text("x = 1\n")
        (root / "test_models.py").write_text(USER_SOURCE)
        (root / "models_test.py").write_text(USER_SOURCE)
        (root / "notes.txt").write_text("ignored")
        nested = root / "pkg"
        nested.mkdir()
        (nested / "more.py").write_text("y = 2\n")
        hidden = root / ".hidden"
        hidden.mkdir()
        (hidden / "secret.py").write_text(USER_SOURCE)
        cache = root / "__pycache__"
        cache.mkdir()
        (cache / "cached.py").write_text(USER_SOURCE)

    def test_sorted_and_filtered(self, tmp_path):
        self._make_tree(tmp_path)
        files = iter_source_files(str(tmp_path))
        names = [f.replace(str(tmp_path), "").lstrip("/\\") for f in files]
        assert names == ["a_models.py", "b_models.py", "pkg/more.py"] or \
            names == ["a_models.py", "b_models.py", "pkg\\more.py"]

    def test_parse_directory(self, tmp_path):
        self._make_tree(tmp_path)
        parsed = parse_directory(str(tmp_path))
        classes = [c.name for p in parsed for c in p.classes]
        assert classes == ["User"]

    def test_single_file_root(self, tmp_path):
        path = tmp_path / "one.py"
        path.write_text(USER_SOURCE)
        assert iter_source_files(str(path)) == [str(path)]

    def test_missing_root_raises(self, tmp_path):
        with pytest.raises(SchemaParseError, match="source directory not found"):
            iter_source_files(str(tmp_path / "nope"))
