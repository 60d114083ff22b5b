# ============================================================================
# SCHEMA MODEL BUILDER
# ============================================================================
# STATUS: Core - Declarations to relational model
# PURPOSE: Build tables, enums, indexes and embeddings from scanned classes
# CREATED: 19 OCT 2026
# ============================================================================
"""
Schema Model Builder

Turns the declarations found by the scanner into a SchemaModel in two passes:

    Pass 1: collect every embeddable group into a name -> EmbedGroup map
    Pass 2: build tables, resolving embedded directives against that map

Deduplication is first-declaration-wins for tables, columns (per table),
indexes and enums; later duplicates are logged and ignored.

Embedding modes:
    inline    group fields become host columns, optionally prefixed
    json      one JSON column holds the whole group
    relation  one foreign-key column references another table
    skip      nothing is added
"""

from typing import Dict, List, Optional

from core.config import GeneratorDefaults, get_defaults
from core.contracts import AnnotationKind, EmbedMode, ReferentialAction
from core.errors import ParseIssue
from core.logging import ComponentType, get_logger, log_checkpoint
from core.models import (
    ColumnDef,
    EmbedDirective,
    EmbedGroup,
    EnumDef,
    ForeignKeyRef,
    IndexDef,
    SchemaModel,
    TableDef,
)
from core.schema.annotations import Annotation
from core.schema.parser import ClassDecl, MemberDecl, ParsedFile, parse_directory

logger = get_logger("schema.builder", ComponentType.PARSER)


def enum_type_name(class_name: str, attribute: str) -> str:
    """Generated enum name for a field-level enum."""
    return f"enum_{class_name.lower()}_{attribute.lower()}"


class SchemaBuilder:
    """
    Accumulates declarations and produces a SchemaModel.

    Usage:
        builder = SchemaBuilder()
        builder.add_files(parse_directory("models/"))
        model = builder.build()
    """

    def __init__(self, defaults: Optional[GeneratorDefaults] = None):
        self.defaults = defaults or get_defaults().generator
        self.classes: List[ClassDecl] = []
        self.issues: List[ParseIssue] = []
        self._pending_relations: List[ColumnDef] = []

    def add_files(self, files: List[ParsedFile]) -> "SchemaBuilder":
        for parsed in files:
            self.classes.extend(parsed.classes)
            self.issues.extend(parsed.issues)
        return self

    # =========================================================================
    # BUILD
    # =========================================================================

    def build(self) -> SchemaModel:
        model = SchemaModel(issues=list(self.issues))
        enums: Dict[str, EnumDef] = {}

        # Pass 1
        for decl in self.classes:
            if self._is_embed_group(decl):
                if decl.name in model.embed_groups:
                    logger.warning(f"Duplicate embed group {decl.name} ignored ({decl.source})")
                    continue
                model.embed_groups[decl.name] = self._build_group(decl, enums, model)

        # Pass 2
        for decl in self.classes:
            table_ann = self._first(decl.annotations, AnnotationKind.TABLE)
            if table_ann is None:
                continue
            # Checked before building so a dropped duplicate contributes no enums
            name = self._table_name(decl, table_ann)
            if model.get_table(name) is not None:
                logger.warning(f"Duplicate table {name} ignored ({decl.source})")
                continue
            table = self._build_table(decl, table_ann, enums, model)
            if table is None:
                continue
            model.tables.append(table)
            self._collect_indexes(decl, table, model)

        # Relation columns take the key type of their target once all tables exist
        for column in self._pending_relations:
            column.type = self._referenced_type(column.foreign, model)
        self._pending_relations = []

        model.enums = [enums[name] for name in sorted(enums)]
        model.dependencies = build_dependency_map(model.tables)

        self._check_references(model)

        log_checkpoint("schema_built", {
            "tables": len(model.tables),
            "enums": len(model.enums),
            "indexes": len(model.indexes),
            "embed_groups": len(model.embed_groups),
            "issues": len(model.issues),
        })
        return model

    # =========================================================================
    # EMBED GROUPS
    # =========================================================================

    def _is_embed_group(self, decl: ClassDecl) -> bool:
        if self._first(decl.annotations, AnnotationKind.EMBED) is not None:
            return True
        if self._first(decl.annotations, AnnotationKind.TABLE) is not None:
            return False
        return any(
            self._first(member.annotations, AnnotationKind.FIELD) is not None
            for member in decl.members
        )

    def _build_group(self, decl: ClassDecl, enums: Dict[str, EnumDef], model: SchemaModel) -> EmbedGroup:
        fields: List[ColumnDef] = []
        for member in decl.members:
            for ann in self._all(member.annotations, AnnotationKind.FIELD):
                column = self._build_column(decl, member, ann, enums, model)
                if column is None:
                    continue
                if any(f.name == column.name for f in fields):
                    logger.warning(f"Duplicate field {column.name} in group {decl.name} ignored")
                    continue
                fields.append(column)
        return EmbedGroup(name=decl.name, fields=fields, source=decl.source)

    # =========================================================================
    # TABLES
    # =========================================================================

    @staticmethod
    def _table_name(decl: ClassDecl, ann: Annotation) -> str:
        return ann.get("name", decl.name.lower())

    def _build_table(
        self,
        decl: ClassDecl,
        ann: Annotation,
        enums: Dict[str, EnumDef],
        model: SchemaModel,
    ) -> Optional[TableDef]:
        table = TableDef(
            name=self._table_name(decl, ann),
            class_name=decl.name,
            primary_key=ann.get_list("primary_key"),
            comment=ann.get("comment"),
            engine=ann.get("engine"),
            overrides=ann.overrides,
            source=decl.source,
        )

        for member in decl.members:
            for member_ann in member.annotations:
                if member_ann.kind == AnnotationKind.FIELD:
                    column = self._build_column(decl, member, member_ann, enums, model)
                    if column is not None:
                        self._add_column(table, column)
                elif member_ann.kind == AnnotationKind.EMBEDDED:
                    directive = self._build_directive(decl, member, member_ann, model)
                    if directive is not None:
                        for column in self._resolve_embedded(table, directive, model):
                            self._add_column(table, column)

        missing = [name for name in table.primary_key if not table.has_column(name)]
        if missing:
            self._issue(model, decl.file, ann.line,
                        f"primary_key of table {table.name} names unknown columns: {', '.join(missing)}")
            table.primary_key = [name for name in table.primary_key if table.has_column(name)]

        # Table-level key marks its columns NOT NULL
        for name in table.primary_key:
            table.get_column(name).nullable = False

        return table

    def _add_column(self, table: TableDef, column: ColumnDef) -> None:
        if table.has_column(column.name):
            logger.warning(f"Duplicate column {table.name}.{column.name} ignored")
            return
        table.columns.append(column)

    def _build_column(
        self,
        decl: ClassDecl,
        member: MemberDecl,
        ann: Annotation,
        enums: Dict[str, EnumDef],
        model: SchemaModel,
    ) -> Optional[ColumnDef]:
        name = ann.get("name", member.name)
        column_type = ann.get("type")
        if not column_type:
            self._issue(model, decl.file, ann.line, f"field {decl.name}.{member.name} has no type")
            return None

        enum_values = ann.get_list("enum")
        is_enum = bool(enum_values) and column_type.upper() == "ENUM"
        if is_enum:
            enum_name = enum_type_name(decl.name, member.name)
            if enum_name not in enums:
                enums[enum_name] = EnumDef(name=enum_name, values=enum_values)
            column_type = enum_name

        primary = ann.flag("primary")
        nullable = not (ann.flag("not_null") or primary)
        if ann.flag("nullable") and not primary:
            nullable = True

        foreign = None
        if ann.get("foreign"):
            try:
                foreign = ForeignKeyRef.parse(
                    ann.get("foreign"),
                    name=ann.get("foreign_key_name"),
                    on_delete=ReferentialAction.normalize(ann.get("on_delete")),
                    on_update=ReferentialAction.normalize(ann.get("on_update")),
                )
            except ValueError as e:
                self._issue(model, decl.file, ann.line, f"field {decl.name}.{member.name}: {e}")

        return ColumnDef(
            name=name,
            type=column_type,
            nullable=nullable,
            primary=primary,
            unique=ann.flag("unique"),
            index=ann.flag("index"),
            auto_increment=ann.flag("auto_increment") or ann.flag("autoincrement"),
            default=ann.get("default"),
            default_fn=ann.get("default_fn") or ann.get("default_expr"),
            check=ann.get("check"),
            comment=ann.get("comment"),
            enum_values=enum_values if is_enum else [],
            foreign=foreign,
            overrides=ann.overrides,
            source=f"{decl.file}:{ann.line}",
        )

    # =========================================================================
    # EMBEDDING
    # =========================================================================

    def _build_directive(
        self,
        decl: ClassDecl,
        member: MemberDecl,
        ann: Annotation,
        model: SchemaModel,
    ) -> Optional[EmbedDirective]:
        group = ann.get("group") or ann.get("struct") or member.type_name
        if not group:
            self._issue(model, decl.file, ann.line,
                        f"embedded attribute {decl.name}.{member.name} has no group type")
            return None
        try:
            mode = EmbedMode.parse(ann.get("mode"))
        except ValueError:
            self._issue(model, decl.file, ann.line, f"unknown embed mode '{ann.get('mode')}'")
            return None
        return EmbedDirective(
            mode=mode,
            group=group,
            name=ann.get("name"),
            type=ann.get("type"),
            prefix=ann.get("prefix"),
            field=ann.get("field"),
            ref=ann.get("ref"),
            on_delete=ReferentialAction.normalize(ann.get("on_delete")),
            on_update=ReferentialAction.normalize(ann.get("on_update")),
            nullable=not ann.flag("not_null"),
            index=ann.flag("index"),
            comment=ann.get("comment"),
            overrides=ann.overrides,
            source=f"{decl.file}:{ann.line}",
        )

    def _resolve_embedded(
        self,
        table: TableDef,
        directive: EmbedDirective,
        model: SchemaModel,
    ) -> List[ColumnDef]:
        if directive.mode == EmbedMode.SKIP:
            return []

        if directive.mode == EmbedMode.RELATION:
            return self._relation_column(table, directive, model)

        group = model.embed_groups.get(directive.group)
        if group is None:
            self._directive_issue(model, directive, f"table {table.name} embeds unknown group {directive.group}")
            return []

        if directive.mode == EmbedMode.JSON:
            return [ColumnDef(
                name=directive.name or f"{group.name.lower()}_data",
                type=directive.type or self.defaults.json_column_type,
                nullable=directive.nullable,
                index=directive.index,
                comment=directive.comment,
                overrides=directive.overrides,
                source=directive.source,
            )]

        prefix = directive.prefix or ""
        columns = []
        for field_def in group.fields:
            columns.append(field_def.model_copy(
                update={"name": f"{prefix}{field_def.name}"},
                deep=True,
            ))
        return columns

    def _relation_column(
        self,
        table: TableDef,
        directive: EmbedDirective,
        model: SchemaModel,
    ) -> List[ColumnDef]:
        if not directive.field or not directive.ref:
            self._directive_issue(model, directive, f"relation embed on table {table.name} needs field and ref")
            return []
        try:
            foreign = ForeignKeyRef.parse(
                directive.ref,
                name=f"fk_{(table.class_name or table.name).lower()}_{directive.field.lower()}",
                on_delete=directive.on_delete,
                on_update=directive.on_update,
            )
        except ValueError as e:
            self._directive_issue(model, directive, str(e))
            return []

        column = ColumnDef(
            name=directive.field,
            type=directive.type or self.defaults.relation_column_type,
            nullable=directive.nullable,
            index=directive.index,
            comment=directive.comment,
            foreign=foreign,
            overrides=directive.overrides,
            source=directive.source,
        )
        if not directive.type:
            self._pending_relations.append(column)
        return [column]

    def _referenced_type(self, foreign: ForeignKeyRef, model: SchemaModel) -> str:
        """Key type of the referenced column; serial keys map to their integer width."""
        target = model.get_table(foreign.table)
        column = target.get_column(foreign.column) if target else None
        if column is None:
            return self.defaults.relation_column_type
        upper = column.type.upper()
        if upper == "BIGSERIAL":
            return "BIGINT"
        if upper in ("SERIAL", "SMALLSERIAL"):
            return "INTEGER"
        return column.type

    # =========================================================================
    # INDEXES
    # =========================================================================

    def _collect_indexes(self, decl: ClassDecl, table: TableDef, model: SchemaModel) -> None:
        index_anns = list(self._all(decl.annotations, AnnotationKind.INDEX))
        for member in decl.members:
            index_anns.extend(self._all(member.annotations, AnnotationKind.INDEX))

        for ann in index_anns:
            name = ann.get("name")
            columns = ann.get_list("fields") or ann.get_list("columns")
            if not name or not columns:
                self._issue(model, decl.file, ann.line, "index annotation needs name and fields")
                continue
            if any(i.name == name for i in model.indexes):
                logger.warning(f"Duplicate index {name} ignored")
                continue
            model.indexes.append(IndexDef(
                name=name,
                table=ann.get("table", table.name),
                columns=columns,
                unique=ann.flag("unique"),
                method=(ann.get("type") or ann.get("method") or "").upper() or None,
                condition=ann.get("condition") or ann.get("where"),
                ops=ann.get("ops"),
                comment=ann.get("comment"),
                overrides=ann.overrides,
                source=f"{decl.file}:{ann.line}",
            ))

    # =========================================================================
    # HELPERS
    # =========================================================================

    def _check_references(self, model: SchemaModel) -> None:
        declared = set(model.table_names)
        for table in model.tables:
            for target in table.referenced_tables():
                if target not in declared:
                    logger.warning(f"Table {table.name} references undeclared table {target}")

    def _issue(self, model: SchemaModel, file: str, line: int, message: str) -> None:
        logger.warning(f"{file}:{line}: {message}")
        model.issues.append(ParseIssue(file=file, line=line, message=message))

    def _directive_issue(self, model: SchemaModel, directive: EmbedDirective, message: str) -> None:
        file, _, line = (directive.source or ":0").rpartition(":")
        self._issue(model, file, int(line or 0), message)

    @staticmethod
    def _first(annotations: List[Annotation], kind: AnnotationKind) -> Optional[Annotation]:
        for ann in annotations:
            if ann.kind == kind:
                return ann
        return None

    @staticmethod
    def _all(annotations: List[Annotation], kind: AnnotationKind) -> List[Annotation]:
        return [ann for ann in annotations if ann.kind == kind]


def build_dependency_map(tables: List[TableDef]) -> Dict[str, List[str]]:
    """Map each table to the distinct tables its foreign keys reference."""
    return {table.name: table.referenced_tables() for table in tables}


def build_schema(files: List[ParsedFile]) -> SchemaModel:
    return SchemaBuilder().add_files(files).build()


def parse_schema(root: str) -> SchemaModel:
    """
    Scan a source tree and build its schema model.

    Raises:
        SchemaParseError: If ``root`` cannot be read
    """
    return build_schema(parse_directory(root))


__all__ = [
    "SchemaBuilder",
    "enum_type_name",
    "build_dependency_map",
    "build_schema",
    "parse_schema",
]
