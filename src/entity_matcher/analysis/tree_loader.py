"""Loading of revision snapshots produced by a language front end.

A revision snapshot holds, for one version of the changed files, the
resolved declarations of every file and the usage records from which the
dependency graph is built. Snapshots are JSON (or YAML) documents validated
with pydantic before the declaration trees are built.
"""

from dataclasses import dataclass, field
import json
import logging
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, ValidationError
import yaml

from entity_matcher.analysis.declaration_tree import DeclarationNode, NodeVariant, variant_for
from entity_matcher.analysis.dependency_graph import (
    DependencyGraph,
    EntityUsages,
    Usage,
    UsageSite,
    build_dependency_graph,
)
from entity_matcher.analysis.entity import (
    Declaration,
    EntityDescriptor,
    EntityKind,
    Location,
    Parameter,
)
from entity_matcher.analysis.statement_block import BlockSource, Construct, build_block_tree

logger = logging.getLogger(__name__)


class SnapshotError(Exception):
    """A snapshot document cannot be read or fails validation."""


# ==================== Document models ====================


class LocationRecord(BaseModel):
    file_path: str | None = None
    start_line: int = 0
    end_line: int = 0
    start_column: int = 0
    end_column: int = 0

    def to_location(self, default_path: str) -> Location:
        return Location(
            file_path=self.file_path or default_path,
            start_line=self.start_line,
            end_line=self.end_line,
            start_column=self.start_column,
            end_column=self.end_column,
        )


class DescriptorRecord(BaseModel):
    kind: EntityKind
    name: str
    container: str = ""
    parameter_signature: list[str] = Field(default_factory=list)
    location: LocationRecord | None = None

    def to_descriptor(self, default_path: str) -> EntityDescriptor:
        location = self.location.to_location(default_path) if self.location else None
        return EntityDescriptor(
            kind=self.kind,
            name=self.name,
            container=self.container,
            parameter_signature=tuple(self.parameter_signature),
            location=location,
        )


class ParameterRecord(BaseModel):
    type: str
    varargs: bool = False


class BlockRecord(BaseModel):
    block_construct: Construct = Field(alias="construct")
    role: str | None = None
    condition: str | None = None
    resources: list[str] = Field(default_factory=list)
    exception: str | None = None
    initializers: list[str] = Field(default_factory=list)
    updaters: list[str] = Field(default_factory=list)
    parameter: str | None = None
    iterable: str | None = None
    case_label: str | None = None
    text: str = ""
    location: LocationRecord | None = None
    children: list["BlockRecord"] = Field(default_factory=list)

    def to_source(self, default_path: str) -> BlockSource:
        return BlockSource(
            construct=self.block_construct,
            role=self.role,
            condition=self.condition,
            resources=list(self.resources),
            exception=self.exception,
            initializers=list(self.initializers),
            updaters=list(self.updaters),
            parameter=self.parameter,
            iterable=self.iterable,
            case_label=self.case_label,
            text=self.text,
            location=self.location.to_location(default_path) if self.location else None,
            children=[child.to_source(default_path) for child in self.children],
        )


class EntityRecord(DescriptorRecord):
    text: str | None = None
    header: str | None = None
    type_text: str | None = None
    parameters: list[ParameterRecord] = Field(default_factory=list)
    type_parameters: list[str] = Field(default_factory=list)
    modifiers: list[str] = Field(default_factory=list)
    body: str | None = None
    children: list["EntityRecord"] = Field(default_factory=list)
    blocks: BlockRecord | None = None


class FileRecord(BaseModel):
    path: str
    text: str | None = None
    entities: list[EntityRecord] = Field(default_factory=list)


class UsageRecord(BaseModel):
    target: DescriptorRecord | None = None
    site: UsageSite


class DependencyRecord(BaseModel):
    entity: DescriptorRecord
    usages: list[UsageRecord] = Field(default_factory=list)


class SnapshotDocument(BaseModel):
    commit: str | None = None
    files: list[FileRecord] = Field(default_factory=list)
    dependencies: list[DependencyRecord] = Field(default_factory=list)


BlockRecord.model_rebuild()
EntityRecord.model_rebuild()


# ==================== Snapshot ====================


@dataclass
class RevisionSnapshot:
    """Declaration trees and dependency graph of one revision.

    Attributes:
        commit: Commit the snapshot was taken from, if known
        files: File path -> root node of its declaration tree
        graph: Dependency graph of the revision
    """

    commit: str | None = None
    files: dict[str, DeclarationNode] = field(default_factory=dict)
    graph: DependencyGraph = field(default_factory=lambda: DependencyGraph({}))

    def root(self, path: str) -> DeclarationNode | None:
        return self.files.get(path)

    def entity_count(self) -> int:
        return sum(len(root.archived_descendants()) for root in self.files.values())


def _compose_text(record: EntityRecord, children: list[DeclarationNode]) -> str:
    """Serialize a declaration the front end sent without full text."""
    header = record.header if record.header is not None else record.name
    if children:
        members = "\n".join(child.text for child in children)
        return f"{header} {{\n{members}\n}}"
    if record.body is not None:
        return f"{header} {record.body}"
    return header


def _build_node(record: EntityRecord, path: str) -> DeclarationNode:
    descriptor = record.to_descriptor(path)
    children = [_build_node(child, path) for child in record.children]
    variant = variant_for(record.kind, bool(children))
    if variant == NodeVariant.LEAF and children:
        raise SnapshotError(f"{descriptor} is a {record.kind.value} and cannot own members")

    declaration = Declaration(
        text=record.text if record.text is not None else _compose_text(record, children),
        type_text=record.type_text,
        parameters=tuple(Parameter(p.type, p.varargs) for p in record.parameters),
        type_parameters=tuple(record.type_parameters),
        modifiers=tuple(record.modifiers),
        body=record.body,
    )
    blocks = None
    if record.blocks is not None:
        blocks = build_block_tree(str(descriptor), record.blocks.to_source(path))

    node = DeclarationNode(descriptor, declaration, variant, path, blocks=blocks)
    for child in children:
        node.add_child(child)
    return node


def _build_root(record: FileRecord) -> DeclarationNode:
    entities = [_build_node(entity, record.path) for entity in record.entities]
    text = record.text
    if text is None:
        text = "\n".join(entity.text for entity in entities)
    root = DeclarationNode(None, Declaration(text=text), NodeVariant.ROOT, record.path)
    for entity in entities:
        root.add_child(entity)
    root.renumber()
    return root


def build_snapshot(data: dict[str, Any]) -> RevisionSnapshot:
    """Build a revision snapshot from a decoded document.

    Args:
        data: Decoded snapshot document

    Returns:
        RevisionSnapshot with one declaration tree per file.

    Raises:
        SnapshotError: If the document fails validation.
    """
    try:
        document = SnapshotDocument.model_validate(data)
    except ValidationError as e:
        raise SnapshotError(f"Invalid snapshot document: {e}") from e

    files: dict[str, DeclarationNode] = {}
    for file_record in document.files:
        if file_record.path in files:
            raise SnapshotError(f"Duplicate file in snapshot: {file_record.path}")
        files[file_record.path] = _build_root(file_record)

    records = []
    for dependency in document.dependencies:
        default_path = ""
        if dependency.entity.location and dependency.entity.location.file_path:
            default_path = dependency.entity.location.file_path
        usages = [
            Usage(
                target=usage.target.to_descriptor(default_path) if usage.target else None,
                site=usage.site,
            )
            for usage in dependency.usages
        ]
        records.append(EntityUsages(dependency.entity.to_descriptor(default_path), usages))

    snapshot = RevisionSnapshot(
        commit=document.commit, files=files, graph=build_dependency_graph(records)
    )
    logger.debug(
        f"Built snapshot {document.commit or '<unknown>'}: {len(files)} files, "
        f"{snapshot.entity_count()} entities, {len(snapshot.graph)} used entities"
    )
    return snapshot


def load_snapshot(path: Path) -> RevisionSnapshot:
    """Load a revision snapshot from a JSON or YAML file.

    Args:
        path: Snapshot file (.json, .yaml or .yml)

    Returns:
        RevisionSnapshot

    Raises:
        FileNotFoundError: If the file does not exist.
        SnapshotError: If the file cannot be decoded or fails validation.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Snapshot not found: {path}")

    with open(path, "r", encoding="utf-8") as f:
        try:
            if path.suffix in (".yaml", ".yml"):
                data = yaml.safe_load(f)
            else:
                data = json.load(f)
        except (UnicodeDecodeError, json.JSONDecodeError, yaml.YAMLError) as e:
            raise SnapshotError(f"Cannot decode snapshot {path}: {e}") from e

    if not isinstance(data, dict):
        raise SnapshotError(f"Snapshot {path} must contain a mapping at the top level")
    return build_snapshot(data)
