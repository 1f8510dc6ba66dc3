"""Entity descriptors and declaration payloads.

This module defines the immutable records supplied by the semantic front end:
- EntityKind: kind of a declared program element
- Location: source span of an element
- EntityDescriptor: semantic identity of an element
- Declaration: syntactic payload used for exact comparisons
"""

from dataclasses import dataclass, field
from enum import Enum


class EntityKind(Enum):
    """Kind of a declared program element."""

    TYPE = "type"
    INTERFACE = "interface"
    ENUM = "enum"
    RECORD = "record"
    ANNOTATION_TYPE = "annotation_type"
    INITIALIZER = "initializer"
    ENUM_CONSTANT = "enum_constant"
    FIELD = "field"
    METHOD = "method"
    ANNOTATION_MEMBER = "annotation_member"


# Kinds that always own matchable children
CONTAINER_KINDS = frozenset(
    {
        EntityKind.TYPE,
        EntityKind.INTERFACE,
        EntityKind.ENUM,
        EntityKind.RECORD,
        EntityKind.ANNOTATION_TYPE,
        EntityKind.INITIALIZER,
    }
)

# Kinds that may be compared with each other during fine matching
TYPE_LIKE_KINDS = frozenset({EntityKind.TYPE, EntityKind.INTERFACE, EntityKind.ENUM})

# Kinds declared as types in their own right
TYPE_DECLARATION_KINDS = frozenset(
    {
        EntityKind.TYPE,
        EntityKind.INTERFACE,
        EntityKind.ENUM,
        EntityKind.RECORD,
        EntityKind.ANNOTATION_TYPE,
    }
)


@dataclass(frozen=True)
class Location:
    """Source span of a declaration or statement block.

    Attributes:
        file_path: Repository-relative file path
        start_line: First line (1-based)
        end_line: Last line (1-based)
        start_column: First column
        end_column: Last column
    """

    file_path: str
    start_line: int = 0
    end_line: int = 0
    start_column: int = 0
    end_column: int = 0

    def to_dict(self) -> dict:
        return {
            "filePath": self.file_path,
            "startLine": self.start_line,
            "endLine": self.end_line,
            "startColumn": self.start_column,
            "endColumn": self.end_column,
        }


@dataclass(frozen=True)
class EntityDescriptor:
    """Semantic identity of a declared element.

    Two descriptors are equal when kind, name, container and parameter
    signature match. The location is carried along but never compared.

    Attributes:
        kind: Kind of the element
        name: Simple name (e.g. "foo", "static block" for initializers)
        container: Qualified name of the enclosing type or package
        parameter_signature: Resolved parameter type names (methods only)
        location: Where the element is declared
    """

    kind: EntityKind
    name: str
    container: str
    parameter_signature: tuple[str, ...] = ()
    location: Location | None = field(default=None, compare=False, hash=False)

    @property
    def qualified_name(self) -> str:
        if not self.container:
            return self.name
        return f"{self.container}.{self.name}"

    @property
    def params(self) -> str:
        return ",".join(self.parameter_signature)

    def __str__(self) -> str:
        if self.kind == EntityKind.METHOD:
            return f"{self.qualified_name}({self.params})"
        return self.qualified_name


@dataclass(frozen=True)
class Parameter:
    """Declared method parameter."""

    type: str
    varargs: bool = False

    def render(self) -> str:
        return f"{self.type}[]" if self.varargs else self.type


@dataclass(frozen=True)
class Declaration:
    """Syntactic payload of a declaration as produced by the front end.

    Attributes:
        text: Full textual serialization of the declaration
        type_text: Declared type of a field or annotation member, return type
            of a method, None for constructors and containers
        parameters: Declared parameters in order
        type_parameters: Declared type parameters, rendered as text
        modifiers: Modifier keywords and annotations
        body: Method body text, None when the method has no body
    """

    text: str
    type_text: str | None = None
    parameters: tuple[Parameter, ...] = ()
    type_parameters: tuple[str, ...] = ()
    modifiers: tuple[str, ...] = ()
    body: str | None = None

    def parameter_list(self) -> str:
        return ",".join(parameter.render() for parameter in self.parameters)

    def type_parameter_list(self) -> str:
        return ",".join(self.type_parameters)
