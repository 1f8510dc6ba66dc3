"""Statement block classification.

Every nested statement block inside a body gets a structural role (BlockType)
and a normalized expression string such as the guard condition or the
resource list. Both are used to compare blocks inside matched entities.
"""

from dataclasses import dataclass, field
from enum import Enum

from entity_matcher.analysis.entity import Location


class BlockType(Enum):
    """Structural role of a statement block."""

    BODY = "body"
    IF = "if"
    ELSE = "else"
    TRY = "try"
    CATCH = "catch"
    FINALLY = "finally"
    FOR = "for"
    ENHANCED_FOR = "enhanced_for"
    WHILE = "while"
    DO = "do"
    SWITCH_CASE = "switch_case"
    CASE = "case"
    LAMBDA = "lambda"
    ANONYMOUS = "anonymous"
    BLOCK = "block"
    OTHER = "other"


# Structural anchors that are never reported as matched, added or deleted
ANCHOR_TYPES = frozenset({BlockType.BODY, BlockType.SWITCH_CASE})


class Construct(Enum):
    """Syntactic construct that directly encloses a raw block."""

    IF = "if"
    TRY = "try"
    CATCH = "catch"
    FOR = "for"
    ENHANCED_FOR = "enhanced_for"
    WHILE = "while"
    DO = "do"
    METHOD = "method"
    SWITCH = "switch"
    LAMBDA = "lambda"
    ANONYMOUS_CLASS = "anonymous_class"
    BLOCK = "block"
    OTHER = "other"


@dataclass
class BlockSource:
    """Raw block as reported by the front end.

    Only the attributes relevant to the enclosing construct are filled in.

    Attributes:
        construct: Construct the block belongs to
        role: "then"/"else" for IF, "body"/"finally" for TRY
        condition: Guard expression of IF, FOR, WHILE and DO
        resources: Resource declarations of a try-with-resources
        exception: Caught exception declaration of CATCH
        initializers: Initializer expressions of FOR
        updaters: Updater expressions of FOR
        parameter: Loop variable of ENHANCED_FOR
        iterable: Iterated expression of ENHANCED_FOR
        case_label: Text of the switch label preceding the block
        text: Source text of the block
        location: Source span of the block
        children: Nested blocks in source order
    """

    construct: Construct
    role: str | None = None
    condition: str | None = None
    resources: list[str] = field(default_factory=list)
    exception: str | None = None
    initializers: list[str] = field(default_factory=list)
    updaters: list[str] = field(default_factory=list)
    parameter: str | None = None
    iterable: str | None = None
    case_label: str | None = None
    text: str = ""
    location: Location | None = None
    children: list["BlockSource"] = field(default_factory=list)


class StatementBlockNode:
    """Classified statement block inside a declaration body."""

    def __init__(
        self,
        block_type: BlockType,
        expression: str,
        text: str,
        method: str,
        location: Location | None = None,
    ) -> None:
        self.block_type = block_type
        self.expression = expression
        self.text = text
        self.method = method
        self.location = location
        self.parent: StatementBlockNode | None = None
        self.children: list[StatementBlockNode] = []
        self.matched = False

    def __repr__(self) -> str:
        return f"StatementBlockNode({self.block_type.value}, {self.expression!r})"

    def add_child(self, child: "StatementBlockNode") -> None:
        child.parent = self
        self.children.append(child)

    def descendants(self) -> list["StatementBlockNode"]:
        """Get all nested blocks in preorder, excluding this node."""
        nodes = []
        for child in self.children:
            nodes.append(child)
            nodes.extend(child.descendants())
        return nodes

    def reportable_blocks(self) -> list["StatementBlockNode"]:
        """Get nested blocks that take part in matching (anchors excluded)."""
        return [node for node in self.descendants() if node.block_type not in ANCHOR_TYPES]

    @property
    def sort_key(self) -> tuple:
        if self.location is None:
            return ("", 0, 0)
        return (self.location.file_path, self.location.start_line, self.location.start_column)


def classify_block(source: BlockSource) -> tuple[BlockType, str]:
    """Classify a raw block by its enclosing construct.

    Args:
        source: Raw block description

    Returns:
        Tuple of (BlockType, normalized expression).
    """
    construct = source.construct
    if construct == Construct.IF:
        block_type = BlockType.ELSE if source.role == "else" else BlockType.IF
        return block_type, f"if({source.condition or ''})"
    if construct == Construct.TRY:
        block_type = BlockType.FINALLY if source.role == "finally" else BlockType.TRY
        resource = "; ".join(source.resources)
        return block_type, f"try({resource})" if resource else "try"
    if construct == Construct.CATCH:
        return BlockType.CATCH, f"catch({source.exception or ''})"
    if construct == Construct.FOR:
        initializer = ", ".join(source.initializers)
        updater = ", ".join(source.updaters)
        return BlockType.FOR, f"for({initializer}; {source.condition or ''}; {updater})"
    if construct == Construct.ENHANCED_FOR:
        return BlockType.ENHANCED_FOR, f"for({source.parameter or ''}: {source.iterable or ''})"
    if construct == Construct.WHILE:
        return BlockType.WHILE, f"while({source.condition or ''})"
    if construct == Construct.DO:
        return BlockType.DO, f"do({source.condition or ''})"
    if construct == Construct.METHOD:
        return BlockType.BODY, ""
    if construct == Construct.SWITCH:
        if source.case_label is not None:
            return BlockType.CASE, source.case_label
        return BlockType.BLOCK, ""
    if construct == Construct.LAMBDA:
        return BlockType.LAMBDA, ""
    if construct == Construct.ANONYMOUS_CLASS:
        return BlockType.ANONYMOUS, ""
    if construct == Construct.BLOCK:
        return BlockType.BLOCK, ""
    return BlockType.OTHER, ""


def build_block_tree(method: str, body: BlockSource) -> StatementBlockNode:
    """Build the classified block tree of one body.

    Case bodies are re-parented under a SWITCH_CASE label node, one per
    distinct label, so fall-through bodies that share a label stay together.

    Args:
        method: Qualified name of the entity owning the body
        body: Raw body block

    Returns:
        Root StatementBlockNode of the body.
    """
    block_type, expression = classify_block(body)
    root = StatementBlockNode(block_type, expression, body.text, method, body.location)
    _attach_children(root, body, method)
    return root


def _attach_children(parent: StatementBlockNode, source: BlockSource, method: str) -> None:
    labels: dict[str, StatementBlockNode] = {}
    for child_source in source.children:
        block_type, expression = classify_block(child_source)
        node = StatementBlockNode(
            block_type, expression, child_source.text, method, child_source.location
        )
        if block_type == BlockType.CASE:
            label = labels.get(expression)
            if label is None:
                label = StatementBlockNode(
                    BlockType.SWITCH_CASE, expression, expression, method, child_source.location
                )
                parent.add_child(label)
                labels[expression] = label
            label.add_child(node)
        else:
            parent.add_child(node)
        _attach_children(node, child_source, method)
