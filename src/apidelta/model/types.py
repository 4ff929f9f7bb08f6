"""Type Signature Model: the immutable input contract.

A ``ModuleSnapshot`` is produced by an external model extractor and consumed
read-only by the comparator.  Every object here is a frozen dataclass and
every collection is a tuple, frozenset or read-only mapping.

Type shapes are tagged variants; ``kind`` is the discriminator.  Opaque
(unresolved) names are ``ReferenceShape`` leaves compared by text.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import ClassVar, Literal, Union

SymbolKind = Literal["function", "class", "interface", "type", "enum", "variable", "namespace"]

MemberKind = Literal[
    "property",
    "method",
    "parameter",
    "type-parameter",
    "enum-member",
    "call-signature",
    "construct-signature",
    "index-signature",
    "getter",
    "setter",
]

NodeKind = Union[SymbolKind, MemberKind]

SYMBOL_KINDS: frozenset[str] = frozenset(
    ("function", "class", "interface", "type", "enum", "variable", "namespace")
)
MEMBER_KINDS: frozenset[str] = frozenset(
    (
        "property",
        "method",
        "parameter",
        "type-parameter",
        "enum-member",
        "call-signature",
        "construct-signature",
        "index-signature",
        "getter",
        "setter",
    )
)
NODE_KINDS: frozenset[str] = SYMBOL_KINDS | MEMBER_KINDS

MODIFIERS: frozenset[str] = frozenset(
    (
        "exported",
        "default-export",
        "deprecated",
        "readonly",
        "optional",
        "abstract",
        "static",
        "private",
        "protected",
        "public",
        "const",
        "declare",
        "async",
    )
)


def _empty_mapping() -> Mapping[str, SymbolNode]:
    return MappingProxyType({})


# =============================================================================
# Shapes
# =============================================================================


@dataclass(frozen=True, slots=True)
class PrimitiveShape:
    """Built-in primitive or keyword type (string, number, void, any, ...)."""

    name: str
    kind: ClassVar[str] = "primitive"


@dataclass(frozen=True, slots=True)
class LiteralShape:
    """Literal type; ``value`` is its source text, e.g. ``"active"`` or ``42``."""

    value: str
    kind: ClassVar[str] = "literal"


@dataclass(frozen=True, slots=True)
class ReferenceShape:
    """Named type with optional type arguments."""

    name: str
    type_arguments: tuple[Shape, ...] = ()
    kind: ClassVar[str] = "reference"


@dataclass(frozen=True, slots=True)
class UnionShape:
    members: tuple[Shape, ...]
    kind: ClassVar[str] = "union"


@dataclass(frozen=True, slots=True)
class IntersectionShape:
    members: tuple[Shape, ...]
    kind: ClassVar[str] = "intersection"


@dataclass(frozen=True, slots=True)
class TupleElement:
    type: Shape
    optional: bool = False
    rest: bool = False
    label: str | None = None


@dataclass(frozen=True, slots=True)
class TupleShape:
    elements: tuple[TupleElement, ...] = ()
    readonly: bool = False
    kind: ClassVar[str] = "tuple"


@dataclass(frozen=True, slots=True)
class ArrayShape:
    element: Shape
    readonly: bool = False
    kind: ClassVar[str] = "array"


@dataclass(frozen=True, slots=True)
class TypeParameter:
    name: str
    constraint: str | None = None
    default: str | None = None


@dataclass(frozen=True, slots=True)
class Parameter:
    name: str
    type: Shape
    optional: bool = False
    rest: bool = False
    default_value: str | None = None


@dataclass(frozen=True, slots=True)
class Signature:
    """One callable signature (a single overload)."""

    parameters: tuple[Parameter, ...] = ()
    return_type: Shape = PrimitiveShape("void")
    type_parameters: tuple[TypeParameter, ...] = ()


@dataclass(frozen=True, slots=True)
class PropertyShape:
    """Property of an object type literal."""

    name: str
    type: Shape
    optional: bool = False
    readonly: bool = False


@dataclass(frozen=True, slots=True)
class IndexSignatureShape:
    key_name: str
    key_type: Shape
    value_type: Shape
    readonly: bool = False


@dataclass(frozen=True, slots=True)
class ObjectShape:
    properties: tuple[PropertyShape, ...] = ()
    call_signatures: tuple[Signature, ...] = ()
    construct_signatures: tuple[Signature, ...] = ()
    index_signatures: tuple[IndexSignatureShape, ...] = ()
    kind: ClassVar[str] = "object"

    def property_map(self) -> dict[str, PropertyShape]:
        return {p.name: p for p in self.properties}


@dataclass(frozen=True, slots=True)
class FunctionShape:
    """Callable type; more than one signature means overloads."""

    signatures: tuple[Signature, ...]
    kind: ClassVar[str] = "function"


@dataclass(frozen=True, slots=True)
class MappedShape:
    """``{ [K in C as N]?: T }``.

    ``optional_modifier`` and ``readonly_modifier`` hold the modifier token
    as written (``?``, ``+?``, ``-?`` / ``readonly``, ``+readonly``,
    ``-readonly``) or ``None`` when absent.
    """

    type_parameter: str
    constraint: Shape
    template: Shape
    name_type: Shape | None = None
    optional_modifier: str | None = None
    readonly_modifier: str | None = None
    kind: ClassVar[str] = "mapped"


@dataclass(frozen=True, slots=True)
class ConditionalShape:
    check_type: Shape
    extends_type: Shape
    true_type: Shape
    false_type: Shape
    kind: ClassVar[str] = "conditional"


@dataclass(frozen=True, slots=True)
class TemplateSpan:
    type: Shape
    literal: str = ""


@dataclass(frozen=True, slots=True)
class TemplateLiteralShape:
    head: str = ""
    spans: tuple[TemplateSpan, ...] = ()
    kind: ClassVar[str] = "template-literal"


Shape = Union[
    PrimitiveShape,
    LiteralShape,
    ReferenceShape,
    UnionShape,
    IntersectionShape,
    TupleShape,
    ArrayShape,
    ObjectShape,
    FunctionShape,
    MappedShape,
    ConditionalShape,
    TemplateLiteralShape,
]


# =============================================================================
# Canonical rendering
# =============================================================================


def collation_key(text: str) -> tuple[str, str, str]:
    """Case-insensitive first, lower-case before upper-case on ties, then code point."""
    return (text.casefold(), text.swapcase(), text)


def canonical_members(texts: Iterable[str]) -> tuple[str, ...]:
    """Sort member texts into canonical order; duplicates collapse."""
    return tuple(sorted(set(texts), key=collation_key))


def _wrap(shape: Shape, *kinds: str) -> str:
    text = render_shape(shape)
    return f"({text})" if shape.kind in kinds else text


def render_type_parameters(type_parameters: Iterable[TypeParameter]) -> str:
    parts = []
    for tp in type_parameters:
        text = tp.name
        if tp.constraint:
            text += f" extends {tp.constraint}"
        if tp.default:
            text += f" = {tp.default}"
        parts.append(text)
    return f"<{', '.join(parts)}>" if parts else ""


def render_parameter(param: Parameter) -> str:
    prefix = "..." if param.rest else ""
    marker = "?" if param.optional and not param.rest else ""
    text = f"{prefix}{param.name}{marker}: {render_shape(param.type)}"
    if param.default_value is not None:
        text += f" = {param.default_value}"
    return text


def render_signature(sig: Signature, *, arrow: bool = False, name: str = "") -> str:
    """Render one signature as ``name<T>(a: A): R`` or ``<T>(a: A) => R``."""
    params = ", ".join(render_parameter(p) for p in sig.parameters)
    head = f"{name}{render_type_parameters(sig.type_parameters)}({params})"
    sep = " => " if arrow else ": "
    return f"{head}{sep}{render_shape(sig.return_type)}"


def _render_property(prop: PropertyShape) -> str:
    prefix = "readonly " if prop.readonly else ""
    marker = "?" if prop.optional else ""
    return f"{prefix}{prop.name}{marker}: {render_shape(prop.type)}"


def _render_index_signature(sig: IndexSignatureShape) -> str:
    prefix = "readonly " if sig.readonly else ""
    return (
        f"{prefix}[{sig.key_name}: {render_shape(sig.key_type)}]: {render_shape(sig.value_type)}"
    )


def render_shape(shape: Shape) -> str:
    """Canonical text of a shape.

    Union and intersection members render in canonical order, so two shapes
    that differ only in member order render identically.
    """
    if isinstance(shape, PrimitiveShape):
        return shape.name
    if isinstance(shape, LiteralShape):
        return shape.value
    if isinstance(shape, ReferenceShape):
        if not shape.type_arguments:
            return shape.name
        args = ", ".join(render_shape(a) for a in shape.type_arguments)
        return f"{shape.name}<{args}>"
    if isinstance(shape, UnionShape):
        texts = (_wrap(m, "function", "conditional") for m in shape.members)
        return " | ".join(canonical_members(texts))
    if isinstance(shape, IntersectionShape):
        texts = (_wrap(m, "union", "function", "conditional") for m in shape.members)
        return " & ".join(canonical_members(texts))
    if isinstance(shape, TupleShape):
        parts = []
        for el in shape.elements:
            type_text = render_shape(el.type)
            if el.label:
                marker = "?" if el.optional else ""
                text = f"{el.label}{marker}: {type_text}"
            else:
                text = f"{type_text}?" if el.optional else type_text
            if el.rest:
                text = f"...{text}"
            parts.append(text)
        prefix = "readonly " if shape.readonly else ""
        return f"{prefix}[{', '.join(parts)}]"
    if isinstance(shape, ArrayShape):
        prefix = "readonly " if shape.readonly else ""
        element = _wrap(shape.element, "union", "intersection", "function", "conditional")
        return f"{prefix}{element}[]"
    if isinstance(shape, ObjectShape):
        members = [_render_property(p) for p in shape.properties]
        members += [render_signature(s) for s in shape.call_signatures]
        members += [f"new {render_signature(s)}" for s in shape.construct_signatures]
        members += [_render_index_signature(s) for s in shape.index_signatures]
        if not members:
            return "{}"
        return "{ " + "; ".join(members) + " }"
    if isinstance(shape, FunctionShape):
        if len(shape.signatures) == 1:
            return render_signature(shape.signatures[0], arrow=True)
        return "{ " + "; ".join(render_signature(s) for s in shape.signatures) + " }"
    if isinstance(shape, MappedShape):
        readonly = f"{shape.readonly_modifier} " if shape.readonly_modifier else ""
        alias = f" as {render_shape(shape.name_type)}" if shape.name_type is not None else ""
        optional = shape.optional_modifier or ""
        return (
            f"{{ {readonly}[{shape.type_parameter} in {render_shape(shape.constraint)}{alias}]"
            f"{optional}: {render_shape(shape.template)} }}"
        )
    if isinstance(shape, ConditionalShape):
        return (
            f"{_wrap(shape.check_type, 'conditional', 'function')} extends "
            f"{_wrap(shape.extends_type, 'conditional', 'function')} ? "
            f"{render_shape(shape.true_type)} : {render_shape(shape.false_type)}"
        )
    if isinstance(shape, TemplateLiteralShape):
        body = shape.head + "".join(
            "${" + render_shape(span.type) + "}" + span.literal for span in shape.spans
        )
        return f"`{body}`"
    raise TypeError(f"Unknown shape: {shape!r}")


# =============================================================================
# Nodes
# =============================================================================


@dataclass(frozen=True, slots=True)
class NodeMetadata:
    deprecated: bool = False
    deprecation_message: str | None = None
    default_value: str | None = None


@dataclass(frozen=True, slots=True)
class TypeInfo:
    """Canonical signature text plus the structured shape behind it."""

    signature: str
    shape: Shape | None = None
    type_parameters: tuple[TypeParameter, ...] = ()


@dataclass(frozen=True, slots=True)
class SymbolNode:
    """Exported Symbol Node: one symbol or member in the structural tree.

    ``children`` is keyed by member name; its order carries no meaning.
    """

    path: str
    name: str
    kind: str  # a SymbolKind or MemberKind
    modifiers: frozenset[str] = frozenset()
    type_info: TypeInfo | None = None
    children: Mapping[str, SymbolNode] = field(default_factory=_empty_mapping)
    metadata: NodeMetadata = NodeMetadata()
    extends: tuple[str, ...] = ()
    implements: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        if self.kind not in NODE_KINDS:
            raise ValueError(f"Unknown node kind '{self.kind}' for {self.path}")
        if not isinstance(self.modifiers, frozenset):
            object.__setattr__(self, "modifiers", frozenset(self.modifiers))
        if not isinstance(self.children, MappingProxyType):
            object.__setattr__(self, "children", MappingProxyType(dict(self.children)))

    @property
    def signature(self) -> str:
        return self.type_info.signature if self.type_info else ""

    @property
    def shape(self) -> Shape | None:
        return self.type_info.shape if self.type_info else None

    @property
    def type_parameters(self) -> tuple[TypeParameter, ...]:
        return self.type_info.type_parameters if self.type_info else ()

    @property
    def is_optional(self) -> bool:
        return "optional" in self.modifiers

    @property
    def is_readonly(self) -> bool:
        return "readonly" in self.modifiers or "const" in self.modifiers

    @property
    def is_deprecated(self) -> bool:
        return self.metadata.deprecated or "deprecated" in self.modifiers

    @property
    def visibility(self) -> str:
        for level in ("private", "protected"):
            if level in self.modifiers:
                return level
        return "public"


@dataclass(frozen=True, slots=True)
class ModuleSnapshot:
    """Structural snapshot of one module's public surface."""

    filename: str = ""
    nodes: Mapping[str, SymbolNode] = field(default_factory=_empty_mapping)
    exports: Mapping[str, SymbolNode] = field(default_factory=_empty_mapping)
    errors: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        for name in ("nodes", "exports"):
            value = getattr(self, name)
            if not isinstance(value, MappingProxyType):
                object.__setattr__(self, name, MappingProxyType(dict(value)))
        if not isinstance(self.errors, tuple):
            object.__setattr__(self, "errors", tuple(self.errors))

    @classmethod
    def empty(cls, filename: str = "") -> ModuleSnapshot:
        return cls(filename=filename)

    @classmethod
    def from_exports(
        cls,
        exports: Iterable[SymbolNode],
        *,
        filename: str = "",
        errors: Iterable[str] = (),
    ) -> ModuleSnapshot:
        """Build a snapshot whose flat ``nodes`` map is derived from the export trees.

        Raises:
            SnapshotError: If two nodes share a path.
        """
        from apidelta.core.errors import SnapshotError

        nodes: dict[str, SymbolNode] = {}
        export_map: dict[str, SymbolNode] = {}
        stack: list[SymbolNode] = []
        for node in exports:
            if node.name in export_map:
                raise SnapshotError.duplicate_path(node.path)
            export_map[node.name] = node
            stack.append(node)
        while stack:
            node = stack.pop()
            if node.path in nodes:
                raise SnapshotError.duplicate_path(node.path)
            nodes[node.path] = node
            stack.extend(node.children.values())
        return cls(filename=filename, nodes=nodes, exports=export_map, errors=tuple(errors))

    @property
    def is_empty(self) -> bool:
        return not self.exports
