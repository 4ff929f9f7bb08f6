"""Builders for snapshots and nodes used across the test suite."""

from __future__ import annotations

from collections.abc import Iterable

from apidelta.model.types import (
    FunctionShape,
    LiteralShape,
    ModuleSnapshot,
    NodeMetadata,
    ObjectShape,
    Parameter,
    PrimitiveShape,
    PropertyShape,
    ReferenceShape,
    Shape,
    Signature,
    SymbolNode,
    TypeInfo,
    TypeParameter,
    UnionShape,
    render_shape,
    render_signature,
)

STRING = PrimitiveShape("string")
NUMBER = PrimitiveShape("number")
BOOLEAN = PrimitiveShape("boolean")
VOID = PrimitiveShape("void")
OBJECT = PrimitiveShape("object")


def lit(value: str) -> LiteralShape:
    return LiteralShape(value)


def ref(name: str, *args: Shape) -> ReferenceShape:
    return ReferenceShape(name, tuple(args))


def union(*members: Shape) -> UnionShape:
    return UnionShape(tuple(members))


def obj(*props: PropertyShape) -> ObjectShape:
    return ObjectShape(properties=tuple(props))


def pshape(name: str, type_: Shape, *, optional: bool = False, readonly: bool = False) -> PropertyShape:
    return PropertyShape(name, type_, optional=optional, readonly=readonly)


def param(
    name: str,
    type_: Shape = STRING,
    *,
    optional: bool = False,
    rest: bool = False,
    default: str | None = None,
) -> Parameter:
    return Parameter(name, type_, optional=optional, rest=rest, default_value=default)


def sig(
    *params: Parameter,
    returns: Shape = VOID,
    type_params: Iterable[TypeParameter] = (),
) -> Signature:
    return Signature(tuple(params), returns, tuple(type_params))


def _modifiers(
    extra: Iterable[str], *, optional: bool = False, readonly: bool = False
) -> frozenset[str]:
    mods = set(extra)
    if optional:
        mods.add("optional")
    if readonly:
        mods.add("readonly")
    return frozenset(mods)


def function(
    name: str,
    *signatures: Signature,
    modifiers: Iterable[str] = (),
    deprecated: bool = False,
    parent: str | None = None,
    kind: str = "function",
    optional: bool = False,
) -> SymbolNode:
    """Function (or, with ``kind="method"``, method) node; defaults to ``name(): void``."""
    sigs = signatures or (sig(),)
    text = "; ".join(render_signature(s, name=name) for s in sigs)
    return SymbolNode(
        path=f"{parent}.{name}" if parent else name,
        name=name,
        kind=kind,
        modifiers=_modifiers(modifiers, optional=optional),
        type_info=TypeInfo(f"function {text}" if kind == "function" else text, FunctionShape(sigs)),
        metadata=NodeMetadata(deprecated=deprecated),
    )


def method(parent: str, name: str, *signatures: Signature, **kwargs: object) -> SymbolNode:
    return function(name, *signatures, parent=parent, kind="method", **kwargs)  # type: ignore[arg-type]


def prop(
    parent: str,
    name: str,
    type_: Shape = STRING,
    *,
    optional: bool = False,
    readonly: bool = False,
    modifiers: Iterable[str] = (),
    deprecated: bool = False,
    default: str | None = None,
) -> SymbolNode:
    return SymbolNode(
        path=f"{parent}.{name}",
        name=name,
        kind="property",
        modifiers=_modifiers(modifiers, optional=optional, readonly=readonly),
        type_info=TypeInfo(render_shape(type_), type_),
        metadata=NodeMetadata(deprecated=deprecated, default_value=default),
    )


def _container(
    kind: str,
    name: str,
    members: Iterable[SymbolNode],
    *,
    modifiers: Iterable[str] = (),
    type_params: Iterable[TypeParameter] = (),
    extends: Iterable[str] = (),
    implements: Iterable[str] = (),
    deprecated: bool = False,
) -> SymbolNode:
    return SymbolNode(
        path=name,
        name=name,
        kind=kind,
        modifiers=frozenset(modifiers),
        type_info=TypeInfo(f"{kind} {name}", None, tuple(type_params)),
        children={m.name: m for m in members},
        metadata=NodeMetadata(deprecated=deprecated),
        extends=tuple(extends),
        implements=tuple(implements),
    )


def interface(name: str, *members: SymbolNode, **kwargs: object) -> SymbolNode:
    return _container("interface", name, members, **kwargs)  # type: ignore[arg-type]


def klass(name: str, *members: SymbolNode, **kwargs: object) -> SymbolNode:
    return _container("class", name, members, **kwargs)  # type: ignore[arg-type]


def namespace(name: str, *members: SymbolNode) -> SymbolNode:
    return _container("namespace", name, members)


def enum(name: str, **values: str) -> SymbolNode:
    members = [
        SymbolNode(path=f"{name}.{key}", name=key, kind="enum-member", type_info=TypeInfo(value))
        for key, value in values.items()
    ]
    return _container("enum", name, members)


def type_alias(
    name: str,
    shape: Shape | None,
    *,
    signature: str | None = None,
    type_params: Iterable[TypeParameter] = (),
    deprecated: bool = False,
) -> SymbolNode:
    text = signature if signature is not None else render_shape(shape)  # type: ignore[arg-type]
    return SymbolNode(
        path=name,
        name=name,
        kind="type",
        type_info=TypeInfo(text, shape, tuple(type_params)),
        metadata=NodeMetadata(deprecated=deprecated),
    )


def variable(name: str, shape: Shape, *, const: bool = False) -> SymbolNode:
    return SymbolNode(
        path=name,
        name=name,
        kind="variable",
        modifiers=frozenset({"const"} if const else set()),
        type_info=TypeInfo(render_shape(shape), shape),
    )


def snapshot(*exports: SymbolNode, filename: str = "api.d.ts", errors: Iterable[str] = ()) -> ModuleSnapshot:
    return ModuleSnapshot.from_exports(exports, filename=filename, errors=errors)
