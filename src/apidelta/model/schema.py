"""JSON schema for snapshots produced by a model extractor.

The extractor's only obligation is conformance to this schema.  Decoding is
pure: nothing is resolved, and an unresolved name may only appear as a
``reference`` leaf.

Wire form uses camelCase keys (``typeInfo``, ``typeArguments``); snake_case
keys are accepted too.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator
from pydantic.alias_generators import to_camel

from apidelta.core.errors import SnapshotError
from apidelta.model.types import (
    MODIFIERS,
    NODE_KINDS,
    ArrayShape,
    ConditionalShape,
    FunctionShape,
    IndexSignatureShape,
    IntersectionShape,
    LiteralShape,
    MappedShape,
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
    TemplateLiteralShape,
    TemplateSpan,
    TupleElement,
    TupleShape,
    TypeInfo,
    TypeParameter,
    UnionShape,
)


class _Model(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="forbid",
        frozen=True,
    )


# =============================================================================
# Shapes
# =============================================================================


class PrimitiveModel(_Model):
    kind: Literal["primitive"]
    name: str

    def build(self) -> Shape:
        return PrimitiveShape(self.name)


class LiteralModel(_Model):
    kind: Literal["literal"]
    value: str

    def build(self) -> Shape:
        return LiteralShape(self.value)


class ReferenceModel(_Model):
    kind: Literal["reference"]
    name: str
    type_arguments: list[ShapeModel] = Field(default_factory=list)

    def build(self) -> Shape:
        return ReferenceShape(self.name, tuple(a.build() for a in self.type_arguments))


class UnionModel(_Model):
    kind: Literal["union"]
    members: list[ShapeModel] = Field(min_length=1)

    def build(self) -> Shape:
        return UnionShape(tuple(m.build() for m in self.members))


class IntersectionModel(_Model):
    kind: Literal["intersection"]
    members: list[ShapeModel] = Field(min_length=1)

    def build(self) -> Shape:
        return IntersectionShape(tuple(m.build() for m in self.members))


class TupleElementModel(_Model):
    type: ShapeModel
    optional: bool = False
    rest: bool = False
    label: str | None = None


class TupleModel(_Model):
    kind: Literal["tuple"]
    elements: list[TupleElementModel] = Field(default_factory=list)
    readonly: bool = False

    def build(self) -> Shape:
        return TupleShape(
            tuple(
                TupleElement(e.type.build(), optional=e.optional, rest=e.rest, label=e.label)
                for e in self.elements
            ),
            readonly=self.readonly,
        )


class ArrayModel(_Model):
    kind: Literal["array"]
    element: ShapeModel
    readonly: bool = False

    def build(self) -> Shape:
        return ArrayShape(self.element.build(), readonly=self.readonly)


class TypeParameterModel(_Model):
    name: str
    constraint: str | None = None
    default: str | None = None

    def build(self) -> TypeParameter:
        return TypeParameter(self.name, self.constraint, self.default)


class ParameterModel(_Model):
    name: str
    type: ShapeModel
    optional: bool = False
    rest: bool = False
    default_value: str | None = None

    def build(self) -> Parameter:
        return Parameter(
            self.name,
            self.type.build(),
            optional=self.optional,
            rest=self.rest,
            default_value=self.default_value,
        )


class SignatureModel(_Model):
    parameters: list[ParameterModel] = Field(default_factory=list)
    return_type: ShapeModel = Field(
        default_factory=lambda: PrimitiveModel(kind="primitive", name="void")
    )
    type_parameters: list[TypeParameterModel] = Field(default_factory=list)

    def build(self) -> Signature:
        return Signature(
            parameters=tuple(p.build() for p in self.parameters),
            return_type=self.return_type.build(),
            type_parameters=tuple(tp.build() for tp in self.type_parameters),
        )


class PropertyModel(_Model):
    name: str
    type: ShapeModel
    optional: bool = False
    readonly: bool = False


class IndexSignatureModel(_Model):
    key_name: str = "key"
    key_type: ShapeModel
    value_type: ShapeModel
    readonly: bool = False


class ObjectModel(_Model):
    kind: Literal["object"]
    properties: list[PropertyModel] = Field(default_factory=list)
    call_signatures: list[SignatureModel] = Field(default_factory=list)
    construct_signatures: list[SignatureModel] = Field(default_factory=list)
    index_signatures: list[IndexSignatureModel] = Field(default_factory=list)

    @field_validator("properties")
    @classmethod
    def validate_unique_properties(cls, v: list[PropertyModel]) -> list[PropertyModel]:
        names = [p.name for p in v]
        if len(names) != len(set(names)):
            raise ValueError("duplicate property names")
        return v

    def build(self) -> Shape:
        return ObjectShape(
            properties=tuple(
                PropertyShape(p.name, p.type.build(), optional=p.optional, readonly=p.readonly)
                for p in self.properties
            ),
            call_signatures=tuple(s.build() for s in self.call_signatures),
            construct_signatures=tuple(s.build() for s in self.construct_signatures),
            index_signatures=tuple(
                IndexSignatureShape(
                    s.key_name, s.key_type.build(), s.value_type.build(), readonly=s.readonly
                )
                for s in self.index_signatures
            ),
        )


class FunctionModel(_Model):
    kind: Literal["function"]
    signatures: list[SignatureModel] = Field(min_length=1)

    def build(self) -> Shape:
        return FunctionShape(tuple(s.build() for s in self.signatures))


class MappedModel(_Model):
    kind: Literal["mapped"]
    type_parameter: str
    constraint: ShapeModel
    template: ShapeModel
    name_type: ShapeModel | None = None
    optional_modifier: Literal["?", "+?", "-?"] | None = None
    readonly_modifier: Literal["readonly", "+readonly", "-readonly"] | None = None

    def build(self) -> Shape:
        return MappedShape(
            self.type_parameter,
            self.constraint.build(),
            self.template.build(),
            name_type=self.name_type.build() if self.name_type is not None else None,
            optional_modifier=self.optional_modifier,
            readonly_modifier=self.readonly_modifier,
        )


class ConditionalModel(_Model):
    kind: Literal["conditional"]
    check_type: ShapeModel
    extends_type: ShapeModel
    true_type: ShapeModel
    false_type: ShapeModel

    def build(self) -> Shape:
        return ConditionalShape(
            self.check_type.build(),
            self.extends_type.build(),
            self.true_type.build(),
            self.false_type.build(),
        )


class TemplateSpanModel(_Model):
    type: ShapeModel
    literal: str = ""


class TemplateLiteralModel(_Model):
    kind: Literal["template-literal"]
    head: str = ""
    spans: list[TemplateSpanModel] = Field(default_factory=list)

    def build(self) -> Shape:
        return TemplateLiteralShape(
            self.head, tuple(TemplateSpan(s.type.build(), s.literal) for s in self.spans)
        )


ShapeModel = Annotated[
    Union[
        PrimitiveModel,
        LiteralModel,
        ReferenceModel,
        UnionModel,
        IntersectionModel,
        TupleModel,
        ArrayModel,
        ObjectModel,
        FunctionModel,
        MappedModel,
        ConditionalModel,
        TemplateLiteralModel,
    ],
    Field(discriminator="kind"),
]


# =============================================================================
# Nodes
# =============================================================================


class MetadataModel(_Model):
    deprecated: bool = False
    deprecation_message: str | None = None
    default_value: str | None = None


class TypeInfoModel(_Model):
    signature: str
    shape: ShapeModel | None = None
    type_parameters: list[TypeParameterModel] = Field(default_factory=list)


class NodeModel(_Model):
    name: str
    kind: str
    path: str | None = None
    modifiers: list[str] = Field(default_factory=list)
    type_info: TypeInfoModel | None = None
    children: list[NodeModel] = Field(default_factory=list)
    metadata: MetadataModel = Field(default_factory=MetadataModel)
    extends: list[str] = Field(default_factory=list)
    implements: list[str] = Field(default_factory=list)

    @field_validator("kind")
    @classmethod
    def validate_kind(cls, v: str) -> str:
        if v not in NODE_KINDS:
            raise ValueError(f"unknown node kind '{v}'")
        return v

    @field_validator("modifiers")
    @classmethod
    def validate_modifiers(cls, v: list[str]) -> list[str]:
        unknown = sorted(set(v) - MODIFIERS)
        if unknown:
            raise ValueError(f"unknown modifiers: {', '.join(unknown)}")
        return v


class SnapshotModel(_Model):
    filename: str = ""
    exports: list[NodeModel] = Field(default_factory=list)
    errors: list[str] = Field(default_factory=list)


for _model in (
    ReferenceModel,
    UnionModel,
    IntersectionModel,
    TupleElementModel,
    TupleModel,
    ArrayModel,
    ParameterModel,
    SignatureModel,
    PropertyModel,
    IndexSignatureModel,
    ObjectModel,
    FunctionModel,
    MappedModel,
    ConditionalModel,
    TemplateSpanModel,
    TemplateLiteralModel,
    TypeInfoModel,
    NodeModel,
    SnapshotModel,
):
    _model.model_rebuild()


# =============================================================================
# Decoding
# =============================================================================


def _build_node(model: NodeModel, parent_path: str | None) -> SymbolNode:
    path = model.path or (f"{parent_path}.{model.name}" if parent_path else model.name)
    children: dict[str, SymbolNode] = {}
    for child in model.children:
        if child.name in children:
            raise SnapshotError.duplicate_path(f"{path}.{child.name}")
        children[child.name] = _build_node(child, path)
    type_info = None
    if model.type_info is not None:
        type_info = TypeInfo(
            signature=model.type_info.signature,
            shape=model.type_info.shape.build() if model.type_info.shape is not None else None,
            type_parameters=tuple(tp.build() for tp in model.type_info.type_parameters),
        )
    return SymbolNode(
        path=path,
        name=model.name,
        kind=model.kind,
        modifiers=frozenset(model.modifiers),
        type_info=type_info,
        children=children,
        metadata=NodeMetadata(
            deprecated=model.metadata.deprecated,
            deprecation_message=model.metadata.deprecation_message,
            default_value=model.metadata.default_value,
        ),
        extends=tuple(model.extends),
        implements=tuple(model.implements),
    )


def snapshot_from_dict(data: Mapping[str, Any]) -> ModuleSnapshot:
    """Decode a JSON-compatible mapping into a ModuleSnapshot.

    Raises:
        SnapshotError: If the data does not conform to the schema or two nodes
            share a path.
    """
    try:
        model = SnapshotModel.model_validate(data)
    except ValidationError as e:
        err = e.errors()[0]
        location = ".".join(str(loc) for loc in err["loc"]) or "<root>"
        raise SnapshotError.invalid(location, err["msg"]) from e

    exports = [_build_node(node, None) for node in model.exports]
    return ModuleSnapshot.from_exports(exports, filename=model.filename, errors=model.errors)


# =============================================================================
# Encoding
# =============================================================================


def _signature_to_dict(sig: Signature) -> dict[str, Any]:
    return {
        "parameters": [
            {
                "name": p.name,
                "type": shape_to_dict(p.type),
                "optional": p.optional,
                "rest": p.rest,
                "defaultValue": p.default_value,
            }
            for p in sig.parameters
        ],
        "returnType": shape_to_dict(sig.return_type),
        "typeParameters": [_type_parameter_to_dict(tp) for tp in sig.type_parameters],
    }


def _type_parameter_to_dict(tp: TypeParameter) -> dict[str, Any]:
    return {"name": tp.name, "constraint": tp.constraint, "default": tp.default}


def shape_to_dict(shape: Shape) -> dict[str, Any]:
    """Encode a shape in the wire form accepted by ``snapshot_from_dict``."""
    d: dict[str, Any] = {"kind": shape.kind}
    if isinstance(shape, PrimitiveShape):
        d["name"] = shape.name
    elif isinstance(shape, LiteralShape):
        d["value"] = shape.value
    elif isinstance(shape, ReferenceShape):
        d["name"] = shape.name
        d["typeArguments"] = [shape_to_dict(a) for a in shape.type_arguments]
    elif isinstance(shape, (UnionShape, IntersectionShape)):
        d["members"] = [shape_to_dict(m) for m in shape.members]
    elif isinstance(shape, TupleShape):
        d["elements"] = [
            {
                "type": shape_to_dict(e.type),
                "optional": e.optional,
                "rest": e.rest,
                "label": e.label,
            }
            for e in shape.elements
        ]
        d["readonly"] = shape.readonly
    elif isinstance(shape, ArrayShape):
        d["element"] = shape_to_dict(shape.element)
        d["readonly"] = shape.readonly
    elif isinstance(shape, ObjectShape):
        d["properties"] = [
            {
                "name": p.name,
                "type": shape_to_dict(p.type),
                "optional": p.optional,
                "readonly": p.readonly,
            }
            for p in shape.properties
        ]
        d["callSignatures"] = [_signature_to_dict(s) for s in shape.call_signatures]
        d["constructSignatures"] = [_signature_to_dict(s) for s in shape.construct_signatures]
        d["indexSignatures"] = [
            {
                "keyName": s.key_name,
                "keyType": shape_to_dict(s.key_type),
                "valueType": shape_to_dict(s.value_type),
                "readonly": s.readonly,
            }
            for s in shape.index_signatures
        ]
    elif isinstance(shape, FunctionShape):
        d["signatures"] = [_signature_to_dict(s) for s in shape.signatures]
    elif isinstance(shape, MappedShape):
        d["typeParameter"] = shape.type_parameter
        d["constraint"] = shape_to_dict(shape.constraint)
        d["template"] = shape_to_dict(shape.template)
        d["nameType"] = shape_to_dict(shape.name_type) if shape.name_type is not None else None
        d["optionalModifier"] = shape.optional_modifier
        d["readonlyModifier"] = shape.readonly_modifier
    elif isinstance(shape, ConditionalShape):
        d["checkType"] = shape_to_dict(shape.check_type)
        d["extendsType"] = shape_to_dict(shape.extends_type)
        d["trueType"] = shape_to_dict(shape.true_type)
        d["falseType"] = shape_to_dict(shape.false_type)
    elif isinstance(shape, TemplateLiteralShape):
        d["head"] = shape.head
        d["spans"] = [{"type": shape_to_dict(s.type), "literal": s.literal} for s in shape.spans]
    return d


def _node_to_dict(node: SymbolNode) -> dict[str, Any]:
    d: dict[str, Any] = {
        "name": node.name,
        "kind": node.kind,
        "path": node.path,
        "modifiers": sorted(node.modifiers),
        "children": [_node_to_dict(c) for _, c in sorted(node.children.items())],
        "metadata": {
            "deprecated": node.metadata.deprecated,
            "deprecationMessage": node.metadata.deprecation_message,
            "defaultValue": node.metadata.default_value,
        },
        "extends": list(node.extends),
        "implements": list(node.implements),
    }
    if node.type_info is not None:
        d["typeInfo"] = {
            "signature": node.type_info.signature,
            "shape": shape_to_dict(node.type_info.shape) if node.type_info.shape else None,
            "typeParameters": [_type_parameter_to_dict(tp) for tp in node.type_info.type_parameters],
        }
    return d


def snapshot_to_dict(snapshot: ModuleSnapshot) -> dict[str, Any]:
    """Encode a snapshot; ``snapshot_from_dict`` accepts the result unchanged."""
    return {
        "filename": snapshot.filename,
        "exports": [_node_to_dict(n) for _, n in sorted(snapshot.exports.items())],
        "errors": list(snapshot.errors),
    }
