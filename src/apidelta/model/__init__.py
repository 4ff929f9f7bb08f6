"""Type Signature Model: input contract and snapshot schema."""

from apidelta.model.schema import snapshot_from_dict, snapshot_to_dict
from apidelta.model.types import (
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
    canonical_members,
    render_shape,
)

__all__ = [
    "ArrayShape",
    "ConditionalShape",
    "FunctionShape",
    "IndexSignatureShape",
    "IntersectionShape",
    "LiteralShape",
    "MappedShape",
    "ModuleSnapshot",
    "NodeMetadata",
    "ObjectShape",
    "Parameter",
    "PrimitiveShape",
    "PropertyShape",
    "ReferenceShape",
    "Shape",
    "Signature",
    "SymbolNode",
    "TemplateLiteralShape",
    "TemplateSpan",
    "TupleElement",
    "TupleShape",
    "TypeInfo",
    "TypeParameter",
    "UnionShape",
    "canonical_members",
    "render_shape",
    "snapshot_from_dict",
    "snapshot_to_dict",
]
