# Core subpackage: shapes, metadata markers and the per-weave type registry.
from .shapes import (
    Shape, ScalarShape, EnumShape, FieldShape, ObjectShape, ArrayShape,
    UnionShape, DiscriminatedUnionShape, NullableShape, OptionalShape,
)
from .meta import SilkMeta, ObjectConfig, UnionConfig, meta, object_type, union_type
from .weaver_context import WeaverContext
from .derive import TypeDeriver

__all__ = [
    'Shape', 'ScalarShape', 'EnumShape', 'FieldShape', 'ObjectShape', 'ArrayShape',
    'UnionShape', 'DiscriminatedUnionShape', 'NullableShape', 'OptionalShape',
    'SilkMeta', 'ObjectConfig', 'UnionConfig', 'meta', 'object_type', 'union_type',
    'WeaverContext', 'TypeDeriver',
]
