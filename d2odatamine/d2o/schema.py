"""Class definitions and decode plans for D2O files.

Each field carries a type tag that is resolved once, at load time, into a
DecodePlan tree:

  ScalarPlan     one primitive read (int32, bool, string, double, uint32)
  VectorPlan     int32 count followed by that many `inner` values
  ObjectRefPlan  int32 object id, resolved through the index table on decode

Vector tags are followed in the schema by one extra (name, tag) pair giving
the element type, which may itself be a vector. Object references only record
the class id; the referenced class does not need to be defined yet, so classes
may refer to themselves or to each other in any order.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from types import MappingProxyType
from typing import Mapping, Union

from d2odatamine.d2o.constants import (
    TYPE_BOOLEAN,
    TYPE_I18N,
    TYPE_INT,
    TYPE_NUMBER,
    TYPE_STRING,
    TYPE_UINT,
    TYPE_VECTOR,
)
from d2odatamine.d2o.errors import InvalidSchemaError
from d2odatamine.d2o.reader import ByteReader

logger = logging.getLogger(__name__)

# Scalar kinds, named after the primitive read they perform
INT32 = "int32"
BOOL = "bool"
STRING = "string"
DOUBLE = "double"
UINT32 = "uint32"


@dataclass(frozen=True, slots=True)
class ScalarPlan:
    kind: str
    i18n: bool = False   # I18n ids are read as int32; flag kept for display

    def describe(self) -> str:
        if self.i18n:
            return "i18n"
        return {INT32: "int", BOOL: "bool", STRING: "string",
                DOUBLE: "number", UINT32: "uint"}[self.kind]


@dataclass(frozen=True, slots=True)
class VectorPlan:
    inner: DecodePlan
    inner_name: str = ""   # element type name from the schema, display only

    def describe(self) -> str:
        return f"Vector<{self.inner.describe()}>"


@dataclass(frozen=True, slots=True)
class ObjectRefPlan:
    class_id: int   # declared class; the stored record decides the actual one

    def describe(self) -> str:
        return f"Object<{self.class_id}>"


DecodePlan = Union[ScalarPlan, VectorPlan, ObjectRefPlan]

_SCALAR_PLANS: dict[int, ScalarPlan] = {
    TYPE_INT: ScalarPlan(INT32),
    TYPE_BOOLEAN: ScalarPlan(BOOL),
    TYPE_STRING: ScalarPlan(STRING),
    TYPE_NUMBER: ScalarPlan(DOUBLE),
    TYPE_I18N: ScalarPlan(INT32, i18n=True),
    TYPE_UINT: ScalarPlan(UINT32),
}


@dataclass(frozen=True, slots=True)
class FieldSchema:
    """A single field definition: name, raw type tag, resolved plan."""
    name: str
    type_tag: int
    plan: DecodePlan


@dataclass(frozen=True, slots=True)
class ClassSchema:
    """A class definition: namespace, name, and fields in decode order."""
    class_id: int
    namespace: str
    name: str
    fields: tuple[FieldSchema, ...] = ()

    @property
    def qualified_name(self) -> str:
        if self.namespace:
            return f"{self.namespace}.{self.name}"
        return self.name

    @property
    def field_names(self) -> list[str]:
        return [f.name for f in self.fields]


def resolve_type(reader: ByteReader, tag: int) -> DecodePlan:
    """Resolve a type tag into a plan, reading vector element types as needed.

    Raises InvalidSchemaError for zero or unknown negative tags.
    """
    scalar = _SCALAR_PLANS.get(tag)
    if scalar is not None:
        return scalar
    if tag == TYPE_VECTOR:
        inner_name = reader.read_string()
        inner_tag = reader.read_int32()
        return VectorPlan(resolve_type(reader, inner_tag), inner_name)
    if tag > 0:
        return ObjectRefPlan(tag)
    raise InvalidSchemaError(f"invalid data type {tag}")


def read_field(reader: ByteReader) -> FieldSchema:
    name = reader.read_string()
    tag = reader.read_int32()
    try:
        plan = resolve_type(reader, tag)
    except InvalidSchemaError as exc:
        raise InvalidSchemaError(f"field '{name}': {exc}") from None
    return FieldSchema(name=name, type_tag=tag, plan=plan)


def read_class(reader: ByteReader, class_id: int) -> ClassSchema:
    """Read one class definition (the id has already been consumed)."""
    namespace = reader.read_string()
    name = reader.read_string()
    field_count = reader.read_int32()
    fields = []
    for _ in range(field_count):
        try:
            fields.append(read_field(reader))
        except InvalidSchemaError as exc:
            raise InvalidSchemaError(f"class {class_id} ({name}): {exc}") from None
    return ClassSchema(class_id=class_id, namespace=namespace, name=name, fields=tuple(fields))


def load_class_schemas(reader: ByteReader) -> Mapping[int, ClassSchema]:
    """Read the class definition table at the current cursor position.

    Any invalid type tag aborts the whole table; no partial result is kept.
    """
    count = reader.read_int32()
    classes: dict[int, ClassSchema] = {}
    for _ in range(count):
        class_id = reader.read_int32()
        schema = read_class(reader, class_id)
        logger.debug("class %d: %s (%d fields)", class_id, schema.qualified_name, len(schema.fields))
        classes[class_id] = schema
    return MappingProxyType(classes)


def format_class(schema: ClassSchema) -> str:
    """Render a class definition as readable text."""
    lines = [f"[{schema.class_id}] {schema.qualified_name}"]
    for f in schema.fields:
        lines.append(f"    {f.name:<30} {f.plan.describe()}")
    return "\n".join(lines)
