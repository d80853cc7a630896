import io
import struct

import pytest

from d2odatamine.d2o.constants import (
    NULL_REFERENCE,
    TYPE_BOOLEAN,
    TYPE_I18N,
    TYPE_INT,
    TYPE_NUMBER,
    TYPE_STRING,
    TYPE_UINT,
    TYPE_VECTOR,
)


def s(text):
    raw = text.encode("utf-8")
    return struct.pack(">H", len(raw)) + raw


def i32(value):
    return struct.pack(">i", value)


def u32(value):
    return struct.pack(">I", value)


def f64(value):
    return struct.pack(">d", value)


def boolean(value):
    return b"\x01" if value else b"\x00"


def null_ref():
    return i32(NULL_REFERENCE)


def field(name, tag, *inner):
    """A field definition; `inner` holds the (name, tag) pairs following a vector tag."""
    data = s(name) + i32(tag)
    for inner_name, inner_tag in inner:
        data += s(inner_name) + i32(inner_tag)
    return data


class D2OBuilder:
    """Assembles D2O files for tests, records stored in insertion order."""

    def __init__(self):
        self.classes = []
        self.objects = []

    def add_class(self, class_id, name, fields, namespace="com.ankamagames.dofus.datacenter"):
        self.classes.append((class_id, namespace, name, fields))
        return self

    def add_object(self, object_id, class_id, payload):
        self.objects.append((object_id, class_id, payload))
        return self

    def build(self, wrapped=False, blob=b"i18n-blob", padding=b"", index_entries=None,
              index_size=None):
        records = b""
        entries = []
        for object_id, class_id, payload in self.objects:
            entries.append((object_id, 7 + len(records)))
            records += i32(class_id) + payload
        if index_entries is not None:
            entries = index_entries

        index = i32(len(entries) * 8 if index_size is None else index_size)
        for object_id, offset in entries:
            index += i32(object_id) + i32(offset)

        classes = i32(len(self.classes))
        for class_id, namespace, name, fields in self.classes:
            classes += i32(class_id) + s(namespace) + s(name) + i32(len(fields))
            classes += b"".join(fields)

        body = b"D2O" + i32(7 + len(records) + len(padding)) + records + padding + index + classes
        if wrapped:
            return s("AKSD") + struct.pack(">h", 1) + i32(len(blob)) + blob + body
        return body


def monster_builder():
    """Two classes, one referencing the other, with ids 5, 9 and 12."""
    builder = D2OBuilder()
    builder.add_class(1, "Monster", [
        field("id", TYPE_INT),
        field("nameId", TYPE_I18N),
        field("boss", TYPE_BOOLEAN),
        field("look", TYPE_STRING),
        field("speed", TYPE_NUMBER),
        field("color", TYPE_UINT),
        field("grades", TYPE_VECTOR, ("Vector.<MonsterGrade>", 2)),
        field("favoriteSubareaId", TYPE_INT),
    ])
    builder.add_class(2, "MonsterGrade", [
        field("grade", TYPE_INT),
        field("lifePoints", TYPE_INT),
    ], namespace="com.ankamagames.dofus.datacenter.monsters")

    builder.add_object(5, 1, (
        i32(5) + i32(1001) + boolean(False) + s("{1|1}") + f64(1.5) + u32(0xFFFFFFFF)
        + i32(1) + i32(12)
        + i32(-3)
    ))
    builder.add_object(9, 1, (
        i32(9) + i32(1002) + boolean(True) + s("{2}") + f64(-0.25) + u32(7)
        + i32(0)
        + i32(44)
    ))
    builder.add_object(12, 2, i32(3) + i32(250))
    return builder


@pytest.fixture
def monsters_bytes():
    return monster_builder().build()


@pytest.fixture
def monsters_stream(monsters_bytes):
    return io.BytesIO(monsters_bytes)
