"""Exceptions raised while opening and decoding D2O files."""
from __future__ import annotations


class D2OError(ValueError):
    """Base class for every D2O format error."""


class InvalidHeaderError(D2OError):
    """Neither a plain D2O header nor an AKSD-wrapped one was found."""


class InvalidSchemaError(D2OError):
    """A class definition uses a type tag that cannot be resolved."""


class ReadError(D2OError, EOFError):
    """The stream ended before a value could be read."""


class CorruptRecordError(ReadError):
    """A record holds a structurally impossible value (e.g. a negative count)."""


class IdNotFoundError(D2OError, KeyError):
    """An object id is not present in the index table."""

    def __init__(self, object_id: int):
        self.object_id = object_id
        super().__init__(f"object {object_id} not found in index table")

    def __str__(self) -> str:
        return self.args[0]


class SchemaNotFoundError(D2OError):
    """A record refers to a class id with no class definition."""

    def __init__(self, class_id: int, object_id: int | None = None):
        self.class_id = class_id
        self.object_id = object_id
        where = f" (object {object_id})" if object_id is not None else ""
        super().__init__(f"class definition {class_id} not found{where}")


class CyclicReferenceError(D2OError):
    """An object reference leads back to an object still being decoded."""

    def __init__(self, chain: list[int]):
        self.chain = chain
        path = " -> ".join(str(i) for i in chain)
        super().__init__(f"cyclic object reference: {path}")


class RecordLayoutError(D2OError):
    """A full scan did not end where the index table begins."""
