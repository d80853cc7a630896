"""Execute decode plans against a D2O byte stream."""
from __future__ import annotations

from typing import Any, Iterator, Mapping

from d2odatamine.d2o.constants import NULL_REFERENCE
from d2odatamine.d2o.errors import (
    CorruptRecordError,
    CyclicReferenceError,
    IdNotFoundError,
    SchemaNotFoundError,
)
from d2odatamine.d2o.reader import ByteReader
from d2odatamine.d2o.schema import (
    BOOL,
    DOUBLE,
    INT32,
    STRING,
    UINT32,
    ClassSchema,
    DecodePlan,
    ObjectRefPlan,
    ScalarPlan,
    VectorPlan,
)

_SCALAR_READS = {
    INT32: ByteReader.read_int32,
    BOOL: ByteReader.read_bool,
    STRING: ByteReader.read_string,
    DOUBLE: ByteReader.read_double,
    UINT32: ByteReader.read_uint32,
}


# Where a resolved reference is stored: (owning dict or list, key, object id)
PendingRef = tuple[Any, Any, int]


class ObjectDecoder:
    """Materializes records as dicts from a reader, index table and class table.

    A record is read in one pass with its object references left as None and
    queued. The queue is then resolved through the index table with an
    explicit stack, so long reference chains do not grow the Python stack and
    the scan cursor is only moved once the enclosing record is complete.
    """

    def __init__(self, reader: ByteReader, index: Mapping[int, int],
                 classes: Mapping[int, ClassSchema]):
        self.reader = reader
        self.index = index
        self.classes = classes

    def decode_all(self, start: int) -> list[dict[str, Any]]:
        """Scan len(index) contiguous records starting at `start`.

        Index offsets are not consulted; records are read back to back.
        """
        self.reader.goto(start)
        objects = []
        for _ in range(len(self.index)):
            obj, pending = self.read_record()
            if pending:
                with self.reader.preserve_position():
                    self.resolve(pending)
            objects.append(obj)
        return objects

    def decode_by_id(self, object_id: int) -> dict[str, Any]:
        """Seek to the record stored for `object_id` and decode it."""
        obj, pending = self._read_stored(object_id)
        self.resolve(pending, root_id=object_id)
        return obj

    def resolve(self, pending: list[PendingRef], root_id: int | None = None) -> None:
        """Fill queued references depth-first, following nested ones as they appear.

        `root_id` is the id of the record that queued `pending`, if known.
        Raises CyclicReferenceError when an id reappears on its own chain.
        """
        path: list[int] = [] if root_id is None else [root_id]
        on_path = set(path)
        stack: list[tuple[bool, Iterator[PendingRef]]] = [(False, iter(pending))]
        while stack:
            owns_path_entry, refs = stack[-1]
            ref = next(refs, None)
            if ref is None:
                stack.pop()
                if owns_path_entry:
                    on_path.discard(path.pop())
                continue
            container, key, object_id = ref
            if object_id in on_path:
                raise CyclicReferenceError(path + [object_id])
            obj, nested = self._read_stored(object_id)
            container[key] = obj
            path.append(object_id)
            on_path.add(object_id)
            stack.append((True, iter(nested)))

    def _read_stored(self, object_id: int) -> tuple[dict[str, Any], list[PendingRef]]:
        offset = self.index.get(object_id)
        if offset is None:
            raise IdNotFoundError(object_id)
        self.reader.goto(offset)
        return self.read_record(object_id)

    def read_record(self, object_id: int | None = None) -> tuple[dict[str, Any], list[PendingRef]]:
        """Read a class id at the cursor, then that class's fields in order.

        Returns the object and the references it queued.
        """
        class_id = self.reader.read_int32()
        schema = self.classes.get(class_id)
        if schema is None:
            raise SchemaNotFoundError(class_id, object_id)
        pending: list[PendingRef] = []
        obj: dict[str, Any] = {}
        for f in schema.fields:
            self._read_into(obj, f.name, f.plan, pending)
        return obj, pending

    def _read_into(self, container: Any, key: Any, plan: DecodePlan,
                   pending: list[PendingRef]) -> None:
        if isinstance(plan, ScalarPlan):
            container[key] = _SCALAR_READS[plan.kind](self.reader)
        elif isinstance(plan, VectorPlan):
            container[key] = self._read_vector(plan, pending)
        elif isinstance(plan, ObjectRefPlan):
            object_id = self.reader.read_int32()
            container[key] = None
            if object_id != NULL_REFERENCE:
                pending.append((container, key, object_id))
        else:
            raise TypeError(f"unknown decode plan {plan!r}")

    def _read_vector(self, plan: VectorPlan, pending: list[PendingRef]) -> list[Any]:
        count = self.reader.read_int32()
        if count < 0:
            raise CorruptRecordError(
                f"negative vector length {count} at offset {self.reader.position() - 4}"
            )
        values: list[Any] = [None] * count
        for i in range(count):
            self._read_into(values, i, plan.inner, pending)
        return values
