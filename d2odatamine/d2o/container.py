"""D2O container: header detection, index table, and read entry points.

Layout (big-endian):
  [AKSD wrapper]   u16-prefixed "AKSD", int16 version, int32 skip, <skip bytes>
  "D2O"            3 bytes; the header offset is where this marker starts
  index offset     int32, relative to the header offset
  records          int32 class id + fields, back to back, in index order
  index table      int32 byte length, then (int32 id, int32 relative offset) pairs
  classes          int32 count, then class definitions (see schema.py)
"""
from __future__ import annotations

import logging
from pathlib import Path
from types import MappingProxyType
from typing import Any, BinaryIO, Iterator, Mapping

from d2odatamine.d2o.constants import AKSD_MAGIC, D2O_MAGIC, INDEX_ENTRY_SIZE, RECORDS_START
from d2odatamine.d2o.decoder import ObjectDecoder
from d2odatamine.d2o.errors import (
    IdNotFoundError,
    InvalidHeaderError,
    ReadError,
    RecordLayoutError,
    SchemaNotFoundError,
)
from d2odatamine.d2o.reader import ByteReader
from d2odatamine.d2o.schema import ClassSchema, load_class_schemas

logger = logging.getLogger(__name__)


def parse_header(reader: ByteReader) -> int:
    """Locate the D2O marker and return its offset (0 for plain files).

    Leaves the cursor just past the marker.
    """
    if reader.read_bytes(3) == D2O_MAGIC:
        logger.debug("plain D2O header")
        return 0

    reader.goto(0)
    try:
        magic = reader.read_string()
    except ReadError:
        raise InvalidHeaderError("invalid d2o header: neither D2O nor AKSD") from None
    if magic != AKSD_MAGIC:
        raise InvalidHeaderError("invalid d2o header: neither D2O nor AKSD")
    reader.read_int16()   # format version
    skip = reader.read_int32()
    reader.skip(skip)
    header_offset = reader.position()
    if reader.read_bytes(3) != D2O_MAGIC:
        raise InvalidHeaderError(f"invalid d2o header: no D2O marker at offset {header_offset}")
    logger.debug("AKSD-wrapped D2O header at offset %d", header_offset)
    return header_offset


def parse_index_table(reader: ByteReader, header_offset: int) -> dict[int, int]:
    """Read (id, relative offset) pairs at the cursor into id -> absolute offset."""
    size = reader.read_int32()
    if size % INDEX_ENTRY_SIZE:
        logger.warning("index table size %d is not a multiple of %d; reading a trailing entry",
                       size, INDEX_ENTRY_SIZE)
    index: dict[int, int] = {}
    for _ in range(0, size, INDEX_ENTRY_SIZE):
        object_id = reader.read_int32()
        offset = reader.read_int32()
        if object_id in index:
            logger.warning("duplicate object id %d in index table; keeping last offset", object_id)
        index[object_id] = offset + header_offset
    return index


class D2OFile:
    """An opened D2O file with its index and class tables loaded.

    The tables are read once here and never change. All reads share the
    stream cursor, so one instance must not be used from several threads at
    once; open one instance per concurrent reader instead.
    """

    def __init__(self, stream: BinaryIO, path: Path | None = None):
        self.path = path
        self.reader = ByteReader(stream)
        self._owns_stream = False

        self.header_offset = parse_header(self.reader)
        self.wrapped = self.header_offset != 0
        self.records_start = self.header_offset + RECORDS_START
        self.index_offset = self.header_offset + self.reader.read_int32()

        self.reader.goto(self.index_offset)
        self.index: Mapping[int, int] = MappingProxyType(
            parse_index_table(self.reader, self.header_offset)
        )
        self.classes: Mapping[int, ClassSchema] = load_class_schemas(self.reader)
        logger.debug(
            "loaded %d objects, %d classes (index at %d)",
            len(self.index), len(self.classes), self.index_offset,
        )

        self._decoder = ObjectDecoder(self.reader, self.index, self.classes)

    @classmethod
    def open(cls, path: Path | str) -> D2OFile:
        """Open a file from disk; close() will close it."""
        path = Path(path)
        f = open(path, "rb")
        try:
            d2o = cls(f, path=path)
        except BaseException:
            f.close()
            raise
        d2o._owns_stream = True
        return d2o

    def close(self):
        if self._owns_stream:
            self.reader.stream.close()

    def __enter__(self):
        return self

    def __exit__(self, *args):
        self.close()

    def __len__(self) -> int:
        return len(self.index)

    def __contains__(self, object_id: int) -> bool:
        return object_id in self.index

    def __iter__(self) -> Iterator[dict[str, Any]]:
        return iter(self.objects())

    def ids(self) -> list[int]:
        """Object ids in index table order."""
        return list(self.index)

    def objects(self, strict: bool = False) -> list[dict[str, Any]]:
        """Decode every record with a sequential scan of the record region.

        The scan reads exactly len(index) records and is expected to stop at
        the index table. When it does not, a warning is logged, or with
        strict=True a RecordLayoutError is raised.
        """
        objects = self._decoder.decode_all(self.records_start)
        end = self.reader.position()
        if end != self.index_offset:
            msg = (f"record scan of {len(objects)} objects ended at offset {end}, "
                   f"index table starts at {self.index_offset}")
            if strict:
                raise RecordLayoutError(msg)
            logger.warning(msg)
        return objects

    def get_object(self, object_id: int) -> dict[str, Any]:
        """Decode the record stored for `object_id`."""
        return self._decoder.decode_by_id(object_id)

    def class_of(self, object_id: int) -> ClassSchema:
        """Return the class of the record stored for `object_id`, without decoding it."""
        offset = self.index.get(object_id)
        if offset is None:
            raise IdNotFoundError(object_id)
        self.reader.goto(offset)
        class_id = self.reader.read_int32()
        schema = self.classes.get(class_id)
        if schema is None:
            raise SchemaNotFoundError(class_id, object_id)
        return schema


def main():
    """Quick test: open a D2O file and print its classes and first objects."""
    import json
    import sys
    import time
    from d2odatamine.d2o.schema import format_class

    if len(sys.argv) < 2:
        print("Usage: python -m d2odatamine.d2o.container <path/to/file.d2o>")
        sys.exit(1)

    path = Path(sys.argv[1])
    start = time.perf_counter()
    with D2OFile.open(path) as d2o:
        objects = d2o.objects()
        elapsed = time.perf_counter() - start

        print(f"Decoded {len(objects):,} objects in {elapsed:.2f}s\n")
        for schema in d2o.classes.values():
            print(format_class(schema))

        print("\nSample objects:")
        for obj in objects[:3]:
            print(json.dumps(obj, ensure_ascii=False)[:200])


if __name__ == "__main__":
    main()
