"""D2O format constants, type tags, and magic numbers."""

# Container magic
D2O_MAGIC = b"D2O"
AKSD_MAGIC = "AKSD"

# "D2O" marker (3) + index table offset field (4)
RECORDS_START = 7

# Index table entry: id(4) + offset(4)
INDEX_ENTRY_SIZE = 8

# Field type tags
TYPE_INT = -1
TYPE_BOOLEAN = -2
TYPE_STRING = -3
TYPE_NUMBER = -4
TYPE_I18N = -5
TYPE_UINT = -6
TYPE_VECTOR = -99

# Object reference value meaning "no object" (0xAAAAAAAA as int32)
NULL_REFERENCE = -1431655766
