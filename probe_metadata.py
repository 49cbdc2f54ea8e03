"""
In-memory model of a Parquet file's footer.

Everything here is built once by ``probe_footer`` and never mutated. Enum values
follow parquet.thrift so the numbers read off the wire map straight onto them.
"""

import enum
import struct
from dataclasses import dataclass, field
from typing import Optional


class PhysicalType(enum.IntEnum):
    BOOLEAN = 0
    INT32 = 1
    INT64 = 2
    INT96 = 3
    FLOAT = 4
    DOUBLE = 5
    BYTE_ARRAY = 6
    FIXED_LEN_BYTE_ARRAY = 7


class ConvertedType(enum.IntEnum):
    UTF8 = 0
    MAP = 1
    MAP_KEY_VALUE = 2
    LIST = 3
    ENUM = 4
    DECIMAL = 5
    DATE = 6
    TIME_MILLIS = 7
    TIME_MICROS = 8
    TIMESTAMP_MILLIS = 9
    TIMESTAMP_MICROS = 10
    UINT_8 = 11
    UINT_16 = 12
    UINT_32 = 13
    UINT_64 = 14
    INT_8 = 15
    INT_16 = 16
    INT_32 = 17
    INT_64 = 18
    JSON = 19
    BSON = 20
    INTERVAL = 21


class FieldRepetitionType(enum.IntEnum):
    REQUIRED = 0
    OPTIONAL = 1
    REPEATED = 2


class Encoding(enum.IntEnum):
    PLAIN = 0
    PLAIN_DICTIONARY = 2
    RLE = 3
    BIT_PACKED = 4
    DELTA_BINARY_PACKED = 5
    DELTA_LENGTH_BYTE_ARRAY = 6
    DELTA_BYTE_ARRAY = 7
    RLE_DICTIONARY = 8
    BYTE_STREAM_SPLIT = 9


class CompressionCodec(enum.IntEnum):
    UNCOMPRESSED = 0
    SNAPPY = 1
    GZIP = 2
    LZO = 3
    BROTLI = 4
    LZ4 = 5
    ZSTD = 6
    LZ4_RAW = 7


class PageType(enum.IntEnum):
    DATA_PAGE = 0
    INDEX_PAGE = 1
    DICTIONARY_PAGE = 2
    DATA_PAGE_V2 = 3


# Member names of the LogicalType union, keyed by field id.
LOGICAL_TYPE_NAMES = {
    1: "STRING",
    2: "MAP",
    3: "LIST",
    4: "ENUM",
    5: "DECIMAL",
    6: "DATE",
    7: "TIME",
    8: "TIMESTAMP",
    10: "INTEGER",
    11: "UNKNOWN",
    12: "JSON",
    13: "BSON",
    14: "UUID",
    15: "FLOAT16",
    16: "VARIANT",
    17: "GEOMETRY",
    18: "GEOGRAPHY",
}

DICTIONARY_ENCODINGS = (Encoding.RLE_DICTIONARY, Encoding.PLAIN_DICTIONARY)
LEVEL_ENCODINGS = (Encoding.RLE, Encoding.BIT_PACKED)


def primary_encoding(encodings):
    """Pick the encoding that best describes how a chunk's values are packed."""
    for encoding in encodings:
        if encoding in DICTIONARY_ENCODINGS:
            return encoding
    for encoding in encodings:
        if encoding not in LEVEL_ENCODINGS:
            return encoding
    return encodings[0]


class StatisticsStatus(enum.Enum):
    PRESENT = "present"
    ABSENT = "absent"
    UNREADABLE = "unreadable"


@dataclass(frozen=True)
class ColumnDescriptor:
    path: tuple
    physical_type: PhysicalType
    repetition: Optional[FieldRepetitionType] = None
    logical_type: Optional[str] = None
    type_length: Optional[int] = None

    @property
    def name(self) -> str:
        return ".".join(self.path)


@dataclass(frozen=True)
class Statistics:
    min_value: Optional[bytes] = None
    max_value: Optional[bytes] = None
    null_count: Optional[int] = None
    distinct_count: Optional[int] = None
    is_min_value_exact: Optional[bool] = None
    is_max_value_exact: Optional[bool] = None


@dataclass(frozen=True)
class PageEncodingStat:
    page_type: PageType
    encoding: Encoding
    count: int


@dataclass(frozen=True)
class ColumnChunkMetadata:
    encodings: tuple
    codec: CompressionCodec
    num_values: int
    compressed_size: int
    uncompressed_size: int
    data_page_offset: int
    path_in_schema: tuple = ()
    dictionary_page_offset: Optional[int] = None
    statistics: Optional[Statistics] = None
    statistics_status: StatisticsStatus = StatisticsStatus.ABSENT
    encoding_stats: tuple = ()

    @property
    def encoding(self) -> Encoding:
        return primary_encoding(self.encodings)

    @property
    def compression_ratio(self) -> Optional[float]:
        if not self.compressed_size:
            return None
        return self.uncompressed_size / self.compressed_size


@dataclass(frozen=True)
class RowGroupMetadata:
    row_count: int
    total_byte_size: int
    column_chunks: tuple
    total_compressed_size: Optional[int] = None
    file_offset: Optional[int] = None
    ordinal: Optional[int] = None


@dataclass(frozen=True)
class FileMetadata:
    version: int
    schema: tuple
    row_groups: tuple
    num_rows: int
    created_by: Optional[str] = None
    key_value_metadata: tuple = field(default=())
    footer_size: int = 0

    def as_dict(self):
        """JSON-friendly view, used by ``parquet-probe --json``."""
        return {
            "version": self.version,
            "num_rows": self.num_rows,
            "created_by": self.created_by,
            "footer_size": self.footer_size,
            "key_value_metadata": dict(self.key_value_metadata),
            "schema": [
                {
                    "name": column.name,
                    "physical_type": column.physical_type.name,
                    "logical_type": column.logical_type,
                    "repetition": column.repetition.name if column.repetition is not None else None,
                }
                for column in self.schema
            ],
            "row_groups": [
                {
                    "row_count": row_group.row_count,
                    "total_byte_size": row_group.total_byte_size,
                    "columns": [
                        _chunk_as_dict(column, chunk)
                        for column, chunk in zip(self.schema, row_group.column_chunks)
                    ],
                }
                for row_group in self.row_groups
            ],
        }


def _chunk_as_dict(column, chunk):
    stats = None
    if chunk.statistics is not None:
        stats = {
            "min": format_statistic(column, chunk.statistics.min_value),
            "max": format_statistic(column, chunk.statistics.max_value),
            "null_count": chunk.statistics.null_count,
            "distinct_count": chunk.statistics.distinct_count,
        }
    return {
        "name": column.name,
        "encoding": chunk.encoding.name,
        "encodings": [encoding.name for encoding in chunk.encodings],
        "codec": chunk.codec.name,
        "num_values": chunk.num_values,
        "compressed_size": chunk.compressed_size,
        "uncompressed_size": chunk.uncompressed_size,
        "statistics_status": chunk.statistics_status.value,
        "statistics": stats,
    }


_FIXED_WIDTH_FORMATS = {
    PhysicalType.INT32: "<i",
    PhysicalType.INT64: "<q",
    PhysicalType.FLOAT: "<f",
    PhysicalType.DOUBLE: "<d",
}


def format_statistic(column, raw):
    """Render a raw min/max statistic for display; falls back to hex."""
    if raw is None:
        return None
    fmt = _FIXED_WIDTH_FORMATS.get(column.physical_type)
    if fmt is not None and len(raw) == struct.calcsize(fmt):
        return str(struct.unpack(fmt, raw)[0])
    if column.physical_type == PhysicalType.BOOLEAN and len(raw) == 1:
        return str(bool(raw[0]))
    if column.physical_type == PhysicalType.BYTE_ARRAY:
        try:
            return raw.decode("utf-8")
        except UnicodeDecodeError:
            pass
    return raw.hex()
