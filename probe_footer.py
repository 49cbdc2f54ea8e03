"""
Parquet footer decoder.

A Parquet file ends with::

    <FileMetaData (Thrift compact protocol)> <footer length: u32 LE> PAR1

Only that trailing region is read. The FileMetaData blob is walked field by field
with thrift's TCompactProtocol, so no generated Thrift classes are needed and
unknown fields from newer writers are skipped rather than rejected.
"""

import io
import logging
import os
import struct

from thrift.protocol import TCompactProtocol
from thrift.protocol.TProtocol import TProtocolException, TType
from thrift.transport.TTransport import TMemoryBuffer, TTransportException

from probe_metadata import (
    LOGICAL_TYPE_NAMES,
    ColumnChunkMetadata,
    ColumnDescriptor,
    CompressionCodec,
    ConvertedType,
    Encoding,
    FieldRepetitionType,
    FileMetadata,
    PageEncodingStat,
    PageType,
    PhysicalType,
    RowGroupMetadata,
    Statistics,
    StatisticsStatus,
)

logger = logging.getLogger(__name__)

MAGIC = b"PAR1"
ENCRYPTED_MAGIC = b"PARE"
TRAILER_SIZE = 8
SUPPORTED_VERSIONS = (1, 2)

TYPE_NAMES = {
    TType.BOOL: "bool",
    TType.BYTE: "i8",
    TType.I16: "i16",
    TType.I32: "i32",
    TType.I64: "i64",
    TType.DOUBLE: "double",
    TType.STRING: "binary",
    TType.STRUCT: "struct",
    TType.MAP: "map",
    TType.SET: "set",
    TType.LIST: "list",
}

# Errors the thrift runtime raises on malformed or short input.
_THRIFT_ERRORS = (
    TProtocolException,
    KeyError,
    struct.error,
    UnicodeDecodeError,
    RecursionError,
)


class DecodeError(ValueError):
    """The bytes do not form a Parquet footer this tool understands."""


class FooterProtocol(TCompactProtocol.TCompactProtocol):
    logger = logging.getLogger(__qualname__)

    def __init__(self, blob):
        # No string or container in the blob can be longer than the blob.
        super().__init__(
            TMemoryBuffer(blob),
            string_length_limit=len(blob),
            container_length_limit=len(blob),
        )
        self._blob = blob

    def get_pos(self):
        return self.trans._buffer.tell()

    def skip(self, ttype):
        # TProtocolBase.skip reads strings as UTF-8 text; statistics carry raw bytes.
        if ttype == TType.STRING:
            self.readBinary()
        elif ttype == TType.STRUCT:
            self.readStructBegin()
            while True:
                _, field_type, _ = self.readFieldBegin()
                if field_type == TType.STOP:
                    break
                self.skip(field_type)
                self.readFieldEnd()
            self.readStructEnd()
        elif ttype in (TType.LIST, TType.SET):
            element_type, size = self.readListBegin()
            for _ in range(size):
                self.skip(element_type)
            self.readListEnd()
        elif ttype == TType.MAP:
            key_type, value_type, size = self.readMapBegin()
            for _ in range(size):
                self.skip(key_type)
                self.skip(value_type)
            self.readMapEnd()
        else:
            super().skip(ttype)

    def read_raw_struct(self):
        """Skip over the next struct and return its encoded bytes."""
        start = self.get_pos()
        self.skip(TType.STRUCT)
        end = self.get_pos()
        self.logger.debug(f"captured raw struct [{start}, {end})")
        return self._blob[start:end]


def _text(raw):
    return raw.decode("utf-8", errors="replace")


def _enum(enum_class, value, what):
    try:
        return enum_class(value)
    except ValueError:
        raise DecodeError(f"unsupported {what} identifier: {value}") from None


def _require(values, keys, struct_name):
    missing = [key for key in keys if key not in values]
    if missing:
        raise DecodeError(f"malformed {struct_name}: missing required field(s) {', '.join(missing)}")


def _non_negative(values, keys, struct_name):
    for key in keys:
        if values.get(key, 0) < 0:
            raise DecodeError(f"malformed {struct_name}: negative {key} ({values[key]})")


class FooterDecoder:
    """Reads Parquet footer structs off a FooterProtocol.

    Each ``_read_*`` method describes its struct as a table of
    ``field id -> (key, expected thrift type, reader)``. Fields whose id is not
    in the table are skipped. A known field arriving with the wrong wire type
    is a malformed record.
    """

    def __init__(self, blob):
        self.blob = blob
        self.protocol = FooterProtocol(blob)

    def _read_struct(self, struct_name, fields):
        proto = self.protocol
        values = {}
        proto.readStructBegin()
        while True:
            _, field_type, field_id = proto.readFieldBegin()
            if field_type == TType.STOP:
                break
            spec = fields.get(field_id)
            if spec is None:
                proto.skip(field_type)
            else:
                key, expected, read = spec
                if expected is None:
                    values[key] = read(field_type)
                elif field_type != expected:
                    raise DecodeError(
                        f"malformed {struct_name}.{key}: expected {TYPE_NAMES[expected]}, "
                        f"got {TYPE_NAMES.get(field_type, field_type)}"
                    )
                else:
                    values[key] = read()
            proto.readFieldEnd()
        proto.readStructEnd()
        return values

    def _read_list(self, element_type, read_element, what):
        def read():
            actual_type, size = self.protocol.readListBegin()
            if size and actual_type != element_type:
                raise DecodeError(
                    f"malformed {what}: expected list<{TYPE_NAMES[element_type]}>, "
                    f"got list<{TYPE_NAMES.get(actual_type, actual_type)}>"
                )
            items = [read_element() for _ in range(size)]
            self.protocol.readListEnd()
            return items
        return read

    def _read_text(self):
        return _text(self.protocol.readBinary())

    def read_file_metadata(self):
        proto = self.protocol
        values = self._read_struct("FileMetaData", {
            1: ("version", TType.I32, proto.readI32),
            2: ("schema", TType.LIST, self._read_list(TType.STRUCT, self._read_schema_element, "schema")),
            3: ("num_rows", TType.I64, proto.readI64),
            4: ("row_groups", TType.LIST, self._read_list(TType.STRUCT, self._read_row_group, "row_groups")),
            5: ("key_value_metadata", TType.LIST, self._read_list(TType.STRUCT, self._read_key_value, "key_value_metadata")),
            6: ("created_by", TType.STRING, self._read_text),
        })
        _require(values, ("version", "schema", "num_rows", "row_groups"), "FileMetaData")
        _non_negative(values, ("num_rows",), "FileMetaData")
        if values["version"] not in SUPPORTED_VERSIONS:
            raise DecodeError(f"unsupported format version: {values['version']}")

        schema = build_columns(values["schema"])
        row_groups = tuple(
            build_row_group(index, row_group, schema)
            for index, row_group in enumerate(values["row_groups"])
        )

        return FileMetadata(
            version=values["version"],
            schema=tuple(schema),
            row_groups=row_groups,
            num_rows=values["num_rows"],
            created_by=values.get("created_by"),
            key_value_metadata=tuple(values.get("key_value_metadata", ())),
            footer_size=len(self.blob),
        )

    def _read_key_value(self):
        values = self._read_struct("KeyValue", {
            1: ("key", TType.STRING, self._read_text),
            2: ("value", TType.STRING, self._read_text),
        })
        _require(values, ("key",), "KeyValue")
        return values["key"], values.get("value")

    def _read_schema_element(self):
        proto = self.protocol
        values = self._read_struct("SchemaElement", {
            1: ("type", TType.I32, proto.readI32),
            2: ("type_length", TType.I32, proto.readI32),
            3: ("repetition_type", TType.I32, proto.readI32),
            4: ("name", TType.STRING, self._read_text),
            5: ("num_children", TType.I32, proto.readI32),
            6: ("converted_type", TType.I32, proto.readI32),
            10: ("logical_type", TType.STRUCT, self._read_logical_type),
        })
        _require(values, ("name",), "SchemaElement")
        return values

    def _read_logical_type(self):
        # LogicalType is a union: the id of its single set field names the type.
        names = []
        proto = self.protocol
        proto.readStructBegin()
        while True:
            _, field_type, field_id = proto.readFieldBegin()
            if field_type == TType.STOP:
                break
            names.append(LOGICAL_TYPE_NAMES.get(field_id, f"UNKNOWN_{field_id}"))
            proto.skip(field_type)
            proto.readFieldEnd()
        proto.readStructEnd()
        return names[0] if names else None

    def _read_row_group(self):
        proto = self.protocol
        values = self._read_struct("RowGroup", {
            1: ("columns", TType.LIST, self._read_list(TType.STRUCT, self._read_column_chunk, "RowGroup.columns")),
            2: ("total_byte_size", TType.I64, proto.readI64),
            3: ("num_rows", TType.I64, proto.readI64),
            5: ("file_offset", TType.I64, proto.readI64),
            6: ("total_compressed_size", TType.I64, proto.readI64),
            7: ("ordinal", TType.I16, proto.readI16),
        })
        _require(values, ("columns", "total_byte_size", "num_rows"), "RowGroup")
        _non_negative(values, ("total_byte_size", "num_rows"), "RowGroup")
        return values

    def _read_column_chunk(self):
        proto = self.protocol
        values = self._read_struct("ColumnChunk", {
            1: ("file_path", TType.STRING, self._read_text),
            2: ("file_offset", TType.I64, proto.readI64),
            3: ("meta_data", TType.STRUCT, self._read_column_metadata),
        })
        if "meta_data" not in values:
            raise DecodeError("malformed ColumnChunk: no inline column metadata")
        return values["meta_data"]

    def _read_column_metadata(self):
        proto = self.protocol
        values = self._read_struct("ColumnMetaData", {
            1: ("type", TType.I32, proto.readI32),
            2: ("encodings", TType.LIST, self._read_list(TType.I32, proto.readI32, "ColumnMetaData.encodings")),
            3: ("path_in_schema", TType.LIST, self._read_list(TType.STRING, self._read_text, "ColumnMetaData.path_in_schema")),
            4: ("codec", TType.I32, proto.readI32),
            5: ("num_values", TType.I64, proto.readI64),
            6: ("total_uncompressed_size", TType.I64, proto.readI64),
            7: ("total_compressed_size", TType.I64, proto.readI64),
            9: ("data_page_offset", TType.I64, proto.readI64),
            11: ("dictionary_page_offset", TType.I64, proto.readI64),
            12: ("statistics", None, self._read_statistics_field),
            13: ("encoding_stats", TType.LIST, self._read_list(TType.STRUCT, self._read_page_encoding_stats, "ColumnMetaData.encoding_stats")),
        })
        _require(
            values,
            ("type", "encodings", "path_in_schema", "codec", "num_values",
             "total_uncompressed_size", "total_compressed_size", "data_page_offset"),
            "ColumnMetaData",
        )
        if not values["encodings"]:
            raise DecodeError("malformed ColumnMetaData: empty encodings list")
        _non_negative(values, ("num_values", "total_uncompressed_size", "total_compressed_size"), "ColumnMetaData")

        statistics, status = values.get("statistics", (None, StatisticsStatus.ABSENT))
        return ColumnChunkMetadata(
            encodings=tuple(_enum(Encoding, value, "encoding") for value in values["encodings"]),
            codec=_enum(CompressionCodec, values["codec"], "compression codec"),
            num_values=values["num_values"],
            compressed_size=values["total_compressed_size"],
            uncompressed_size=values["total_uncompressed_size"],
            data_page_offset=values["data_page_offset"],
            path_in_schema=tuple(values["path_in_schema"]),
            dictionary_page_offset=values.get("dictionary_page_offset"),
            statistics=statistics,
            statistics_status=status,
            encoding_stats=tuple(values.get("encoding_stats", ())),
        ), _enum(PhysicalType, values["type"], "physical type")

    def _read_page_encoding_stats(self):
        proto = self.protocol
        values = self._read_struct("PageEncodingStats", {
            1: ("page_type", TType.I32, proto.readI32),
            2: ("encoding", TType.I32, proto.readI32),
            3: ("count", TType.I32, proto.readI32),
        })
        _require(values, ("page_type", "encoding", "count"), "PageEncodingStats")
        return PageEncodingStat(
            page_type=_enum(PageType, values["page_type"], "page type"),
            encoding=_enum(Encoding, values["encoding"], "encoding"),
            count=values["count"],
        )

    def _read_statistics_field(self, field_type):
        if field_type != TType.STRUCT:
            logger.debug(f"statistics stored as {TYPE_NAMES.get(field_type, field_type)}, ignoring")
            self.protocol.skip(field_type)
            return None, StatisticsStatus.UNREADABLE
        raw = self.protocol.read_raw_struct()
        try:
            return decode_statistics(raw), StatisticsStatus.PRESENT
        except (DecodeError, EOFError, TTransportException) + _THRIFT_ERRORS as e:
            logger.debug(f"unreadable statistics ({len(raw)} bytes): {e}")
            return None, StatisticsStatus.UNREADABLE

    def read_statistics(self):
        proto = self.protocol
        values = self._read_struct("Statistics", {
            1: ("max", TType.STRING, proto.readBinary),
            2: ("min", TType.STRING, proto.readBinary),
            3: ("null_count", TType.I64, proto.readI64),
            4: ("distinct_count", TType.I64, proto.readI64),
            5: ("max_value", TType.STRING, proto.readBinary),
            6: ("min_value", TType.STRING, proto.readBinary),
            7: ("is_max_value_exact", TType.BOOL, proto.readBool),
            8: ("is_min_value_exact", TType.BOOL, proto.readBool),
        })
        for key in ("null_count", "distinct_count"):
            if values.get(key, 0) < 0:
                raise DecodeError(f"malformed Statistics: negative {key}")
        return Statistics(
            min_value=values.get("min_value", values.get("min")),
            max_value=values.get("max_value", values.get("max")),
            null_count=values.get("null_count"),
            distinct_count=values.get("distinct_count"),
            is_min_value_exact=values.get("is_min_value_exact"),
            is_max_value_exact=values.get("is_max_value_exact"),
        )


def build_columns(elements):
    """Turn the flattened, depth-first schema list into its leaf columns."""
    if not elements:
        raise DecodeError("malformed schema: no root element")
    root = elements[0]
    # Open groups as [name, children left]; the root contributes no path part.
    groups = [[None, root.get("num_children") or 0]]
    columns = []
    for element in elements[1:]:
        while groups and groups[-1][1] == 0:
            groups.pop()
        if not groups:
            raise DecodeError(f"malformed schema: element {element['name']!r} is outside the root")
        groups[-1][1] -= 1
        if element.get("num_children") is not None:
            groups.append([element["name"], element["num_children"]])
            continue
        path = tuple(group[0] for group in groups[1:]) + (element["name"],)
        if "type" not in element:
            raise DecodeError(f"malformed schema: leaf column {'.'.join(path)!r} has no physical type")
        columns.append(_column_descriptor(element, path))
    if any(left > 0 for _, left in groups):
        raise DecodeError("malformed schema: fewer elements than declared children")
    return columns


def _column_descriptor(element, path):
    logical_type = element.get("logical_type")
    if logical_type is None and "converted_type" in element:
        try:
            logical_type = ConvertedType(element["converted_type"]).name
        except ValueError:
            logical_type = None
    repetition = None
    if "repetition_type" in element:
        repetition = _enum(FieldRepetitionType, element["repetition_type"], "repetition type")
    return ColumnDescriptor(
        path=path,
        physical_type=_enum(PhysicalType, element["type"], "physical type"),
        repetition=repetition,
        logical_type=logical_type,
        type_length=element.get("type_length"),
    )


def build_row_group(index, values, schema):
    """Check that chunk i describes schema column i and build the RowGroupMetadata.

    ``values["columns"]`` holds (ColumnChunkMetadata, PhysicalType) pairs as read.
    """
    chunks = values["columns"]
    if len(chunks) != len(schema):
        raise DecodeError(
            f"malformed row group {index}: {len(chunks)} column chunks for {len(schema)} schema columns"
        )
    for position, ((chunk, physical_type), column) in enumerate(zip(chunks, schema)):
        if chunk.path_in_schema and chunk.path_in_schema != column.path:
            raise DecodeError(
                f"malformed row group {index}: chunk {position} is for "
                f"{'.'.join(chunk.path_in_schema)!r}, expected {column.name!r}"
            )
        if physical_type != column.physical_type:
            raise DecodeError(
                f"malformed row group {index}: chunk {position} has type {physical_type.name}, "
                f"schema says {column.physical_type.name}"
            )
    return RowGroupMetadata(
        row_count=values["num_rows"],
        total_byte_size=values["total_byte_size"],
        column_chunks=tuple(chunk for chunk, _ in chunks),
        total_compressed_size=values.get("total_compressed_size"),
        file_offset=values.get("file_offset"),
        ordinal=values.get("ordinal"),
    )


def decode_statistics(raw):
    return FooterDecoder(raw).read_statistics()


def decode_footer(blob):
    """Decode a FileMetaData blob into FileMetadata, or raise DecodeError."""
    try:
        return FooterDecoder(blob).read_file_metadata()
    except DecodeError:
        raise
    except EOFError as e:
        raise DecodeError(f"truncated footer: Thrift record ends past the {len(blob)} byte footer") from e
    except TTransportException as e:
        # Length limit checks surface as transport errors too.
        if e.type == TTransportException.END_OF_FILE:
            raise DecodeError(f"truncated footer: Thrift record ends past the {len(blob)} byte footer") from e
        raise DecodeError(f"malformed footer: {e}") from e
    except _THRIFT_ERRORS as e:
        raise DecodeError(f"malformed footer: {type(e).__name__}: {e}") from e


def read_footer(source):
    """Locate and decode the footer of a seekable binary file object.

    Only the 4-byte header, the 8-byte trailer and the footer itself are read.
    """
    source.seek(0, os.SEEK_END)
    file_size = source.tell()
    if file_size < len(MAGIC) + TRAILER_SIZE:
        raise DecodeError(f"truncated file: {file_size} bytes is too small to hold a Parquet footer")

    source.seek(0)
    header = source.read(len(MAGIC))
    if header != MAGIC:
        raise DecodeError(f"bad magic at start of file: expected {MAGIC!r}, got {header!r}")

    source.seek(-TRAILER_SIZE, os.SEEK_END)
    trailer = source.read(TRAILER_SIZE)
    footer_magic = trailer[4:]
    if footer_magic == ENCRYPTED_MAGIC:
        raise DecodeError("encrypted footers are not supported")
    if footer_magic != MAGIC:
        raise DecodeError(f"bad magic at end of file: expected {MAGIC!r}, got {footer_magic!r}")

    footer_size = struct.unpack("<I", trailer[:4])[0]
    available = file_size - len(MAGIC) - TRAILER_SIZE
    if footer_size > available:
        raise DecodeError(
            f"truncated footer: length prefix says {footer_size} bytes, only {available} available"
        )

    footer_start = file_size - TRAILER_SIZE - footer_size
    source.seek(footer_start)
    blob = source.read(footer_size)
    if len(blob) != footer_size:
        raise DecodeError(f"truncated footer: read {len(blob)} of {footer_size} bytes")
    logger.debug(f"footer: {footer_size} bytes at offset {footer_start} of {file_size}")
    return decode_footer(blob)


def decode_file_bytes(data):
    """Decode the footer of a whole Parquet file held in memory."""
    return read_footer(io.BytesIO(data))
