"""
Reads and writes the dBASE III attribute (.dbf) file of a shapefile.
Xbase-related code borrows heavily from ActiveState Python Cookbook Recipe
362715 by Raymond Hettinger, by way of pyshp.
"""

from __future__ import annotations

import io
import logging
import time
from collections.abc import Iterable, Iterator, Mapping, Sequence
from datetime import date
from struct import Struct, pack
from typing import Any, NamedTuple, Union, cast

from .constants import (
    DBF_ACTIVE,
    DBF_DELETED,
    DBF_EOF,
    DBF_HEADER_TERMINATOR,
    DBF_MAX_FIELD_NAME,
    DBF_MAX_FIELDS,
    DBF_VERSION,
    MISSING,
)
from .exceptions import FieldValueError, FormatError
from .types import FIELD_TYPE_ALIASES, FieldType, FieldTypeT, RecordValue

logger = logging.getLogger(__name__)

_HEADER = Struct("<xxxxLHH20x")
_FIELD_DESCRIPTOR = Struct("<11sc4xBB14x")


def field_name(name: Any) -> str:
    """The name a field gets in the dbf header: spaces replaced by
    underscores, cut to 10 characters."""
    return str(name).replace(" ", "_")[:DBF_MAX_FIELD_NAME]


class Field(NamedTuple):
    name: str
    field_type: FieldTypeT
    size: int
    decimal: int

    @classmethod
    def from_unchecked(
        cls,
        name: str,
        field_type: str | bytes | FieldTypeT = "C",
        size: int = 50,
        decimal: int = 0,
    ) -> Field:
        """Creates a Field from user input, fixing the sizes of date and
        logical fields and truncating names to 10 characters."""
        try:
            type_ = FIELD_TYPE_ALIASES[field_type]
        except (KeyError, TypeError):
            raise FieldValueError(
                f"field_type must be in {sorted(FieldType.__members__)}. Got: {field_type=}. "
            )

        if type_ is FieldType.D:
            size = 8
            decimal = 0
        elif type_ is FieldType.L:
            size = 1
            decimal = 0

        try:
            size, decimal = int(size), int(decimal)
        except (TypeError, ValueError):
            raise FieldValueError(
                f"Field size and decimal must be integers. Got: {size=}, {decimal=}"
            )
        if not 1 <= size <= 255:
            raise FieldValueError(f"Field {name!r} size must be 1 to 255. Got: {size}")
        if decimal < 0 or (decimal and decimal >= size):
            raise FieldValueError(
                f"Field {name!r} decimal must be smaller than its size. Got: {decimal}"
            )

        name = field_name(name)
        if not name:
            raise FieldValueError("Field name cannot be empty.")
        return cls(name=name, field_type=type_, size=size, decimal=decimal)

    def __repr__(self) -> str:
        return f'Field(name="{self.name}", field_type=FieldType.{self.field_type}, size={self.size}, decimal={self.decimal})'


FieldLike = Union[Field, Sequence[Any]]


def as_field(field: FieldLike) -> Field:
    """Accepts a Field, or a [name, type, size, decimal] list."""
    if isinstance(field, Field):
        return field
    if isinstance(field, (str, bytes)) or not isinstance(field, Sequence):
        raise FieldValueError(
            f"A field must be a Field or a [name, type, size, decimal] list. Got: {field!r}"
        )
    return Field.from_unchecked(*field)


class Record(Mapping[str, RecordValue]):
    """
    An immutable record of a dbf file: an ordered mapping of field names
    to values. Values can also be retrieved by position, or using the field
    name as an attribute. For example if the dbf contains a field ID at
    position 0, the ID can be retrieved with r[0], r['ID'] or r.ID.

    >>> r = Record({'ID': 0}, [7])
    >>> r[0], r['ID'], r.ID
    (7, 7, 7)
    """

    __slots__ = ("_field_positions", "_values", "_oid")

    def __init__(
        self,
        field_positions: Mapping[str, int],
        values: Iterable[RecordValue],
        oid: int | None = None,
    ):
        """
        :param field_positions: A dict mapping field names to field positions
        :param values: A sequence of values
        :param oid: The index of the record in its dbf file (optional)
        """
        values = tuple(values)
        if len(values) != len(field_positions):
            raise FieldValueError(
                f"Number of record values ({len(values)}) is different from "
                f"the number of fields ({len(field_positions)})"
            )
        object.__setattr__(self, "_field_positions", dict(field_positions))
        object.__setattr__(self, "_values", values)
        object.__setattr__(self, "_oid", -1 if oid is None else oid)

    @classmethod
    def from_dict(cls, values: Mapping[str, RecordValue], oid: int | None = None) -> Record:
        return cls({name: i for i, name in enumerate(values)}, values.values(), oid)

    def __getitem__(self, item: str | int) -> RecordValue:  # type: ignore[override]
        if isinstance(item, int):
            return self._values[item]
        try:
            return self._values[self._field_positions[item]]
        except KeyError:
            raise KeyError(f'"{item}" is not a field name')

    def __getattr__(self, item: str) -> RecordValue:
        try:
            return self._values[self._field_positions[item]]
        except KeyError:
            raise AttributeError(f"{item} is not a field name")

    def __setattr__(self, key: str, value: Any) -> None:
        raise AttributeError("Records are immutable")

    def __iter__(self) -> Iterator[str]:
        return iter(self._field_positions)

    def __len__(self) -> int:
        return len(self._values)

    def __eq__(self, other: object) -> bool:
        if isinstance(other, Record):
            return (
                list(self._field_positions) == list(other._field_positions)
                and self._values == other._values
            )
        return Mapping.__eq__(self, other)

    def __hash__(self) -> int:
        return hash((tuple(self._field_positions), self._values))

    def __reduce__(self) -> tuple[Any, ...]:
        return (Record, (self._field_positions, self._values, self._oid))

    @property
    def oid(self) -> int:
        """The index position of the record in the original dbf file"""
        return self._oid

    @property
    def field_names(self) -> list[str]:
        return list(self._field_positions)

    def as_list(self) -> list[RecordValue]:
        return list(self._values)

    def as_dict(self, date_strings: bool = False) -> dict[str, RecordValue]:
        """
        Returns this Record as a dictionary using the field names as keys
        :return: dict
        """
        dct = dict(zip(self._field_positions, self._values))
        if date_strings:
            for k, v in dct.items():
                if isinstance(v, date):
                    dct[k] = f"{v.year:04d}{v.month:02d}{v.day:02d}"
        return dct

    def __repr__(self) -> str:
        return f"Record #{self._oid}: {self.as_dict()}"

    def __dir__(self) -> list[str]:
        return list(dir(type(self))) + list(self._field_positions)


# Decoding


def _read_fields(
    data: bytes, header_length: int, encoding: str, encoding_errors: str
) -> list[Field]:
    fields: list[Field] = []
    pos = _HEADER.size
    while True:
        if pos >= header_length or pos >= len(data):
            raise FormatError(
                "Shapefile dbf header lacks expected terminator. (likely corrupt?)"
            )
        if data[pos : pos + 1] == DBF_HEADER_TERMINATOR:
            return fields
        if pos + _FIELD_DESCRIPTOR.size > header_length:
            raise FormatError(
                f"Field descriptor {len(fields)} runs past the declared "
                f"dbf header length of {header_length} bytes."
            )
        encoded_name, encoded_type, size, decimal = _FIELD_DESCRIPTOR.unpack(
            data[pos : pos + _FIELD_DESCRIPTOR.size]
        )
        encoded_name = encoded_name.split(b"\x00")[0]
        try:
            name = encoded_name.decode(encoding, encoding_errors).strip()
        except UnicodeDecodeError as e:
            raise FormatError(
                f"Field name {encoded_name!r} is not valid {encoding}: {e}"
            ) from e
        try:
            field_type = FIELD_TYPE_ALIASES[encoded_type]
        except KeyError:
            raise FormatError(f"Field {name!r} has unknown type {encoded_type!r}.")
        fields.append(Field(name, field_type, size, decimal))
        pos += _FIELD_DESCRIPTOR.size


def _decode_number(value: bytes, decimal: int) -> int | float | None:
    # number stored as a string, right justified, and padded with blanks
    value = value.split(b"\0")[0].strip()
    value = value.replace(b"*", b"")  # QGIS NULL is all '*' chars
    if not value:
        return None
    if decimal:
        try:
            return float(value)
        except ValueError:
            return None
    try:
        # first try to force directly to int.
        # forcing a large int to float and back to int
        # will lose information and result in wrong nr.
        return int(value)
    except ValueError:
        try:
            return int(float(value))
        except ValueError:
            return None


def _decode_date(value: bytes) -> date | str | None:
    # YYYYMMDD. dbf date fields have no official null value, but
    # all NULs, all spaces or all 0s (QGIS) are used.
    if not value.replace(b"\x00", b"").replace(b" ", b"").replace(b"0", b""):
        return None
    try:
        return date(int(value[:4]), int(value[4:6]), int(value[6:8]))
    except (TypeError, ValueError):
        # not a valid date, return the text so that no information is lost
        return value.decode("ascii", "replace").strip()


def _decode_logical(value: bytes) -> bool | None:
    if value in (b"T", b"t", b"Y", b"y", b"1"):
        return True
    if value in (b"F", b"f", b"N", b"n", b"0"):
        return False
    # '?', space (not yet set) and anything else are missing
    return None


def _decode_value(
    field: Field, value: bytes, encoding: str, encoding_errors: str
) -> RecordValue:
    typ = field.field_type
    if typ is FieldType.N or typ is FieldType.F:
        return _decode_number(value, field.decimal)
    if typ is FieldType.D:
        return _decode_date(value)
    if typ is FieldType.L:
        return _decode_logical(value)
    # Character and memo fields are space (or NUL) padded on the right
    try:
        return value.decode(encoding, encoding_errors).rstrip(" \x00")
    except UnicodeDecodeError as e:
        raise FormatError(
            f"Field {field.name!r} holds text that is not valid {encoding}: {e}"
        ) from e


def decode(
    data: bytes, encoding: str = "utf-8", encoding_errors: str = "strict"
) -> tuple[list[Field], list[Record]]:
    """Decodes the fields and the active records of a dbf file.
    Records flagged as deleted are skipped; the remaining records keep their
    position in the file as their oid."""
    if len(data) < _HEADER.size:
        raise FormatError(
            f"The dbf file is {len(data)} bytes long, too short for its header."
        )
    num_records, header_length, record_length = _HEADER.unpack(data[: _HEADER.size])
    fields = _read_fields(data, header_length, encoding, encoding_errors)
    names = [field.name for field in fields]
    if len(set(names)) != len(names):
        raise FormatError(f"The dbf file repeats field names: {names}")

    layout_length = 1 + sum(field.size for field in fields)
    if layout_length != record_length:
        raise FormatError(
            f"The dbf fields add up to {layout_length} bytes per record "
            f"(with the deletion flag) but the header declares {record_length}."
        )
    if header_length + num_records * record_length > len(data):
        raise FormatError(
            f"The dbf header declares {num_records} records of {record_length} bytes "
            f"but the file is only {len(data)} bytes long (truncated?)."
        )

    rec_struct = Struct("1s" + "".join(f"{field.size}s" for field in fields))
    field_positions = {field.name: i for i, field in enumerate(fields)}
    records: list[Record] = []
    for oid in range(num_records):
        start = header_length + oid * record_length
        flag, *values = rec_struct.unpack(data[start : start + record_length])
        if flag == DBF_DELETED:
            continue
        if flag != DBF_ACTIVE:
            raise FormatError(
                f"Record {oid} has deletion flag {flag!r}, "
                f"expected {DBF_ACTIVE!r} or {DBF_DELETED!r}. (likely corrupt?)"
            )
        records.append(
            Record(
                field_positions,
                (
                    _decode_value(field, value, encoding, encoding_errors)
                    for field, value in zip(fields, values)
                ),
                oid,
            )
        )

    if len(records) < num_records:
        logger.debug("Skipped %d deleted dbf records", num_records - len(records))
    return fields, records


def record_count(data: bytes) -> int:
    """The number of records declared in a dbf header, deleted ones included."""
    if len(data) < _HEADER.size:
        raise FormatError(
            f"The dbf file is {len(data)} bytes long, too short for its header."
        )
    return cast(int, _HEADER.unpack(data[: _HEADER.size])[0])


# Encoding


def _truncate(encoded: bytes, size: int, encoding: str) -> bytes:
    # Never cut a multi-byte character in half
    if len(encoded) <= size:
        return encoded
    return encoded[:size].decode(encoding, "ignore").encode(encoding)


def _encode_number(field: Field, value: Any) -> str:
    name, _typ, size, deci = field
    if value in MISSING:
        return "*" * size  # QGIS NULL
    try:
        if not deci:
            try:
                # avoid a round trip through float for large ints
                text = format(int(value), "d")
            except ValueError:
                text = format(int(float(value)), "d")
        else:
            text = format(float(value), f".{deci}f")
    except (TypeError, ValueError, OverflowError):
        raise FieldValueError(f"Field {name!r} needs a number. Got: {value!r}")
    if len(text) > size:
        raise FieldValueError(
            f"The value {value!r} ({text}) does not fit into the {size} characters "
            f"of field {name!r}."
        )
    return text.rjust(size)


def _encode_date(field: Field, value: Any) -> str:
    if isinstance(value, date):
        return f"{value.year:04d}{value.month:02d}{value.day:02d}"
    if (
        isinstance(value, list)
        and len(value) == 3
        and all(isinstance(v, int) and not isinstance(v, bool) for v in value)
    ):
        value = f"{value[0]:04d}{value[1]:02d}{value[2]:02d}"
    elif value in MISSING:
        return "0" * 8  # QGIS NULL for date type
    if isinstance(value, str) and len(value) == 8 and value.isdigit():
        return value
    raise FieldValueError(
        f"Field {field.name!r} needs a datetime.date, a [year, month, day] list, "
        f"a YYYYMMDD string or a missing value. Got: {value!r}"
    )


def _encode_logical(value: Any) -> str:
    # 1 byte - initialized to 0x20 (space) otherwise T or F.
    if value in MISSING:
        return " "
    if value in (True, 1):
        return "T"
    if value in (False, 0):
        return "F"
    return " "


def _encode_value(
    field: Field, value: Any, encoding: str, encoding_errors: str
) -> bytes:
    typ = field.field_type
    if typ is FieldType.N or typ is FieldType.F:
        return _encode_number(field, value).encode("ascii")
    if typ is FieldType.D:
        return _encode_date(field, value).encode("ascii")
    if typ is FieldType.L:
        return _encode_logical(value).encode("ascii")
    # Character, memo and anything else: forced to a string, encoded, then
    # truncated and padded to the field width in bytes
    text = "" if value is None else str(value)
    encoded = _truncate(text.encode(encoding, encoding_errors), field.size, encoding)
    return encoded.ljust(field.size)


def _record_values(
    fields: list[Field], record: Mapping[str, Any] | Sequence[Any], i: int
) -> list[Any]:
    if isinstance(record, Mapping):
        return [record.get(field.name) for field in fields]
    if isinstance(record, (str, bytes)):
        raise FieldValueError(f"Record {i} must be a sequence or a mapping of values.")
    values = list(record)
    if len(values) > len(fields):
        raise FieldValueError(
            f"Record {i} has {len(values)} values for {len(fields)} fields."
        )
    return values + [None] * (len(fields) - len(values))


def encode(
    fields: Iterable[FieldLike],
    records: Iterable[Mapping[str, Any] | Sequence[Any]],
    encoding: str = "utf-8",
    encoding_errors: str = "strict",
) -> bytes:
    """Encodes fields and records as the bytes of a dbf file. Records may be
    sequences of values in field order, or mappings of field names to values
    (fields missing from a mapping are left blank)."""
    fields = [as_field(field) for field in fields]
    if not fields:
        raise FieldValueError("Shapefile dbf file must contain at least one field.")
    if len(fields) > DBF_MAX_FIELDS:
        raise FieldValueError(
            f"Shapefile dbf file reached maximum number of fields: {DBF_MAX_FIELDS}."
        )
    names = [field.name for field in fields]
    duplicates = sorted({name for name in names if names.count(name) > 1})
    if duplicates:
        raise FieldValueError(f"Field names must be unique. Repeated: {duplicates}")

    body = io.BytesIO()
    num_records = 0
    for i, record in enumerate(records):
        body.write(DBF_ACTIVE)
        for field, value in zip(fields, _record_values(fields, record, i)):
            body.write(_encode_value(field, value, encoding, encoding_errors))
        num_records += 1

    header_length = len(fields) * _FIELD_DESCRIPTOR.size + _HEADER.size + 1
    record_length = 1 + sum(field.size for field in fields)
    if header_length >= 65535:
        raise FieldValueError("Shapefile dbf header length exceeds maximum length.")
    if record_length > 65535:
        raise FieldValueError("Shapefile dbf record length exceeds maximum length.")

    year, month, day = time.localtime()[:3]
    out = io.BytesIO()
    out.write(
        pack(
            "<BBBBLHH20x",
            DBF_VERSION,
            year - 1900,
            month,
            day,
            num_records,
            header_length,
            record_length,
        )
    )
    for field in fields:
        encoded_name = field.name.encode(encoding, encoding_errors)
        encoded_name = _truncate(encoded_name, DBF_MAX_FIELD_NAME, encoding).ljust(
            11, b"\x00"
        )
        out.write(
            _FIELD_DESCRIPTOR.pack(
                encoded_name,
                field.field_type.encode("ascii"),
                field.size,
                field.decimal,
            )
        )
    out.write(DBF_HEADER_TERMINATOR)
    out.write(body.getvalue())
    out.write(DBF_EOF)
    return out.getvalue()
