"""
:py:mod:`ebts_wsq.ebts.records`: EBTS data model
=================================================

An EBTS transaction (:py:class:`Ebts`) is a collection of logical records
(:py:class:`LogicalRecord`). Each record has a record type and a set of
numbered fields (:py:class:`Field`). A field is a sequence of occurrences,
each of which is a sequence of subfields; subfields are byte strings.

For example, a type 2 record with the tagged field::

    2.019:Smith<US>John<RS>Smith<US>Johnny

contains a field 19 with two occurrences of two subfields each::

    >>> field = record.get_field(19)
    >>> field.occurrences
    [[b'Smith', b'John'], [b'Smith', b'Johnny']]
    >>> field.to_string(";", ",")
    'Smith,John;Smith,Johnny'

Records come in two shapes:

* *Generic* records (types 1, 2, 9, 10 and 13-17) consisting of ASCII tagged
  fields with any image payload held in field 999.
* *Binary header* records (types 3-8) consisting of a fixed sequence of
  binary integer fields (the 'layout') followed by the image payload. Header
  fields are held as decimal strings, the payload is the field after the
  last header field.

.. autoclass:: Field
    :members:

.. autoclass:: LogicalRecord
    :members:

.. autoclass:: Ebts
    :members:
"""

from ebts_wsq.exceptions import EbtsBuildError, MissingCntField, UnknownMnemonic

from ebts_wsq.ebts.constants import (
    RS,
    US,
    FGP_WIDTH,
    FGP_PADDING,
    IMAGE_FIELD,
    BINARY_HEADER_RECORD_TYPES,
    binary_layout,
)

from ebts_wsq.ebts.tags import (
    field_mnemonic_to_number,
    field_number_to_mnemonic,
    int_to_bytes,
)

__all__ = [
    "Field",
    "LogicalRecord",
    "Ebts",
]


def _to_bytes(value):
    if isinstance(value, str):
        return value.encode("utf-8")
    else:
        return bytes(value)


class Field(object):
    """
    A field value: a list of occurrences, each a list of subfield byte
    strings.

    Parameters
    ==========
    occurrences : [[bytes or str, ...], ...] or None
        String subfields are encoded as UTF-8. If None (or empty) the field
        holds a single empty subfield.
    """

    def __init__(self, occurrences=None):
        if not occurrences:
            occurrences = [[b""]]
        self.occurrences = [
            [_to_bytes(subfield) for subfield in occurrence] or [b""]
            for occurrence in occurrences
        ]

    @classmethod
    def from_string(cls, value):
        """A field with a single occurrence of a single subfield."""
        return cls([[value]])

    @classmethod
    def from_strings(cls, values):
        """A field with one single-subfield occurrence per string."""
        return cls([[value] for value in values])

    @classmethod
    def from_bytes(cls, data):
        """
        A field holding opaque binary data (e.g. an image) as a single
        subfield. Separator bytes within the data are not interpreted.
        """
        return cls([[bytes(data)]])

    @classmethod
    def parse(cls, data):
        """
        Parse a serialised field value, splitting occurrences on RS and
        subfields on US.
        """
        return cls(
            [
                occurrence.split(bytes([US]))
                for occurrence in bytes(data).split(bytes([RS]))
            ]
        )

    @property
    def data(self):
        """The serialised field value (with RS and US separators)."""
        return bytes([RS]).join(
            bytes([US]).join(occurrence) for occurrence in self.occurrences
        )

    def to_string(self, occurrence_separator="", subfield_separator=""):
        """
        Render the field as text (decoded as UTF-8) with the specified
        separators between occurrences and subfields.
        """
        return occurrence_separator.join(
            subfield_separator.join(
                subfield.decode("utf-8", errors="replace") for subfield in occurrence
            )
            for occurrence in self.occurrences
        )

    def __str__(self):
        return self.to_string()

    def __repr__(self):
        return "{}({!r})".format(type(self).__name__, self.occurrences)

    def __eq__(self, other):
        if not isinstance(other, Field):
            return NotImplemented
        return self.occurrences == other.occurrences


class LogicalRecord(object):
    """
    A single record of an EBTS transaction.

    Parameters
    ==========
    record_type : int
    layout : (int, ...) or None
        For binary header records, the width (in bytes) of each header
        field. If None, record types 3-8 are given their default layout (see
        :py:func:`~ebts_wsq.ebts.constants.binary_layout`) and all other types
        are generic records.

    Attributes
    ==========
    record_type : int
    layout : (int, ...) or None
        None for generic records.
    fields : {int: :py:class:`Field`, ...}
    """

    def __init__(self, record_type, layout=None):
        self.record_type = record_type
        if layout is None and record_type in BINARY_HEADER_RECORD_TYPES:
            layout = binary_layout(record_type)
        elif layout is not None and record_type not in BINARY_HEADER_RECORD_TYPES:
            raise ValueError(
                "Type-{} records do not have a binary header".format(record_type)
            )
        self.layout = tuple(layout) if layout is not None else None
        self.fields = {}

    @property
    def is_binary(self):
        """True for binary header records."""
        return self.layout is not None

    def _field_number(self, key):
        if isinstance(key, str):
            return field_mnemonic_to_number(self.record_type, key)
        else:
            return key

    def get_field(self, key):
        """
        Return a :py:class:`Field` given its number or mnemonic, or None if
        the record has no such field.
        """
        try:
            return self.fields.get(self._field_number(key))
        except UnknownMnemonic:
            return None

    def has_field(self, key):
        return self.get_field(key) is not None

    def set_field(self, key, field):
        """
        Set a field by number or mnemonic. A string value is converted using
        :py:meth:`Field.from_string`.
        """
        if isinstance(field, str):
            field = Field.from_string(field)
        self.fields[self._field_number(key)] = field

    def remove_field(self, key):
        """Remove a field if present, returning it (or None)."""
        try:
            return self.fields.pop(self._field_number(key), None)
        except UnknownMnemonic:
            return None

    def _int_field(self, number):
        field = self.fields.get(number)
        if field is None or len(field.occurrences) != 1:
            return -1
        try:
            return int(str(field))
        except ValueError:
            return -1

    @property
    def idc(self):
        """
        The Information Designation Character (field 2) as an integer, or -1
        if unset or this is a type 1 record.
        """
        if self.record_type == 1:
            return -1
        return self._int_field(2)

    @idc.setter
    def idc(self, idc):
        if self.record_type == 1:
            raise ValueError("Cannot set the IDC of a type-1 record")
        if self.layout is not None:
            # Binary header values are held in their parsed (unpadded) form
            self.fields[2] = Field.from_string(str(idc))
        else:
            self.fields[2] = Field.from_string("{:02d}".format(idc))

    @property
    def length(self):
        """The record length declared in field 1, or -1 if unset."""
        return self._int_field(1)

    @property
    def header_length(self):
        """The total size of the binary header (0 for generic records)."""
        return sum(self.layout) if self.layout is not None else 0

    @property
    def image_field(self):
        """
        The number of the field holding the image payload, or -1 if this
        record type cannot hold one.
        """
        if self.layout is not None:
            return len(self.layout) + 1
        elif self.record_type in (1, 2):
            return -1
        else:
            return IMAGE_FIELD

    @property
    def image_data(self):
        """The image payload (empty if absent)."""
        field = self.fields.get(self.image_field)
        if field is None:
            return b""
        return field.data

    def has_image_data(self):
        return len(self.image_data) > 0

    def set_image_data(self, data):
        """
        Set the image payload. For binary header records the length (field
        1) is also updated.
        """
        number = self.image_field
        if number == -1:
            raise ValueError(
                "Type-{} records cannot contain image data".format(self.record_type)
            )
        self.fields[number] = Field.from_bytes(data)
        if self.layout is not None:
            self.fields[1] = Field.from_string(
                str(self.header_length + len(self.image_data))
            )

    def header_bytes(self):
        """
        Serialise the binary header of a binary header record.

        Integer fields are written big-endian. The 6-byte finger position
        field holds one byte per occurrence (up to six) padded with 255.

        Raises
        ======
        :py:exc:`~ebts_wsq.exceptions.EbtsBuildError`
            If a header field is missing or its value does not fit.
        """
        if self.layout is None:
            raise EbtsBuildError("Not a binary header record", self.record_type)

        out = bytearray()
        for position, width in enumerate(self.layout, 1):
            field = self.fields.get(position)
            if field is None:
                raise EbtsBuildError(
                    "Invalid header found at header position:{}".format(position),
                    self.record_type,
                )
            try:
                if width == FGP_WIDTH:
                    values = [
                        int(occurrence[0])
                        for occurrence in field.occurrences
                    ][:FGP_WIDTH]
                    values += [FGP_PADDING] * (FGP_WIDTH - len(values))
                    out += bytes(values)
                else:
                    out += int_to_bytes(int(field.occurrences[0][0]), width)
            except ValueError:
                raise EbtsBuildError(
                    "Invalid value {!r} for header position:{}".format(
                        str(field), position
                    ),
                    self.record_type,
                )
        return bytes(out)

    def _compared_fields(self):
        # The length of a generic record depends on the tag padding used to
        # serialise it so it is not part of the record's content
        if self.layout is None:
            return {
                number: field for number, field in self.fields.items() if number != 1
            }
        return self.fields

    def __eq__(self, other):
        """
        Records are equal when their type and fields match. Field 1 (the
        record length) of generic records is ignored.
        """
        if not isinstance(other, LogicalRecord):
            return NotImplemented
        return (
            self.record_type == other.record_type
            and self._compared_fields() == other._compared_fields()
        )

    def __repr__(self):
        return "<{} type={} idc={} fields=[{}]>".format(
            type(self).__name__,
            self.record_type,
            self.idc,
            ", ".join(
                field_number_to_mnemonic(self.record_type, number) or str(number)
                for number in sorted(self.fields)
            ),
        )


class Ebts(object):
    """
    An EBTS transaction: an ordered collection of
    :py:class:`LogicalRecord`\\ s, grouped by record type. Records of the
    same type keep their insertion order.
    """

    def __init__(self):
        self._records = {}

    def add_record(self, record):
        self._records.setdefault(record.record_type, []).append(record)

    def remove_record(self, record):
        """
        Remove a record (compared by equality). Returns True if a record was
        removed.
        """
        records = self._records.get(record.record_type, [])
        if record in records:
            records.remove(record)
            return True
        return False

    def remove_records_by_type(self, record_type):
        self._records.pop(record_type, None)

    def clear(self):
        self._records.clear()

    def records_by_type(self, record_type):
        """A list of the records of a given type, in insertion order."""
        return list(self._records.get(record_type, []))

    @property
    def all_records(self):
        """Every record, sorted by record type."""
        return [
            record
            for record_type in sorted(self._records)
            for record in self._records[record_type]
        ]

    def contains_record(self, record_type):
        """True if the transaction holds at least one record of this type."""
        return len(self._records.get(record_type, [])) > 0

    def logical_record_counts(self):
        """
        Count the records of each type listed in the type 1 record's CNT
        field (including the type 1 record itself).

        Returns
        =======
        counts : {record_type: count, ...}

        Raises
        ======
        :py:exc:`~ebts_wsq.exceptions.MissingCntField`
        """
        type1_records = self.records_by_type(1)
        cnt = type1_records[0].get_field(3) if type1_records else None
        if cnt is None:
            raise MissingCntField()

        counts = {}
        for occurrence in cnt.occurrences:
            record_type = int(occurrence[0])
            counts[record_type] = counts.get(record_type, 0) + 1
        return counts

    def __eq__(self, other):
        if not isinstance(other, Ebts):
            return NotImplemented
        return self.all_records == other.all_records

    def __repr__(self):
        return "<{} records={!r}>".format(type(self).__name__, self.all_records)
