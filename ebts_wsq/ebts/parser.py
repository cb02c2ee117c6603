"""
:py:mod:`ebts_wsq.ebts.parser`: EBTS transaction parser
========================================================

.. autofunction:: ebts_parse

Parsing is driven by the type 1 record's CNT field (1.003), whose first
occurrence is ``1<US>N`` and whose remaining occurrences list the type and
IDC of every following record, in order. Records are parsed one after
another, each starting where the last ended:

* Generic records are read as a series of ``R.NNN:value`` fields separated by
  GS and terminated by FS. Once the length field (``R.001``) has been read
  it bounds the search for later separators. Field 999 of an image record
  holds raw image data which runs up to the record's final FS.
* Binary header records are read as a fixed sequence of big-endian integer
  header fields followed by image data filling the rest of the declared
  length.
* Type 7 records are read according to the chosen
  :py:class:`~ebts_wsq.ebts.constants.Type7Handling`. In the
  ``TREAT_AS_TYPE4`` mode, when the payload does not start with a recognised
  image signature, the image named by the compression algorithm (CGA) field
  is searched for within it (some producers wrap images in other
  structures).
"""

import logging

from ebts_wsq.exceptions import (
    EmptyRecord,
    InvalidField,
    MissingCntField,
    TruncatedRecord,
    UnsupportedRecordType,
)

from ebts_wsq.ebts.constants import (
    FS,
    GS,
    IMAGE_FIELD,
    FGP_WIDTH,
    FGP_PADDING,
    GENERIC_RECORD_TYPES,
    BINARY_HEADER_RECORD_TYPES,
    ParseType,
    Type7Handling,
    binary_layout,
)

from ebts_wsq.ebts.tags import bytes_to_int, tag_to_field_number

from ebts_wsq.ebts.images import detect_image_format, find_image_start

from ebts_wsq.ebts.records import Field, LogicalRecord, Ebts

__all__ = [
    "ebts_parse",
]

_MIN_TAG_LENGTH = 3
_MAX_TAG_LENGTH = 10

_GS = bytes([GS])
_FS = bytes([FS])


def ebts_parse(
    data,
    parse_type=ParseType.FULL,
    type7_handling=Type7Handling.TREAT_AS_TYPE4,
    strict=False,
):
    """
    Parse an EBTS transaction.

    Parameters
    ==========
    data : bytes
    parse_type : :py:class:`~ebts_wsq.ebts.constants.ParseType`
        With ``DESCRIPTIVE_ONLY``, parsing stops after the type 2 record so
        'data' need only contain the type 1 and type 2 records.
    type7_handling : :py:class:`~ebts_wsq.ebts.constants.Type7Handling`
    strict : bool
        If True, a type 7 record whose declared length disagrees with the
        data available is an error rather than a warning.

    Returns
    =======
    ebts : :py:class:`~ebts_wsq.ebts.records.Ebts`

    Raises
    ======
    :py:exc:`~ebts_wsq.exceptions.EbtsParseError`
        Or one of its subclasses.
    """
    data = bytes(data)
    ebts = Ebts()

    logging.debug("Parsing record type 1")
    type1, offset = _parse_generic(data, 0, 1)
    ebts.add_record(type1)

    cnt = type1.get_field(3)
    if cnt is None:
        raise MissingCntField()

    for occurrence in cnt.occurrences:
        try:
            record_type = int(occurrence[0])
        except ValueError:
            raise InvalidField(
                "Invalid record type {!r} in CNT field".format(occurrence[0]), 1, 3
            )
        if record_type == 1:
            continue

        logging.debug("Parsing record type %d", record_type)
        if record_type in GENERIC_RECORD_TYPES:
            record, consumed = _parse_generic(data, offset, record_type)
        elif record_type == 7:
            record, consumed = _parse_type7(data, offset, type7_handling, strict)
        elif record_type in BINARY_HEADER_RECORD_TYPES:
            record, consumed = _parse_binary(
                data, offset, record_type, binary_layout(record_type)
            )
        else:
            raise UnsupportedRecordType(record_type)

        ebts.add_record(record)
        offset += consumed

        if parse_type == ParseType.DESCRIPTIVE_ONLY and record_type == 2:
            break

    return ebts


def _check_length(record, data, offset):
    """
    Check a record's declared length is positive and within the data,
    returning it.
    """
    length = record.length
    if length <= 0:
        raise EmptyRecord(
            "Error parsing record: empty record?", record.record_type, 1, record.idc
        )
    if offset + length > len(data):
        raise TruncatedRecord(
            "Record length {} exceeds the {} bytes remaining".format(
                length, len(data) - offset
            ),
            record.record_type,
            1,
            record.idc,
        )
    return length


def _check_remaining(data, offset, size, record_type):
    if offset >= len(data):
        raise TruncatedRecord("No data remaining for record", record_type)
    if offset + size > len(data):
        raise TruncatedRecord(
            "Record header extends beyond the end of the data", record_type
        )


def _parse_generic(data, offset, record_type):
    """
    Parse a tagged-field record starting at 'offset'. Returns the record and
    its length in bytes.
    """
    _check_remaining(data, offset, 0, record_type)

    record = LogicalRecord(record_type)
    pos = offset
    end_of_record = False
    while pos < len(data) and not end_of_record:
        colon = data.find(b":", pos, pos + _MAX_TAG_LENGTH + 1)
        if colon - pos < _MIN_TAG_LENGTH:
            raise InvalidField(
                "Error parsing record: invalid field tag", record_type, -1, record.idc
            )
        try:
            tag = data[pos:colon].decode("ascii")
            field_number = tag_to_field_number(tag)
        except ValueError:
            raise InvalidField(
                "Error parsing record: invalid field tag {!r}".format(data[pos:colon]),
                record_type,
                -1,
                record.idc,
            )
        pos = colon + 1

        length = record.length
        if field_number == IMAGE_FIELD and record_type not in (1, 2):
            # Image data runs up to the final FS
            read_length = length - (pos - offset) - 1
            if length == -1 or read_length < 0:
                raise InvalidField(
                    "Error parsing end of record: record length incorrect?",
                    record_type,
                    field_number,
                    record.idc,
                )
            if pos + read_length > len(data):
                raise TruncatedRecord(
                    "Image data extends beyond the end of the data",
                    record_type,
                    field_number,
                    record.idc,
                )
            record.fields[field_number] = Field.from_bytes(
                data[pos : pos + read_length]
            )
            logging.debug(
                "Parsed field %s: <%d bytes of image data>", tag, read_length
            )
            break

        if length != -1:
            # A GS beyond the record length belongs to the next record
            separator = data.find(_GS, pos, offset + length)
            if separator == -1:
                separator = data.find(_FS, pos)
                end_of_record = True
        else:
            gs = data.find(_GS, pos)
            fs = data.find(_FS, pos)
            if fs != -1 and (gs == -1 or fs < gs):
                separator = fs
                end_of_record = True
            else:
                separator = gs
        if separator == -1:
            raise TruncatedRecord(
                "No separator found after field {}".format(tag),
                record_type,
                field_number,
                record.idc,
            )

        field = Field.parse(data[pos:separator])
        record.fields[field_number] = field
        logging.debug("Parsed field %s: %s", tag, field.to_string(";", ","))
        pos = separator + 1

    return (record, _check_length(record, data, offset))


def _header_field(raw):
    """Convert a binary header field into its decimal string form."""
    if len(raw) == FGP_WIDTH:
        values = list(raw)
        while len(values) > 1 and values[-1] == FGP_PADDING:
            values.pop()
        return Field.from_strings(str(value) for value in values)
    else:
        return Field.from_string(str(bytes_to_int(raw)))


def _read_header(record, data, offset):
    """Read the binary header fields of 'record' starting at 'offset'."""
    _check_remaining(data, offset, record.header_length, record.record_type)
    pos = offset
    for number, width in enumerate(record.layout, 1):
        record.fields[number] = _header_field(data[pos : pos + width])
        pos += width


def _log_binary_fields(record):
    for number in sorted(record.fields):
        if number == record.image_field:
            logging.debug(
                "Parsed field %d.%03d: <%d bytes of image data>",
                record.record_type,
                number,
                len(record.image_data),
            )
        else:
            logging.debug(
                "Parsed field %d.%03d: %s",
                record.record_type,
                number,
                record.fields[number].to_string(";", ","),
            )


def _parse_binary(data, offset, record_type, layout):
    """
    Parse a binary header record starting at 'offset'. Returns the record and
    its length in bytes.
    """
    record = LogicalRecord(record_type, layout)
    _read_header(record, data, offset)

    length = _check_length(record, data, offset)
    if length < record.header_length:
        raise InvalidField(
            "Record length {} is shorter than its {} byte header".format(
                length, record.header_length
            ),
            record_type,
            1,
            record.idc,
        )

    record.fields[record.image_field] = Field.from_bytes(
        data[offset + record.header_length : offset + length]
    )
    _log_binary_fields(record)

    return (record, length)


def _parse_type7(data, offset, type7_handling, strict):
    """
    Parse a type 7 record starting at 'offset'. Returns the record and the
    number of bytes consumed.

    The record is normalised so that its length field always matches the
    header and payload actually retained.
    """
    record = LogicalRecord(7, binary_layout(7, type7_handling))
    _read_header(record, data, offset)
    header_length = record.header_length

    length = record.length
    if length <= 0:
        raise EmptyRecord("Error parsing record: empty record?", 7, 1, record.idc)

    start = offset + header_length
    expected = length - header_length
    available = len(data) - start
    if expected < 0 or expected > available:
        message = (
            "Unexpected remaining length found in type-7 record. "
            "Expected: {} Actual: {}".format(expected, available)
        )
        if strict:
            raise InvalidField(message, 7, 1, record.idc)
        logging.warning(message)
    remaining = max(0, min(expected, available))
    end = start + remaining
    payload = data[start:end]

    if type7_handling == Type7Handling.TREAT_AS_TYPE4:
        image_format = detect_image_format(payload)
        if image_format is not None:
            logging.debug("Found %s image at start of type-7 payload", image_format)
        else:
            cga = int(str(record.get_field(8)))
            if cga != 0:
                location = find_image_start(data, cga, start, end)
                if location != -1:
                    logging.debug(
                        "Found image for CGA %d at byte %d", cga, location - offset
                    )
                    payload = data[location:end]
                else:
                    logging.debug("No image found for CGA %d, keeping payload", cga)
            else:
                # Raw pixels occupy the end of the record
                image_length = int(str(record.get_field(6))) * int(
                    str(record.get_field(7))
                )
                if 0 < image_length <= len(payload):
                    payload = payload[len(payload) - image_length :]

    record.fields[record.image_field] = Field.from_bytes(payload)
    record.fields[1] = Field.from_string(str(header_length + len(payload)))
    _log_binary_fields(record)

    return (record, header_length + remaining)
