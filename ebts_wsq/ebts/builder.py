"""
:py:mod:`ebts_wsq.ebts.builder`: EBTS transaction serialiser
=============================================================

.. autofunction:: ebts_build

Building updates the transaction in place so that it describes the bytes
produced:

* The type 1 record's CNT field (1.003) is regenerated to list every record,
  in output order.
* Records without an IDC are given the next unused one.
* Every record's length field (field 1) is recomputed.

Generic records are written as::

    R.01:<length><GS>R.02:<value><GS>...<GS>R.NN:<value><FS>

where the length counts every byte of the record, including the digits of
the length itself. Binary header records are written as their packed header
followed by the image data.
"""

import logging

from ebts_wsq.exceptions import EbtsBuildError

from ebts_wsq.ebts.constants import (
    FS,
    GS,
    GENERIC_RECORD_TYPES,
    BINARY_HEADER_RECORD_TYPES,
)

from ebts_wsq.ebts.records import Field

__all__ = [
    "ebts_build",
]

_GS = bytes([GS])
_FS = bytes([FS])


def _tag(record_type, field_number, width):
    return "{}.{:0{}d}:".format(record_type, field_number, width).encode("ascii")


def _assign_idcs(records):
    """
    Give every non-type-1 record without an IDC the next unused one, then
    check IDCs are unique.
    """
    highest = max([0] + [record.idc for record in records if record.record_type != 1])
    seen = set()
    for record in records:
        if record.record_type == 1:
            continue
        if record.idc == -1:
            highest += 1
            record.idc = highest
            logging.debug(
                "Assigned IDC %d to type-%d record", highest, record.record_type
            )
        if record.idc in seen:
            raise EbtsBuildError(
                "Duplicate IDC {}".format(record.idc), record.record_type
            )
        seen.add(record.idc)


def _fix_cnt_field(type1, records):
    """Regenerate the CNT field of the type 1 record."""
    occurrences = []
    for record in records:
        if record.record_type == 1:
            occurrences.append(["1", "{:02d}".format(len(records) - 1)])
        else:
            occurrences.append(
                [str(record.record_type), "{:02d}".format(record.idc)]
            )
    type1.fields[3] = Field(occurrences)
    logging.debug("CNT field: %s", type1.fields[3].to_string(";", ","))


def _build_generic(record, width):
    fields = [
        _tag(record.record_type, number, width) + record.fields[number].data
        for number in sorted(record.fields)
        if number != 1
    ]
    body = b"".join(_GS + field for field in fields)

    tag = _tag(record.record_type, 1, width)
    # The length includes its own digits
    length = len(tag) + len(body) + len(_FS)
    digits = len(str(length))
    length += digits
    length += len(str(length)) - digits

    record.fields[1] = Field.from_string(str(length))
    return tag + str(length).encode("ascii") + body + _FS


def _build_binary(record):
    record.fields[1] = Field.from_string(
        str(record.header_length + len(record.image_data))
    )
    return record.header_bytes() + record.image_data


def ebts_build(ebts, preceding_zeros=1):
    """
    Serialise an EBTS transaction.

    Parameters
    ==========
    ebts : :py:class:`~ebts_wsq.ebts.records.Ebts`
        Updated in place (see above).
    preceding_zeros : int
        The number of zeros padding the field number in tags: 0 gives
        ``1.1:``, 1 gives ``1.01:`` and 2 gives ``1.001:``. Field numbers
        are never truncated.

    Returns
    =======
    data : bytes

    Raises
    ======
    :py:exc:`~ebts_wsq.exceptions.EbtsBuildError`
    """
    records = ebts.all_records
    type1_records = ebts.records_by_type(1)
    if len(type1_records) != 1:
        raise EbtsBuildError(
            "Expected exactly one type-1 record, found {}".format(len(type1_records)),
            1,
        )

    _assign_idcs(records)
    _fix_cnt_field(type1_records[0], records)

    width = preceding_zeros + 1
    out = bytearray()
    for record in records:
        if record.record_type in BINARY_HEADER_RECORD_TYPES and record.is_binary:
            data = _build_binary(record)
        elif record.record_type in GENERIC_RECORD_TYPES and not record.is_binary:
            data = _build_generic(record, width)
        else:
            raise EbtsBuildError("Unsupported record type", record.record_type)
        logging.debug(
            "Built type-%d record (IDC %d, %d bytes)",
            record.record_type,
            record.idc,
            len(data),
        )
        out += data

    return bytes(out)
