"""
:py:mod:`ebts_wsq.ebts.constants`: EBTS constants
==================================================

Separator characters, the record type taxonomy and the binary header layouts
used by the EBTS/NIST ITL record codec.

Separators
----------

.. autodata:: FS
    :annotation: = 0x1C

.. autodata:: GS
    :annotation: = 0x1D

.. autodata:: RS
    :annotation: = 0x1E

.. autodata:: US
    :annotation: = 0x1F

Record types
------------

.. autodata:: GENERIC_RECORD_TYPES
    :annotation:

.. autodata:: BINARY_HEADER_RECORD_TYPES
    :annotation:

.. autodata:: DEFAULT_BINARY_LAYOUT
    :annotation: = (4, 1, 1, 6, 1, 2, 2, 1)

.. autodata:: TYPE_8_LAYOUT
    :annotation: = (4, 1, 1, 1, 1, 2, 2)

.. autodata:: TYPE_7_NIST_LAYOUT
    :annotation: = (4, 1)

.. autoclass:: ParseType
    :members:

.. autoclass:: Type7Handling
    :members:
"""

from enum import Enum

__all__ = [
    "FS",
    "GS",
    "RS",
    "US",
    "GENERIC_RECORD_TYPES",
    "BINARY_HEADER_RECORD_TYPES",
    "IMAGE_FIELD",
    "FGP_WIDTH",
    "FGP_PADDING",
    "DEFAULT_BINARY_LAYOUT",
    "TYPE_8_LAYOUT",
    "TYPE_7_NIST_LAYOUT",
    "ParseType",
    "Type7Handling",
    "binary_layout",
]

FS = 0x1C
"""File separator: terminates a generic record."""

GS = 0x1D
"""Group separator: separates the fields of a generic record."""

RS = 0x1E
"""Record separator: separates the occurrences of a field."""

US = 0x1F
"""Unit separator: separates the subfields of an occurrence."""

GENERIC_RECORD_TYPES = frozenset([1, 2, 9, 10, 13, 14, 15, 16, 17])
"""Record types made up of ASCII tagged fields."""

BINARY_HEADER_RECORD_TYPES = frozenset([3, 4, 5, 6, 7, 8])
"""Record types with a fixed binary header followed by image data."""

IMAGE_FIELD = 999
"""The field holding the image payload of a generic record."""

FGP_WIDTH = 6
"""Width (bytes) of the binary finger position header field."""

FGP_PADDING = 255
"""Value filling unused finger position bytes."""

DEFAULT_BINARY_LAYOUT = (4, 1, 1, 6, 1, 2, 2, 1)
"""
Header field widths (in bytes) of type 3, 4, 5 and 6 records: LEN, IDC, IMP,
FGP, ISR, HLL, VLL and CGA.
"""

TYPE_8_LAYOUT = (4, 1, 1, 1, 1, 2, 2)
"""Header field widths of type 8 records: LEN, IDC, SIG, SRT, ISR, HLL, VLL."""

TYPE_7_NIST_LAYOUT = (4, 1)
"""Header field widths of type 7 records in NIST mode: LEN and IDC."""


class ParseType(Enum):
    """How much of a transaction :py:func:`~ebts_wsq.ebts.parser.ebts_parse`
    should read."""

    FULL = "full"
    """Parse every record listed in the CNT field."""

    DESCRIPTIVE_ONLY = "descriptive_only"
    """Stop after the type 2 (descriptive text) record."""


class Type7Handling(Enum):
    """How the header of a type 7 (user defined image) record is read."""

    NIST = "nist"
    """Only LEN and IDC are binary header fields; the rest is payload."""

    TREAT_AS_TYPE4 = "treat_as_type4"
    """
    The record has a type 4 style header and the image may be preceded by
    other data (e.g. a CBEFF wrapper).
    """


def binary_layout(record_type, type7_handling=Type7Handling.TREAT_AS_TYPE4):
    """
    Return the header layout (a tuple of field widths in bytes) of a binary
    header record type.

    Raises :py:exc:`ValueError` for record types without a binary header.
    """
    if record_type == 8:
        return TYPE_8_LAYOUT
    elif record_type == 7 and type7_handling == Type7Handling.NIST:
        return TYPE_7_NIST_LAYOUT
    elif record_type in BINARY_HEADER_RECORD_TYPES:
        return DEFAULT_BINARY_LAYOUT
    else:
        raise ValueError(
            "Record type {} does not have a binary header".format(record_type)
        )
