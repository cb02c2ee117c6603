"""
The :py:mod:`ebts_wsq.exceptions` module defines the exceptions raised by the
WSQ codec and the EBTS record codec.

Every exception derives from :py:exc:`EbtsWsqError` which provides an
:py:meth:`~EbtsWsqError.explain` method returning a detailed, human readable
description of the problem. The first line of this explanation is used as the
exception's :py:func:`str` form.

WSQ errors
----------

.. autoexception:: WSQError
.. autoexception:: InvalidMarker
.. autoexception:: MissingTable
.. autoexception:: TruncatedStream
.. autoexception:: DuplicateHuffmanTable
.. autoexception:: OversizeCoefficient
.. autoexception:: AllOnesCodeword
.. autoexception:: InvalidHuffmanCode
.. autoexception:: InvalidImage

EBTS errors
-----------

.. autoexception:: EbtsError
.. autoexception:: EbtsParseError
.. autoexception:: InvalidField
.. autoexception:: UnsupportedRecordType
.. autoexception:: EmptyRecord
.. autoexception:: MissingCntField
.. autoexception:: TruncatedRecord
.. autoexception:: EbtsBuildError
.. autoexception:: UnknownMnemonic

Low-level errors
----------------

.. autoexception:: OutOfRangeError
"""

from ebts_wsq.string_utils import wrap_paragraphs

__all__ = [
    "EbtsWsqError",
    "OutOfRangeError",
    "WSQError",
    "InvalidMarker",
    "MissingTable",
    "TruncatedStream",
    "DuplicateHuffmanTable",
    "OversizeCoefficient",
    "AllOnesCodeword",
    "InvalidHuffmanCode",
    "InvalidImage",
    "EbtsError",
    "EbtsParseError",
    "InvalidField",
    "UnsupportedRecordType",
    "EmptyRecord",
    "MissingCntField",
    "TruncatedRecord",
    "EbtsBuildError",
    "UnknownMnemonic",
]


def marker_to_string(marker):
    """
    Convert a WSQ marker value into a string such as ``"SOI (0xFFA0)"``.
    """
    # Imported here to avoid a circular import with the constants module
    from ebts_wsq.wsq.constants import MARKER_NAMES

    if marker is None:
        return "end of stream"
    return "{} (0x{:04X})".format(MARKER_NAMES.get(marker, "unknown marker"), marker)


class EbtsWsqError(Exception):
    """
    Base class for all exceptions raised by this package.
    """

    def __str__(self):
        return wrap_paragraphs(self.explain()).partition("\n")[0]

    def explain(self):
        """
        Produce a detailed human readable explanation of the failure.

        Should return a string which can be re-linewrapped by
        :py:func:`ebts_wsq.string_utils.wrap_paragraphs`. The first paragraph
        is used as a summary when the exception is printed.
        """
        raise NotImplementedError()


class OutOfRangeError(ValueError):
    """
    Thrown when an out-of-range value is passed to a bit writing function.
    """


################################################################################
# WSQ errors
################################################################################


class WSQError(EbtsWsqError):
    """
    Base class for errors encountered while encoding or decoding WSQ data.
    """


class InvalidMarker(WSQError):
    """
    A marker was read where a different marker (or one of a set of markers)
    was expected.

    Attributes
    ==========
    expected : int or (int, ...)
    actual : int or None
        None when the end of the stream was reached instead.
    """

    def __init__(self, expected, actual):
        self.expected = expected
        self.actual = actual
        super(InvalidMarker, self).__init__(expected, actual)

    def explain(self):
        if self.expected is None:
            return """
                Unexpected marker {} inside Huffman coded data.

                Markers may only appear between coded symbols, never within
                the extra bits following an escape symbol.
            """.format(
                marker_to_string(self.actual)
            )
        if isinstance(self.expected, int):
            expected = marker_to_string(self.expected)
        else:
            expected = " or ".join(marker_to_string(m) for m in self.expected)
        return """
            Expected {} but found {}.

            WSQ streams must start with SOI (0xFFA0) and every table or block
            must begin with one of the markers defined by the WSQ standard.
        """.format(
            expected,
            marker_to_string(self.actual),
        )


class MissingTable(WSQError):
    """
    A block (SOB) was reached before a table it depends on had been read.
    """

    def __init__(self, table_name, table_id=None):
        self.table_name = table_name
        self.table_id = table_id
        super(MissingTable, self).__init__(table_name, table_id)

    def explain(self):
        return """
            The {}{} table was not defined before the block which uses it.

            All DTT, DQT and DHT tables must appear before the SOB marker of
            the first block referencing them.
        """.format(
            self.table_name,
            " {}".format(self.table_id) if self.table_id is not None else "",
        )


class TruncatedStream(WSQError, EOFError):
    """
    The end of the input was reached in the middle of a structure.
    """

    def __init__(self, context):
        self.context = context
        super(TruncatedStream, self).__init__(context)

    def explain(self):
        return """
            Unexpectedly reached the end of the stream while reading {}.
        """.format(
            self.context
        )


class DuplicateHuffmanTable(WSQError):
    """
    The same Huffman table id was defined more than once, either within one
    DHT segment or by a later DHT segment.
    """

    def __init__(self, table_id):
        self.table_id = table_id
        super(DuplicateHuffmanTable, self).__init__(table_id)

    def explain(self):
        return """
            Huffman table {} was defined more than once.
        """.format(
            self.table_id
        )


class OversizeCoefficient(WSQError):
    """
    A value is too large to be stored in the fixed-width fields of the WSQ
    table format.
    """

    def __init__(self, name, value):
        self.name = name
        self.value = value
        super(OversizeCoefficient, self).__init__(name, value)

    def explain(self):
        return """
            The {} value {!r} cannot be represented in the WSQ table format.
        """.format(
            self.name,
            self.value,
        )


class AllOnesCodeword(WSQError):
    """
    A generated Huffman table contains a codeword consisting only of 1-bits.
    """

    def __init__(self, table_id, size):
        self.table_id = table_id
        self.size = size
        super(AllOnesCodeword, self).__init__(table_id, size)

    def explain(self):
        return """
            Huffman table {} contains an all-ones codeword of length {}.

            All-ones codewords are forbidden because the padding bits written
            at the end of each block are 1-bits.
        """.format(
            self.table_id,
            self.size,
        )


class InvalidHuffmanCode(WSQError):
    """
    The Huffman decoder produced a symbol which is not part of the WSQ
    coefficient alphabet, or a code longer than 16 bits.
    """

    def __init__(self, symbol):
        self.symbol = symbol
        super(InvalidHuffmanCode, self).__init__(symbol)

    def explain(self):
        if self.symbol is None:
            return """
                Invalid Huffman code: no codeword of 16 bits or fewer matched
                the coded data.
            """
        return """
            Invalid Huffman coded symbol {} found in block data.
        """.format(
            self.symbol
        )


class InvalidImage(WSQError):
    """
    The pixels or parameters given to the encoder are unusable.
    """

    def __init__(self, reason):
        self.reason = reason
        super(InvalidImage, self).__init__(reason)

    def explain(self):
        return """
            Invalid image: {}.
        """.format(
            self.reason
        )


################################################################################
# EBTS errors
################################################################################


class EbtsError(EbtsWsqError):
    """
    Base class for errors encountered while parsing or building EBTS data.
    """


class EbtsParseError(EbtsError):
    """
    A failure while parsing an EBTS transaction.

    Attributes
    ==========
    message : str
    record_type : int
        -1 if unknown.
    field_number : int
        -1 if unknown.
    idc : int
        -1 if unknown.
    """

    def __init__(self, message, record_type=-1, field_number=-1, idc=-1):
        self.message = message
        self.record_type = record_type
        self.field_number = field_number
        self.idc = idc
        super(EbtsParseError, self).__init__(message, record_type, field_number, idc)

    def location(self):
        """
        A short description of where the error occurred, e.g. "record type
        10, field 999, IDC 3".
        """
        parts = []
        if self.record_type != -1:
            parts.append("record type {}".format(self.record_type))
        if self.field_number != -1:
            parts.append("field {}".format(self.field_number))
        if self.idc != -1:
            parts.append("IDC {}".format(self.idc))
        return ", ".join(parts)

    def explain(self):
        location = self.location()
        return """
            {}{}
        """.format(
            self.message,
            " ({})".format(location) if location else "",
        )


class InvalidField(EbtsParseError):
    """
    A field tag or value is malformed, or a length field is implausible.
    """


class UnsupportedRecordType(EbtsParseError):
    """
    The CNT field lists a record type this package cannot parse.
    """

    def __init__(self, record_type):
        super(UnsupportedRecordType, self).__init__(
            "File contains unsupported record type {}".format(record_type),
            record_type,
        )


class EmptyRecord(EbtsParseError):
    """
    A record was parsed which declares a zero (or negative) length.
    """


class MissingCntField(EbtsParseError):
    """
    The type-1 record has no CNT (field 3) entry.
    """

    def __init__(self):
        super(MissingCntField, self).__init__("Field 1.003/CNT not found", 1, 3)


class TruncatedRecord(EbtsParseError, EOFError):
    """
    A record extends past the end of the supplied data.
    """


class EbtsBuildError(EbtsError):
    """
    A record could not be serialised.
    """

    def __init__(self, message, record_type=-1):
        self.message = message
        self.record_type = record_type
        super(EbtsBuildError, self).__init__(message, record_type)

    def explain(self):
        return """
            {}{}
        """.format(
            self.message,
            " (record type {})".format(self.record_type)
            if self.record_type != -1
            else "",
        )


class UnknownMnemonic(EbtsError, KeyError):
    """
    A field mnemonic is not defined for the given record type.
    """

    def __init__(self, record_type, mnemonic):
        self.record_type = record_type
        self.mnemonic = mnemonic
        super(UnknownMnemonic, self).__init__(record_type, mnemonic)

    def explain(self):
        return """
            Field identifier {} does not exist for record type {}.
        """.format(
            self.mnemonic,
            self.record_type,
        )
