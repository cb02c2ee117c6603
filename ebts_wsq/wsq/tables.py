"""
:py:mod:`ebts_wsq.wsq.tables`: Table and header segments
=========================================================

A WSQ stream is made up of byte-aligned segments, each introduced by a
two-byte marker (see :py:mod:`ebts_wsq.wsq.constants`). Apart from SOI and
EOI, every segment begins with a 16-bit length which counts itself but not
the marker.

This module contains a reader and writer for each segment type. Readers are
called with the file positioned immediately after the marker and return a
:py:func:`~ebts_wsq.fixeddict.fixeddict` describing the segment. Writers
emit the marker too.

Scaled values
-------------

Real numbers are stored as an unsigned integer and a *scale*: the number of
times the integer must be divided by ten to recover the value. Values are
decoded using single precision arithmetic.

.. autofunction:: encode_scaled

.. autofunction:: decode_scaled

Segments
--------

.. autodata:: TransformTable
    :annotation:

.. autofunction:: read_transform_table

.. autofunction:: write_transform_table

.. autofunction:: synthesis_filters

.. autodata:: QuantizationTable
    :annotation:

.. autofunction:: read_quantization_table

.. autofunction:: write_quantization_table

.. autodata:: HuffmanTable
    :annotation:

.. autofunction:: read_huffman_tables

.. autofunction:: write_huffman_table

.. autodata:: FrameHeader
    :annotation:

.. autofunction:: read_frame_header

.. autofunction:: write_frame_header

.. autofunction:: read_comment

.. autofunction:: write_comment

.. autofunction:: read_block_header

.. autofunction:: write_block_header

Markers
-------

.. autofunction:: read_marker

.. autofunction:: write_marker
"""

import math
import logging

import numpy as np

from ebts_wsq.fixeddict import fixeddict, Entry

from ebts_wsq.exceptions import (
    InvalidMarker,
    DuplicateHuffmanTable,
    OversizeCoefficient,
    TruncatedStream,
)

from ebts_wsq.wsq.constants import (
    DTT,
    DQT,
    DHT,
    SOF,
    SOB,
    COM,
    MAX_SUBBANDS,
    MAX_HUFFBITS,
    MAX_HUFFCOUNTS_WSQ,
    MAX_DHT_TABLES,
)

from ebts_wsq.wsq.io import (
    read_bytes,
    read_uint8,
    read_uint16,
    read_uint32,
    write_uint8,
    write_uint16,
    write_uint32,
)

__all__ = [
    "encode_scaled",
    "decode_scaled",
    "TransformTable",
    "QuantizationTable",
    "HuffmanTable",
    "FrameHeader",
    "read_marker",
    "write_marker",
    "read_transform_table",
    "write_transform_table",
    "synthesis_filters",
    "read_quantization_table",
    "write_quantization_table",
    "read_huffman_tables",
    "write_huffman_table",
    "read_frame_header",
    "write_frame_header",
    "read_comment",
    "write_comment",
    "read_block_header",
    "write_block_header",
]


################################################################################
# Scaled values
################################################################################


def encode_scaled(value, name, bits=16):
    """
    Find the (scale, integer) pair which represents 'value' with as many
    decimal places as fit in an unsigned integer of the given size.

    Parameters
    ==========
    value : float
        A non-negative value.
    name : str
        Used in error messages.
    bits : 16 or 32
        The width of the integer. 16 bit values are scaled using single
        precision arithmetic, 32 bit values in double precision.

    Returns
    =======
    scale : int
    integer : int

    Raises
    ======
    :py:exc:`~ebts_wsq.exceptions.OversizeCoefficient`
        If the value is negative or too large to be represented.
    """
    if value == 0.0:
        return (0, 0)

    if bits == 16:
        limit = 0xFFFF
        scaled = np.float32(value)
        ten = np.float32(10.0)
    else:
        limit = 0xFFFFFFFF
        scaled = float(value)
        ten = 10.0

    if not (0.0 < scaled < limit) or math.isnan(scaled):
        raise OversizeCoefficient(name, value)

    scale = 0
    while scaled < limit:
        scale += 1
        scaled = scaled * ten
    scale -= 1

    # Round half up
    integer = int(math.floor((float(scaled) / 10.0) + 0.5))
    if scale > 0xFF:
        raise OversizeCoefficient(name, value)
    return (scale, integer)


def decode_scaled(scale, integer):
    """
    Reverse of :py:func:`encode_scaled`. Returns a float (with single
    precision).
    """
    value = np.float32(integer)
    for _ in range(scale):
        value = np.float32(float(value) / 10.0)
    return float(value)


################################################################################
# Markers
################################################################################


def read_marker(file, allowed):
    """
    Read a marker, checking it is one of those allowed.

    Parameters
    ==========
    file : file-like
    allowed : int or (int, ...)

    Returns
    =======
    marker : int

    Raises
    ======
    :py:exc:`~ebts_wsq.exceptions.InvalidMarker`
    :py:exc:`~ebts_wsq.exceptions.TruncatedStream`
    """
    marker = read_uint16(file, "marker")
    if isinstance(allowed, int):
        ok = marker == allowed
    else:
        ok = marker in allowed
    if not ok:
        raise InvalidMarker(allowed, marker)
    return marker


def write_marker(file, marker):
    write_uint16(file, marker)


################################################################################
# DTT
################################################################################

TransformTable = fixeddict(
    "TransformTable",
    Entry(
        "lofilt",
        formatter=lambda f: ", ".join("{:.8f}".format(v) for v in f),
        help="The complete low-pass analysis filter.",
    ),
    Entry(
        "hifilt",
        formatter=lambda f: ", ".join("{:.8f}".format(v) for v in f),
        help="The complete high-pass analysis filter.",
    ),
    help="""
        Transform table (DTT) segment: the wavelet analysis filters used by the
        encoder.
    """,
)
"""
A :py:func:`~ebts_wsq.fixeddict.fixeddict` holding the contents of a DTT
segment. Symmetric filters are transmitted, so only the central and
right-hand taps are actually stored.
"""


def _int_sign(power):
    """(-1) ** power"""
    return -1.0 if power % 2 else 1.0


def _read_half_filter(file, size):
    values = []
    for _ in range(size - (size // 2)):
        sign = read_uint8(file, "DTT")
        scale = read_uint8(file, "DTT")
        value = decode_scaled(scale, read_uint32(file, "DTT"))
        values.append(-value if sign else value)
    return values


def _expand_filter(half, size, antisymmetric):
    """
    Rebuild a complete filter from its central and right-hand taps.
    """
    if size % 2:
        return list(reversed(half[1:])) + list(half)
    elif antisymmetric:
        return [-v for v in reversed(half)] + list(half)
    else:
        return list(reversed(half)) + list(half)


def read_transform_table(file):
    """
    Read a DTT segment.

    Returns
    =======
    table : :py:data:`TransformTable`
    """
    read_uint16(file, "DTT length")
    losz = read_uint8(file, "DTT")
    hisz = read_uint8(file, "DTT")

    lo_half = _read_half_filter(file, losz)
    hi_half = _read_half_filter(file, hisz)

    return TransformTable(
        lofilt=_expand_filter(lo_half, losz, False),
        hifilt=_expand_filter(hi_half, hisz, True),
    )


def write_transform_table(file, table):
    """
    Write a DTT segment.

    Raises
    ======
    :py:exc:`~ebts_wsq.exceptions.OversizeCoefficient`
        If a filter tap's magnitude is too large to be represented.
    """
    lofilt = [float(np.float32(v)) for v in table["lofilt"]]
    hifilt = [float(np.float32(v)) for v in table["hifilt"]]
    if len(lofilt) > 0xFF or len(hifilt) > 0xFF:
        raise OversizeCoefficient("filter length", max(len(lofilt), len(hifilt)))

    lo_half = lofilt[len(lofilt) // 2 :]
    hi_half = hifilt[len(hifilt) // 2 :]

    write_marker(file, DTT)
    write_uint16(file, 4 + (6 * (len(lo_half) + len(hi_half))))
    write_uint8(file, len(lofilt))
    write_uint8(file, len(hifilt))
    for coeff in lo_half + hi_half:
        scale, value = encode_scaled(abs(coeff), "transform coefficient", bits=32)
        write_uint8(file, int(coeff < 0))
        write_uint8(file, scale)
        write_uint32(file, value)


def _synthesis_filter(analysis, first_sign, antisymmetric):
    size = len(analysis)
    half = size // 2
    out = [0.0] * size
    for cnt, value in enumerate(analysis[half:]):
        value = _int_sign(cnt + first_sign) * value
        out[half + cnt] = value
        if size % 2:
            out[half - cnt] = value
        else:
            out[half - 1 - cnt] = -value if antisymmetric else value
    return out


def synthesis_filters(table):
    """
    Derive the synthesis filters a decoder uses from a
    :py:data:`TransformTable` containing analysis filters.

    The synthesis high-pass filter is the analysis low-pass filter with
    alternating signs (and vice versa).

    Returns
    =======
    lofilt, hifilt : [float, ...]
        The complete synthesis low- and high-pass filters.
    """
    even_hi = len(table["hifilt"]) % 2 == 0
    lofilt = _synthesis_filter(table["hifilt"], 1 if even_hi else 0, False)
    hifilt = _synthesis_filter(table["lofilt"], 0, True)
    return (lofilt, hifilt)


################################################################################
# DQT
################################################################################

QuantizationTable = fixeddict(
    "QuantizationTable",
    Entry("bin_center", help="Quantizer bin center (e.g. 0.44)."),
    Entry(
        "q_bin",
        formatter=lambda q: ", ".join("{:.4f}".format(v) for v in q),
        help="Quantizer bin width for each of the 64 subbands.",
    ),
    Entry(
        "z_bin",
        formatter=lambda z: ", ".join("{:.4f}".format(v) for v in z),
        help="Quantizer zero-bin width for each of the 64 subbands.",
    ),
    help="""
        Quantization table (DQT) segment.
    """,
)
"""
A :py:func:`~ebts_wsq.fixeddict.fixeddict` holding the contents of a DQT
segment.
"""


def read_quantization_table(file):
    """
    Read a DQT segment.

    Returns
    =======
    table : :py:data:`QuantizationTable`
    """
    read_uint16(file, "DQT length")
    scale = read_uint8(file, "DQT")
    bin_center = decode_scaled(scale, read_uint16(file, "DQT"))

    q_bin = []
    z_bin = []
    for _ in range(MAX_SUBBANDS):
        scale = read_uint8(file, "DQT")
        q_bin.append(decode_scaled(scale, read_uint16(file, "DQT")))
        scale = read_uint8(file, "DQT")
        z_bin.append(decode_scaled(scale, read_uint16(file, "DQT")))

    return QuantizationTable(bin_center=bin_center, q_bin=q_bin, z_bin=z_bin)


def write_quantization_table(file, table):
    """
    Write a DQT segment. The bin center is always written with two decimal
    places.

    Raises
    ======
    :py:exc:`~ebts_wsq.exceptions.OversizeCoefficient`
        If a bin width is 65535 or more.
    """
    write_marker(file, DQT)
    write_uint16(file, 5 + (6 * MAX_SUBBANDS))
    write_uint8(file, 2)
    write_uint16(file, int(math.floor((table["bin_center"] * 100.0) + 0.5)))

    for band in range(MAX_SUBBANDS):
        q_bin = table["q_bin"][band] if band < len(table["q_bin"]) else 0.0
        z_bin = table["z_bin"][band] if band < len(table["z_bin"]) else 0.0
        if q_bin == 0.0:
            z_bin = 0.0
        for name, value in (("quantizer bin width", q_bin), ("zero bin width", z_bin)):
            scale, integer = encode_scaled(value, name)
            write_uint8(file, scale)
            write_uint16(file, integer)


################################################################################
# DHT
################################################################################

HuffmanTable = fixeddict(
    "HuffmanTable",
    Entry("table_id"),
    Entry(
        "bits",
        formatter=lambda b: " ".join(str(n) for n in b),
        help="Number of codes of each length from 1 to 16 bits.",
    ),
    Entry(
        "values",
        formatter=lambda v: " ".join(str(n) for n in v),
        help="Symbols in order of increasing code length.",
    ),
    help="""
        A Huffman table defined in a DHT segment.
    """,
)
"""
A :py:func:`~ebts_wsq.fixeddict.fixeddict` describing one Huffman table.
"""


def read_huffman_tables(file):
    """
    Read a DHT segment, which may define several tables.

    Returns
    =======
    tables : [:py:data:`HuffmanTable`, ...]

    Raises
    ======
    :py:exc:`~ebts_wsq.exceptions.DuplicateHuffmanTable`
        If a table id is repeated within the segment.
    :py:exc:`~ebts_wsq.exceptions.OversizeCoefficient`
        If a table defines more than 257 codes.
    """
    bytes_left = read_uint16(file, "DHT length") - 2

    tables = []
    seen = set()
    while bytes_left > 0:
        table_id = read_uint8(file, "DHT")
        bits = list(read_bytes(file, MAX_HUFFBITS, "DHT"))
        num_values = sum(bits)
        if num_values > MAX_HUFFCOUNTS_WSQ + 1:
            raise OversizeCoefficient("Huffman value count", num_values)
        values = list(read_bytes(file, num_values, "DHT"))
        bytes_left -= 1 + MAX_HUFFBITS + num_values

        if table_id in seen:
            raise DuplicateHuffmanTable(table_id)
        seen.add(table_id)
        if table_id >= MAX_DHT_TABLES:
            logging.warning("Huffman table id %d is out of range", table_id)

        tables.append(HuffmanTable(table_id=table_id, bits=bits, values=values))

    return tables


def write_huffman_table(file, table):
    """Write a DHT segment containing a single table."""
    values = list(table["values"])
    write_marker(file, DHT)
    write_uint16(file, 3 + MAX_HUFFBITS + len(values))
    write_uint8(file, table["table_id"])
    file.write(bytes(bytearray(table["bits"])))
    file.write(bytes(bytearray(values)))


################################################################################
# SOF
################################################################################

FrameHeader = fixeddict(
    "FrameHeader",
    Entry("black", help="Pixel value of black (always 0)."),
    Entry("white", help="Pixel value of white (always 255)."),
    Entry("height"),
    Entry("width"),
    Entry("m_shift", help="Mean pixel value removed before the transform."),
    Entry("r_scale", help="Scale factor applied before the transform."),
    Entry("encoder", help="Encoder identification number."),
    Entry("software", help="Software identification number."),
    help="""
        Frame header (SOF) segment.
    """,
)
"""
A :py:func:`~ebts_wsq.fixeddict.fixeddict` holding the contents of a SOF
segment.
"""


def read_frame_header(file):
    """
    Read a SOF segment.

    Returns
    =======
    header : :py:data:`FrameHeader`
    """
    read_uint16(file, "SOF length")
    black = read_uint8(file, "SOF")
    white = read_uint8(file, "SOF")
    height = read_uint16(file, "SOF")
    width = read_uint16(file, "SOF")
    scale = read_uint8(file, "SOF")
    m_shift = decode_scaled(scale, read_uint16(file, "SOF"))
    scale = read_uint8(file, "SOF")
    r_scale = decode_scaled(scale, read_uint16(file, "SOF"))
    encoder = read_uint8(file, "SOF")
    software = read_uint16(file, "SOF")

    return FrameHeader(
        black=black,
        white=white,
        height=height,
        width=width,
        m_shift=m_shift,
        r_scale=r_scale,
        encoder=encoder,
        software=software,
    )


def write_frame_header(file, header):
    """Write a SOF segment."""
    write_marker(file, SOF)
    write_uint16(file, 17)
    write_uint8(file, header["black"])
    write_uint8(file, header["white"])
    write_uint16(file, header["height"])
    write_uint16(file, header["width"])
    for name in ("m_shift", "r_scale"):
        scale, integer = encode_scaled(header[name], name)
        write_uint8(file, scale)
        write_uint16(file, integer)
    write_uint8(file, header["encoder"])
    write_uint16(file, header["software"])


################################################################################
# COM
################################################################################


def read_comment(file):
    """Read a COM segment, returning its text."""
    length = read_uint16(file, "COM length")
    if length < 2:
        raise TruncatedStream("COM")
    return read_bytes(file, length - 2, "COM").decode("utf-8", errors="replace")


def write_comment(file, text):
    """
    Write a COM segment.

    Raises
    ======
    :py:exc:`~ebts_wsq.exceptions.OversizeCoefficient`
        If the encoded comment is too long to fit in a segment.
    """
    data = text.encode("utf-8")
    if len(data) + 2 > 0xFFFF:
        raise OversizeCoefficient("comment length", len(data))
    write_marker(file, COM)
    write_uint16(file, len(data) + 2)
    file.write(data)


################################################################################
# SOB
################################################################################


def read_block_header(file):
    """Read a SOB segment, returning the Huffman table id it uses."""
    read_uint16(file, "SOB length")
    return read_uint8(file, "SOB")


def write_block_header(file, table_id):
    """Write a SOB segment."""
    write_marker(file, SOB)
    write_uint16(file, 3)
    write_uint8(file, table_id)
