"""
:py:mod:`ebts_wsq.wsq.codec`: WSQ encoder and decoder
======================================================

The top level WSQ compression and decompression routines.

An encoded image consists of the following segments, in order:

* SOI
* COM containing the NISTCOM metadata block (see
  :py:mod:`ebts_wsq.wsq.nistcom`) followed by any additional COM segments
* DTT, DQT and SOF
* DHT (table 0), SOB (table 0) and block 1
* DHT (table 1), SOB (table 1) and block 2
* SOB (table 1) and block 3
* EOI

Huffman table 0 is built for block 1 alone; table 1 is built from the
combined statistics of blocks 2 and 3.

.. autofunction:: wsq_encode

.. autofunction:: wsq_decode

.. autofunction:: wsq_decode_to_array

.. autodata:: DecodedImage
    :annotation:

.. autodata:: MIN_DIMENSION
    :annotation: = 65
"""

import logging

from io import BytesIO

import numpy as np

from ebts_wsq.fixeddict import fixeddict, Entry

from ebts_wsq.string_utils import ellipsise_bytes

from ebts_wsq.exceptions import (
    InvalidImage,
    InvalidMarker,
    MissingTable,
    DuplicateHuffmanTable,
)

from ebts_wsq.wsq.constants import (
    SOI,
    EOI,
    SOF,
    SOB,
    DTT,
    DQT,
    DHT,
    COM,
    MARKER_NAMES,
    LOFILT,
    HIFILT,
    BIN_CENTER,
    ENCODER_ID,
    SOFTWARE_ID,
)

from ebts_wsq.wsq.io import BitWriter, BitReader

from ebts_wsq.wsq.trees import build_trees

from ebts_wsq.wsq.transform import decompose, reconstruct

from ebts_wsq.wsq.quantization import (
    normalise_image,
    denormalise_image,
    subband_variances,
    bin_widths,
    quantize,
    block_sizes,
    dequantize,
)

from ebts_wsq.wsq.huffman import (
    tokenize,
    count_symbols,
    generate_table,
    check_all_ones,
    canonical_codes,
    encode_block,
    HuffmanDecoder,
    decode_block,
)

from ebts_wsq.wsq.tables import (
    TransformTable,
    QuantizationTable,
    HuffmanTable,
    FrameHeader,
    read_marker,
    write_marker,
    read_transform_table,
    write_transform_table,
    synthesis_filters,
    read_quantization_table,
    write_quantization_table,
    read_huffman_tables,
    write_huffman_table,
    read_frame_header,
    write_frame_header,
    read_comment,
    write_comment,
    read_block_header,
    write_block_header,
)

from ebts_wsq.wsq.nistcom import (
    WSQ_BITRATE,
    build_nistcom,
    nistcom_to_text,
    read_metadata,
)

__all__ = [
    "MIN_DIMENSION",
    "MAX_DIMENSION",
    "DecodedImage",
    "wsq_encode",
    "wsq_decode",
    "wsq_decode_to_array",
]

MIN_DIMENSION = 65
"""
The smallest image width or height which can be coded. Smaller images leave
too few samples in the lowest frequency subbands for the 9-tap filter.
"""

MAX_DIMENSION = 0xFFFF
"""The largest width or height representable in the frame header."""


DecodedImage = fixeddict(
    "DecodedImage",
    Entry("pixels", formatter=ellipsise_bytes, help="Row-major 8-bit pixels."),
    Entry("width"),
    Entry("height"),
    Entry("ppi", help="Resolution in pixels per inch, or -1 if unknown."),
    Entry("metadata", help="The NISTCOM fields (excluding the NIST_COM header)."),
    Entry("comments", help="The text of all other COM segments."),
    Entry("black", help="The frame header's black level."),
    Entry("white", help="The frame header's white level."),
    Entry("bit_rate", help="The bit rate recorded in the NISTCOM, or None."),
    help="""
        An image decoded by :py:func:`wsq_decode`.
    """,
)
"""
A :py:func:`~ebts_wsq.fixeddict.fixeddict` describing a decoded image.
"""


def _check_dimensions(width, height):
    for name, value in (("width", width), ("height", height)):
        if not MIN_DIMENSION <= value <= MAX_DIMENSION:
            raise InvalidImage(
                "{} {} is outside the range {}-{}".format(
                    name, value, MIN_DIMENSION, MAX_DIMENSION
                )
            )


def _pixel_array(pixels, width, height):
    """
    Convert the pixels passed to :py:func:`wsq_encode` into a 2D uint8
    array, validating the dimensions.
    """
    if isinstance(pixels, np.ndarray):
        if pixels.ndim != 2:
            raise InvalidImage("pixel arrays must be two dimensional")
        if pixels.dtype != np.uint8:
            raise InvalidImage(
                "pixel arrays must have dtype uint8, not {}".format(pixels.dtype)
            )
        if (width is not None and width != pixels.shape[1]) or (
            height is not None and height != pixels.shape[0]
        ):
            raise InvalidImage(
                "dimensions {}x{} do not match the {}x{} pixel array".format(
                    width, height, pixels.shape[1], pixels.shape[0]
                )
            )
        height, width = pixels.shape
        _check_dimensions(width, height)
        return pixels

    if width is None or height is None:
        raise InvalidImage("width and height are required for raw pixel buffers")
    _check_dimensions(width, height)
    pixels = bytes(pixels)
    if len(pixels) != width * height:
        raise InvalidImage(
            "expected {} bytes of pixel data but got {}".format(
                width * height, len(pixels)
            )
        )
    return np.frombuffer(pixels, dtype=np.uint8).reshape(height, width)


def _write_huffman_block(file, table_id, tokens, codes):
    write_block_header(file, table_id)
    writer = BitWriter(file)
    encode_block(writer, tokens, codes)
    num_bytes = writer.flush()
    logging.debug("Wrote block using Huffman table %d (%d bytes)", table_id, num_bytes)


def _huffman_table(table_id, tokens, strict):
    bits, values = generate_table(count_symbols(tokens))
    check_all_ones(bits, table_id, strict)
    return HuffmanTable(table_id=table_id, bits=bits, values=values)


def wsq_encode(
    pixels,
    width=None,
    height=None,
    ppi=-1,
    bit_rate=0.75,
    metadata=None,
    comments=(),
    strict=False,
):
    """
    Compress a grayscale image.

    Parameters
    ==========
    pixels : bytes, bytearray or :py:class:`numpy.ndarray`
        Either a row-major buffer of 8-bit pixels (in which case 'width' and
        'height' must be given) or a 2D uint8 array of shape (height,
        width).
    width, height : int
        Both must be at least :py:data:`MIN_DIMENSION`.
    ppi : int
        The image resolution, recorded in the NISTCOM (-1 if unknown).
    bit_rate : float
        The target bit rate in bits per pixel (0.75 gives roughly 15:1
        compression).
    metadata : {str: str, ...} or None
        Additional NISTCOM fields.
    comments : [str, ...]
        Additional comments, each written as its own COM segment.
    strict : bool
        If True, an all-ones Huffman codeword raises
        :py:exc:`~ebts_wsq.exceptions.AllOnesCodeword` rather than logging
        a warning.

    Returns
    =======
    data : bytes
    """
    image = _pixel_array(pixels, width, height)
    height, width = image.shape
    if not bit_rate > 0:
        raise InvalidImage("bit rate must be positive, not {}".format(bit_rate))

    fdata, m_shift, r_scale = normalise_image(image)
    logging.debug("Normalised image: m_shift = %f, r_scale = %f", m_shift, r_scale)

    w_tree, q_tree = build_trees(width, height)
    decompose(fdata, w_tree, LOFILT, HIFILT)

    variances = subband_variances(fdata, q_tree)
    qbss, qzbs = bin_widths(variances, bit_rate)
    qdata = quantize(fdata, q_tree, qbss, qzbs)

    size1, size2, size3 = block_sizes(w_tree, q_tree, qbss)
    assert size1 + size2 + size3 == len(qdata)

    block1 = tokenize(qdata[:size1])
    block2 = tokenize(qdata[size1 : size1 + size2])
    block3 = tokenize(qdata[size1 + size2 :])

    table0 = _huffman_table(0, block1, strict)
    table1 = _huffman_table(1, block2 + block3, strict)

    f = BytesIO()
    write_marker(f, SOI)

    nistcom = build_nistcom(width, height, ppi, bit_rate, metadata)
    write_comment(f, nistcom_to_text(nistcom))
    for comment in comments:
        if comment is not None:
            write_comment(f, comment)

    write_transform_table(f, TransformTable(lofilt=list(LOFILT), hifilt=list(HIFILT)))
    write_quantization_table(
        f,
        QuantizationTable(bin_center=float(BIN_CENTER) / 100.0, q_bin=qbss, z_bin=qzbs),
    )
    write_frame_header(
        f,
        FrameHeader(
            black=0,
            white=255,
            height=height,
            width=width,
            m_shift=m_shift,
            r_scale=r_scale,
            encoder=ENCODER_ID,
            software=SOFTWARE_ID,
        ),
    )
    logging.debug("SOI, tables and frame header written")

    codes0 = canonical_codes(table0["bits"], table0["values"])
    codes1 = canonical_codes(table1["bits"], table1["values"])

    write_huffman_table(f, table0)
    _write_huffman_block(f, 0, block1, codes0)

    write_huffman_table(f, table1)
    _write_huffman_block(f, 1, block2, codes1)
    _write_huffman_block(f, 1, block3, codes1)

    write_marker(f, EOI)

    return f.getvalue()


################################################################################
# Decoding
################################################################################

_TABLES_AND_SOF = (DTT, DQT, DHT, COM, SOF)
_TABLES_AND_SOB = (DTT, DQT, DHT, COM, SOB)
_AFTER_BLOCK = (DTT, DQT, DHT, COM, SOB, EOI)


class _DecoderState(object):
    """The tables and comments read so far."""

    def __init__(self):
        self.transform_table = None
        self.quantization_table = None
        self.huffman_tables = {}
        self.comments = []

    def read_table(self, file, marker):
        logging.debug("Reading %s segment", MARKER_NAMES[marker])
        if marker == DTT:
            self.transform_table = read_transform_table(file)
        elif marker == DQT:
            self.quantization_table = read_quantization_table(file)
        elif marker == DHT:
            for table in read_huffman_tables(file):
                if table["table_id"] in self.huffman_tables:
                    raise DuplicateHuffmanTable(table["table_id"])
                self.huffman_tables[table["table_id"]] = table
        elif marker == COM:
            self.comments.append(read_comment(file))
        else:
            raise InvalidMarker((DTT, DQT, DHT, COM), marker)

    def check_tables(self):
        """Check the tables needed by every block have been read."""
        if self.quantization_table is None:
            raise MissingTable("DQT")
        if self.transform_table is None:
            raise MissingTable("DTT")


def _decode_blocks(file, state, num_coefficients):
    """
    Decode all Huffman coded blocks up to the EOI marker.

    Returns a 1D int32 array of 'num_coefficients' quantized values. If the
    data ends prematurely the values decoded so far are returned (padded
    with zeros).
    """
    out = []
    reader = BitReader(file)

    marker = read_marker(file, _TABLES_AND_SOB)
    while marker != EOI:
        while marker != SOB:
            state.read_table(file, marker)
            marker = read_marker(file, _TABLES_AND_SOB)

        state.check_tables()
        table_id = read_block_header(file)
        if table_id not in state.huffman_tables:
            raise MissingTable("DHT", table_id)
        table = state.huffman_tables[table_id]
        decoder = HuffmanDecoder(table["bits"], table["values"])
        logging.debug("Decoding block using Huffman table %d", table_id)

        reader.reset()
        try:
            marker = decode_block(reader, decoder, out)
        except EOFError:
            logging.warning(
                "Premature end of WSQ data after %d of %d coefficients",
                len(out),
                num_coefficients,
            )
            break

        if marker not in _AFTER_BLOCK:
            raise InvalidMarker(_AFTER_BLOCK, marker)

    if len(out) > num_coefficients:
        logging.warning(
            "Huffman coded data contains %d coefficients but the image has only %d",
            len(out),
            num_coefficients,
        )
        del out[num_coefficients:]

    qdata = np.zeros(num_coefficients, dtype=np.int32)
    qdata[: len(out)] = out
    return qdata


def wsq_decode(data):
    """
    Decompress a WSQ image.

    Parameters
    ==========
    data : bytes

    Returns
    =======
    image : :py:data:`DecodedImage`

    Raises
    ======
    :py:exc:`~ebts_wsq.exceptions.WSQError`
    """
    f = BytesIO(bytes(data))
    state = _DecoderState()

    read_marker(f, SOI)

    marker = read_marker(f, _TABLES_AND_SOF)
    while marker != SOF:
        state.read_table(f, marker)
        marker = read_marker(f, _TABLES_AND_SOF)

    header = read_frame_header(f)
    logging.debug("Read frame header\n%s", header)
    width = header["width"]
    height = header["height"]
    _check_dimensions(width, height)

    w_tree, q_tree = build_trees(width, height)

    qdata = _decode_blocks(f, state, width * height)
    state.check_tables()

    quant = state.quantization_table
    fdata = dequantize(
        qdata,
        q_tree,
        quant["q_bin"],
        quant["z_bin"],
        quant["bin_center"],
        width,
        height,
    )

    lofilt, hifilt = synthesis_filters(state.transform_table)
    reconstruct(fdata, w_tree, lofilt, hifilt)

    pixels = denormalise_image(fdata, header["m_shift"], header["r_scale"])

    metadata, comments, ppi = read_metadata(state.comments, width, height)
    try:
        bit_rate = float(metadata[WSQ_BITRATE])
    except (KeyError, ValueError):
        bit_rate = None

    return DecodedImage(
        pixels=pixels.tobytes(),
        width=width,
        height=height,
        ppi=ppi,
        metadata=metadata,
        comments=comments,
        black=header["black"],
        white=header["white"],
        bit_rate=bit_rate,
    )


def wsq_decode_to_array(data):
    """
    Decompress a WSQ image into a 2D uint8 :py:class:`numpy.ndarray` of
    shape (height, width).
    """
    image = wsq_decode(data)
    return np.frombuffer(image["pixels"], dtype=np.uint8).reshape(
        image["height"], image["width"]
    )
