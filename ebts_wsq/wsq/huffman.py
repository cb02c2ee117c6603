"""
:py:mod:`ebts_wsq.wsq.huffman`: Huffman coding of quantized coefficients
=========================================================================

Quantized coefficients are converted into a sequence of *symbols* drawn from
a 256 entry alphabet, some of which are followed by a fixed number of
additional raw bits:

=========  ===========================================  ===========
Symbol     Meaning                                      Extra bits
=========  ===========================================  ===========
1-100      A run of that many zero coefficients         0
101        Positive coefficient                         8
102        Negative coefficient (magnitude follows)     8
103        Positive coefficient                         16
104        Negative coefficient (magnitude follows)     16
105        A run of zeros                               8
106        A run of zeros                               16
107-254    The coefficient 'symbol - 180' (-73 to 74)   0
=========  ===========================================  ===========

Tables are generated from the symbol frequencies of the data they will code
using the procedure from the JPEG standard (ITU-T T.81 Annex K.2), with code
lengths limited to 16 bits. A reserved extra symbol guarantees no codeword
consists of only 1-bits.

Encoding
--------

.. autofunction:: tokenize

.. autofunction:: count_symbols

.. autofunction:: generate_table

.. autofunction:: canonical_codes

.. autofunction:: encode_block

Decoding
--------

.. autoclass:: HuffmanDecoder
    :members:

.. autofunction:: decode_block
"""

import logging

import numpy as np

from ebts_wsq.exceptions import (
    AllOnesCodeword,
    InvalidHuffmanCode,
    InvalidMarker,
    OversizeCoefficient,
)

from ebts_wsq.wsq.constants import (
    MAX_HUFFBITS,
    MAX_HUFFCOUNTS_WSQ,
    MAX_HUFFCOEFF,
    MAX_HUFFZRUN,
)

__all__ = [
    "tokenize",
    "count_symbols",
    "generate_table",
    "canonical_codes",
    "check_all_ones",
    "encode_block",
    "HuffmanDecoder",
    "decode_block",
]

_LOW_MAX_COEFF = -(MAX_HUFFCOEFF - 1)
"""The most negative coefficient with its own symbol."""

_MAX_RUN = 0xFFFF
"""The longest zero run a single symbol can represent."""

_RESERVED_SYMBOL = MAX_HUFFCOUNTS_WSQ
"""
A dummy symbol given a frequency of one while generating tables and then
removed, ensuring the longest codeword is not all 1-bits.
"""


def _run_tokens(run, tokens):
    while run >= _MAX_RUN:
        tokens.append((106, 16, _MAX_RUN))
        run -= _MAX_RUN
    if run == 0:
        return
    elif run <= MAX_HUFFZRUN:
        tokens.append((run, 0, 0))
    elif run <= 0xFF:
        tokens.append((105, 8, run))
    else:
        tokens.append((106, 16, run))


def _coefficient_token(value):
    if value > MAX_HUFFCOEFF:
        if value > 0xFFFF:
            raise OversizeCoefficient("quantized coefficient", value)
        elif value > 0xFF:
            return (103, 16, value)
        else:
            return (101, 8, value)
    elif value < _LOW_MAX_COEFF:
        if value < -0xFFFF:
            raise OversizeCoefficient("quantized coefficient", value)
        elif value < -0xFF:
            return (104, 16, -value)
        else:
            return (102, 8, -value)
    else:
        return (value + 180, 0, 0)


def tokenize(qdata):
    """
    Convert a sequence of quantized coefficients into Huffman symbols.

    Parameters
    ==========
    qdata : :py:class:`numpy.ndarray`
        1D array of integer coefficients.

    Returns
    =======
    tokens : [(symbol, num_extra_bits, extra_bits), ...]

    Raises
    ======
    :py:exc:`~ebts_wsq.exceptions.OversizeCoefficient`
        If a coefficient's magnitude exceeds 65535.
    """
    qdata = np.asarray(qdata).ravel()
    nonzero = np.flatnonzero(qdata)
    # Length of the zero run preceding each non-zero value, plus the
    # trailing run
    runs = np.diff(np.concatenate(([-1], nonzero, [len(qdata)]))) - 1

    tokens = []
    for run, value in zip(runs[:-1].tolist(), qdata[nonzero].tolist()):
        _run_tokens(run, tokens)
        tokens.append(_coefficient_token(value))
    _run_tokens(int(runs[-1]), tokens)
    return tokens


def count_symbols(tokens):
    """
    Count the occurrences of each symbol.

    Returns
    =======
    counts : [int, ...]
        257 entries: one for each symbol plus the reserved symbol (which is
        always given a count of 1).
    """
    counts = [0] * (MAX_HUFFCOUNTS_WSQ + 1)
    for symbol, _, _ in tokens:
        counts[symbol] += 1
    counts[_RESERVED_SYMBOL] = 1
    return counts


def _least_frequent(freq):
    """
    Find the two least frequent symbols with a non-zero frequency, the
    higher numbered symbol winning ties. Either may be None.
    """
    candidates = sorted(
        (count, -symbol) for symbol, count in enumerate(freq) if count > 0
    )
    v1 = -candidates[0][1] if len(candidates) > 0 else None
    v2 = -candidates[1][1] if len(candidates) > 1 else None
    return (v1, v2)


def _code_sizes(counts):
    """Compute the (unlimited) Huffman code length of every symbol."""
    freq = list(counts)
    codesize = [0] * len(freq)
    others = [None] * len(freq)

    while True:
        v1, v2 = _least_frequent(freq)
        if v2 is None:
            break

        freq[v1] += freq[v2]
        freq[v2] = 0

        codesize[v1] += 1
        while others[v1] is not None:
            v1 = others[v1]
            codesize[v1] += 1
        others[v1] = v2

        codesize[v2] += 1
        while others[v2] is not None:
            v2 = others[v2]
            codesize[v2] += 1

    return codesize


def _limit_code_lengths(length_counts):
    """
    Adjust a histogram of code lengths (index = length) so that no code is
    longer than 16 bits, as described in ITU-T T.81 Annex K.3.
    """
    for i in range(len(length_counts) - 1, MAX_HUFFBITS, -1):
        while length_counts[i] > 0:
            j = i - 2
            while length_counts[j] == 0:
                j -= 1
            length_counts[i] -= 2
            length_counts[i - 1] += 1
            length_counts[j + 1] += 2
            length_counts[j] -= 1
    del length_counts[MAX_HUFFBITS + 1 :]


def generate_table(counts):
    """
    Generate a Huffman table for a block from its symbol counts.

    Parameters
    ==========
    counts : [int, ...]
        As produced by :py:func:`count_symbols`.

    Returns
    =======
    bits : [int, ...]
        16 entries giving the number of codes of each length (1 to 16 bits).
    values : [int, ...]
        The symbols, in order of increasing code length.
    """
    codesize = _code_sizes(counts)

    length_counts = [0] * (max(max(codesize), MAX_HUFFBITS) + 1)
    for size in codesize:
        if size:
            length_counts[size] += 1
    if len(length_counts) > MAX_HUFFBITS + 1:
        logging.debug("Limiting Huffman code lengths to %d bits", MAX_HUFFBITS)
    _limit_code_lengths(length_counts)

    # Remove the reserved symbol (which has the longest code)
    for size in range(MAX_HUFFBITS, 0, -1):
        if length_counts[size]:
            length_counts[size] -= 1
            break

    bits = length_counts[1:]
    values = sorted(
        (symbol for symbol in range(MAX_HUFFCOUNTS_WSQ) if codesize[symbol]),
        key=lambda symbol: (codesize[symbol], symbol),
    )[: sum(bits)]

    return (bits, values)


def _assign_codes(bits):
    """Yield (code, length) for every code in a canonical Huffman table."""
    code = 0
    for length, count in enumerate(bits, 1):
        for _ in range(count):
            yield (code, length)
            code += 1
        code <<= 1


def check_all_ones(bits, table_id=0, strict=False):
    """
    Check that no codeword in a table is made up entirely of 1-bits.

    Raises :py:exc:`~ebts_wsq.exceptions.AllOnesCodeword` when 'strict' is
    True, otherwise logs a warning. Returns True if the table is valid.
    """
    for code, length in _assign_codes(bits):
        if code == (1 << length) - 1:
            if strict:
                raise AllOnesCodeword(table_id, length)
            logging.warning(
                "Huffman table %d contains an all-ones codeword of length %d",
                table_id,
                length,
            )
            return False
    return True


def canonical_codes(bits, values):
    """
    Compute the codeword for each symbol of a table.

    Returns
    =======
    codes : {symbol: (code, length), ...}
    """
    return {
        symbol: code_length
        for symbol, code_length in zip(values, _assign_codes(bits))
    }


def encode_block(writer, tokens, codes):
    """
    Write Huffman coded symbols (and their extra bits) to a
    :py:class:`~ebts_wsq.wsq.io.BitWriter`. The writer is not flushed.
    """
    for symbol, nbits, extra in tokens:
        code, length = codes[symbol]
        writer.write_bits(length, code)
        if nbits:
            writer.write_bits(nbits, extra)


class HuffmanDecoder(object):
    """
    The lookup tables used to decode one Huffman table (see ITU-T T.81
    F.2.2.3).
    """

    def __init__(self, bits, values):
        self.values = list(values)
        self.maxcode = [-1] * (MAX_HUFFBITS + 1)
        self.mincode = [0] * (MAX_HUFFBITS + 1)
        self.valptr = [0] * (MAX_HUFFBITS + 1)

        code = 0
        index = 0
        for length, count in enumerate(bits, 1):
            if count:
                self.valptr[length] = index
                self.mincode[length] = code
                code += count
                index += count
                self.maxcode[length] = code - 1
            code <<= 1

    def decode_symbol(self, reader):
        """
        Read one symbol from a :py:class:`~ebts_wsq.wsq.io.BitReader`.

        Returns None if a marker is encountered before the codeword is
        complete (i.e. the end of the block has been reached).
        """
        code = reader.read_bit()
        if reader.marker is not None:
            return None

        length = 1
        while code > self.maxcode[length]:
            length += 1
            if length > MAX_HUFFBITS:
                raise InvalidHuffmanCode(None)
            code = (code << 1) | reader.read_bit()
            if reader.marker is not None:
                return None

        index = self.valptr[length] + code - self.mincode[length]
        if index >= len(self.values):
            raise InvalidHuffmanCode(None)
        return self.values[index]


def _read_extra(reader, nbits):
    value = reader.read_bits(nbits)
    if reader.marker is not None:
        raise InvalidMarker(None, reader.marker)
    return value


def decode_block(reader, decoder, out):
    """
    Decode coefficients until the end of the current block, appending them
    to the list 'out'.

    Returns
    =======
    marker : int
        The marker which ended the block.

    Raises
    ======
    :py:exc:`EOFError`
        If the data ends before a marker is found. Coefficients decoded so
        far will have been appended to 'out'.
    :py:exc:`~ebts_wsq.exceptions.InvalidHuffmanCode`
    :py:exc:`~ebts_wsq.exceptions.InvalidMarker`
        If a marker appears within the extra bits following a symbol.
    """
    while True:
        symbol = decoder.decode_symbol(reader)
        if symbol is None:
            return reader.marker

        if 0 < symbol <= MAX_HUFFZRUN:
            out.extend([0] * symbol)
        elif 106 < symbol < 0xFF:
            out.append(symbol - 180)
        elif symbol == 101:
            out.append(_read_extra(reader, 8))
        elif symbol == 102:
            out.append(-_read_extra(reader, 8))
        elif symbol == 103:
            out.append(_read_extra(reader, 16))
        elif symbol == 104:
            out.append(-_read_extra(reader, 16))
        elif symbol == 105:
            out.extend([0] * _read_extra(reader, 8))
        elif symbol == 106:
            out.extend([0] * _read_extra(reader, 16))
        else:
            raise InvalidHuffmanCode(symbol)
