"""
The :py:mod:`ebts_wsq.wsq.io` module contains low-level wrappers for file-like
objects which implement the bit and byte level I/O used by the WSQ format.

Huffman coded block data is written and read by :py:class:`BitWriter` and
:py:class:`BitReader`. These implement the WSQ byte-stuffing rule: whenever a
coded byte equals 0xFF a 0x00 byte is inserted after it so that coded data can
never be mistaken for a marker (which always has the form 0xFF followed by a
non-zero byte).

.. autoclass:: BitWriter
    :members:

.. autoclass:: BitReader
    :members:

The table segments surrounding the coded data are byte aligned big-endian
structures which are read and written using the following helpers. All
readers raise :py:exc:`~ebts_wsq.exceptions.TruncatedStream` when the file
ends early.

.. autofunction:: read_uint8

.. autofunction:: read_uint16

.. autofunction:: read_uint32

.. autofunction:: read_bytes

.. autofunction:: write_uint8

.. autofunction:: write_uint16

.. autofunction:: write_uint32

"""

import struct

from bitarray import bitarray

from ebts_wsq.exceptions import OutOfRangeError, TruncatedStream

__all__ = [
    "BitWriter",
    "BitReader",
    "read_uint8",
    "read_uint16",
    "read_uint32",
    "read_bytes",
    "write_uint8",
    "write_uint16",
    "write_uint32",
]


class BitWriter(object):
    """
    Accumulates a sequence of bits (most significant bit first) and writes
    them, byte-stuffed, to a file when :py:meth:`flush` is called.
    """

    def __init__(self, file):
        """
        Parameters
        ==========
        file : A Python 'file' object in binary-write mode.
        """
        self._file = file
        self._bits = bitarray(endian="big")

    def __len__(self):
        """The number of bits written but not yet flushed."""
        return len(self._bits)

    def write_bits(self, nbits, value):
        """
        Write the 'nbits' least significant bits of 'value', most significant
        bit first.

        Parameters
        ==========
        nbits : int
            Between 1 and 16 (inclusive).
        value : int
            Must satisfy 0 <= value < 2**nbits.
        """
        if not 1 <= nbits <= 16:
            raise OutOfRangeError(
                "nbits must be between 1 and 16, not {}".format(nbits)
            )
        if not 0 <= value < (1 << nbits):
            raise OutOfRangeError(
                "{} does not fit in {} bits".format(value, nbits),
            )
        self._bits.extend(format(value, "0{}b".format(nbits)))

    def flush(self):
        """
        Pad the final partial byte with 1-bits, write all accumulated bytes to
        the file (inserting a 0x00 after every 0xFF byte) and reset the writer.

        Returns
        =======
        num_bytes : int
            The number of bytes written to the file, including stuffed bytes.
        """
        padding = (8 - (len(self._bits) % 8)) % 8
        self._bits.extend([1] * padding)
        data = self._bits.tobytes().replace(b"\xFF", b"\xFF\x00")
        self._file.write(data)
        self._bits = bitarray(endian="big")
        return len(data)


class BitReader(object):
    """
    Reads bits (most significant bit first) from Huffman coded block data,
    removing stuffed 0x00 bytes and detecting markers.

    When a 0xFF byte followed by a non-zero byte is encountered, both bytes
    are consumed and the 16-bit marker value is recorded in :py:attr:`marker`.
    From then on every read returns 0 (without touching the file) until
    :py:meth:`reset` is called. The reader therefore never reads past a
    marker.

    When the end-of-file is encountered, reads will result in an
    :py:exc:`EOFError`.
    """

    def __init__(self, file):
        """
        Parameters
        ==========
        file : A Python 'file' object in binary-read mode.
        """
        self._file = file

        # Bits of the current byte not yet consumed (the low 'bit_count' bits
        # of 'current_byte')
        self._current_byte = 0
        self._bit_count = 0

        self.marker = None
        """None, or the value of the marker which ended the coded data."""

    def reset(self):
        """
        Clear any detected marker and discard the remaining bits of the
        current byte (i.e. realign with the file position).
        """
        self.marker = None
        self._bit_count = 0
        self._current_byte = 0

    def _next_byte(self):
        byte = self._file.read(1)
        if len(byte) != 1:
            raise EOFError("End of file in Huffman coded data")
        return byte[0]

    def _refill(self):
        """
        Load the next byte. Returns False if a marker was found instead.
        """
        byte = self._next_byte()
        if byte == 0xFF:
            following = self._next_byte()
            if following != 0x00:
                self.marker = (byte << 8) | following
                self._bit_count = 0
                return False
        self._current_byte = byte
        self._bit_count = 8
        return True

    def read_bit(self):
        """
        Read a single bit. Returns 0 once a marker has been detected.
        """
        if self.marker is not None:
            return 0
        if self._bit_count == 0 and not self._refill():
            return 0
        self._bit_count -= 1
        return (self._current_byte >> self._bit_count) & 1

    def read_bits(self, nbits):
        """
        Read an 'nbits'-bit unsigned integer. Bits which would lie beyond a
        detected marker read as 0.
        """
        value = 0
        while nbits > 0:
            if self.marker is not None:
                return value << nbits
            if self._bit_count == 0 and not self._refill():
                return value << nbits
            take = min(nbits, self._bit_count)
            self._bit_count -= take
            value = (value << take) | (
                (self._current_byte >> self._bit_count) & ((1 << take) - 1)
            )
            nbits -= take
        return value


################################################################################
# Byte-aligned helpers
################################################################################


def read_bytes(file, num_bytes, context="segment data"):
    """
    Read exactly 'num_bytes' bytes from 'file'.
    """
    data = file.read(num_bytes)
    if len(data) != num_bytes:
        raise TruncatedStream(context)
    return data


def read_uint8(file, context="segment data"):
    """Read an unsigned byte."""
    return read_bytes(file, 1, context)[0]


def read_uint16(file, context="segment data"):
    """Read a big-endian unsigned 16-bit integer."""
    return struct.unpack(">H", read_bytes(file, 2, context))[0]


def read_uint32(file, context="segment data"):
    """Read a big-endian unsigned 32-bit integer."""
    return struct.unpack(">I", read_bytes(file, 4, context))[0]


def write_uint8(file, value):
    """Write an unsigned byte."""
    file.write(struct.pack(">B", value))


def write_uint16(file, value):
    """Write a big-endian unsigned 16-bit integer."""
    file.write(struct.pack(">H", value))


def write_uint32(file, value):
    """Write a big-endian unsigned 32-bit integer."""
    file.write(struct.pack(">I", value))
