import pytest

from io import BytesIO

from ebts_wsq.exceptions import OutOfRangeError, TruncatedStream

from ebts_wsq.wsq.io import (
    BitWriter,
    BitReader,
    read_bytes,
    read_uint8,
    read_uint16,
    read_uint32,
    write_uint8,
    write_uint16,
    write_uint32,
)


class TestBitWriter(object):
    def test_writes_msb_first(self):
        f = BytesIO()
        w = BitWriter(f)
        w.write_bits(4, 0b1010)
        w.write_bits(4, 0b0011)
        assert len(w) == 8
        assert w.flush() == 1
        assert f.getvalue() == b"\xA3"

    def test_pads_with_ones(self):
        f = BytesIO()
        w = BitWriter(f)
        w.write_bits(3, 0b000)
        assert w.flush() == 1
        assert f.getvalue() == b"\x1F"

    def test_stuffs_ff_bytes(self):
        f = BytesIO()
        w = BitWriter(f)
        w.write_bits(16, 0xFF12)
        assert w.flush() == 3
        assert f.getvalue() == b"\xFF\x00\x12"

    def test_empty_flush(self):
        f = BytesIO()
        w = BitWriter(f)
        assert w.flush() == 0
        assert f.getvalue() == b""

    def test_flush_resets(self):
        f = BytesIO()
        w = BitWriter(f)
        w.write_bits(8, 0x01)
        w.flush()
        assert len(w) == 0
        w.write_bits(8, 0x02)
        w.flush()
        assert f.getvalue() == b"\x01\x02"

    @pytest.mark.parametrize("nbits,value", [(0, 0), (17, 0), (4, 16), (4, -1)])
    def test_out_of_range(self, nbits, value):
        w = BitWriter(BytesIO())
        with pytest.raises(OutOfRangeError):
            w.write_bits(nbits, value)


class TestBitReader(object):
    def test_reads_msb_first(self):
        r = BitReader(BytesIO(b"\xA3"))
        assert [r.read_bit() for _ in range(8)] == [1, 0, 1, 0, 0, 0, 1, 1]

    def test_read_bits_spans_bytes(self):
        r = BitReader(BytesIO(b"\x12\x34\x56"))
        assert r.read_bits(4) == 0x1
        assert r.read_bits(12) == 0x234
        assert r.read_bits(8) == 0x56

    def test_removes_stuffed_bytes(self):
        r = BitReader(BytesIO(b"\xFF\x00\x12"))
        assert r.read_bits(16) == 0xFF12
        assert r.marker is None

    def test_detects_marker(self):
        f = BytesIO(b"\x80\xFF\xA3\x00\x03")
        r = BitReader(f)
        assert r.read_bits(8) == 0x80
        assert r.read_bit() == 0
        assert r.marker == 0xFFA3
        # Never reads beyond the marker
        assert f.tell() == 3
        assert r.read_bits(8) == 0

    def test_bits_beyond_marker_read_as_zero(self):
        r = BitReader(BytesIO(b"\xF0\xFF\xA1"))
        assert r.read_bits(4) == 0xF
        assert r.read_bits(8) == 0x00
        assert r.marker == 0xFFA1

    def test_reset(self):
        f = BytesIO(b"\xFF\xA3\x5A")
        r = BitReader(f)
        r.read_bit()
        assert r.marker == 0xFFA3
        r.reset()
        assert r.marker is None
        assert r.read_bits(8) == 0x5A

    def test_eof(self):
        r = BitReader(BytesIO(b"\x01"))
        r.read_bits(8)
        with pytest.raises(EOFError):
            r.read_bit()

    def test_round_trip_with_writer(self):
        f = BytesIO()
        w = BitWriter(f)
        values = [(3, 5), (16, 0xFFFF), (1, 0), (9, 300), (7, 127)]
        for nbits, value in values:
            w.write_bits(nbits, value)
        w.flush()

        r = BitReader(BytesIO(f.getvalue()))
        assert [r.read_bits(nbits) for nbits, _ in values] == [v for _, v in values]


class TestIntegerIO(object):
    def test_write(self):
        f = BytesIO()
        write_uint8(f, 0x12)
        write_uint16(f, 0x3456)
        write_uint32(f, 0x789ABCDE)
        assert f.getvalue() == b"\x12\x34\x56\x78\x9A\xBC\xDE"

    def test_read(self):
        f = BytesIO(b"\x12\x34\x56\x78\x9A\xBC\xDE\xF0")
        assert read_uint8(f) == 0x12
        assert read_uint16(f) == 0x3456
        assert read_uint32(f) == 0x789ABCDE
        assert read_bytes(f, 1) == b"\xF0"

    @pytest.mark.parametrize("read", [read_uint8, read_uint16, read_uint32])
    def test_truncated(self, read):
        with pytest.raises(TruncatedStream, match=r"frame header"):
            read(BytesIO(b""), "frame header")
