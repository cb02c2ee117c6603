import pytest

import logging

import numpy as np

from io import BytesIO

from ebts_wsq.exceptions import (
    InvalidImage,
    InvalidMarker,
    MissingTable,
    DuplicateHuffmanTable,
    TruncatedStream,
    WSQError,
)

from ebts_wsq.wsq.constants import SOI, EOI, SOF, SOB, DTT, DQT, DHT, COM

from ebts_wsq.wsq.tables import (
    FrameHeader,
    write_marker,
    write_frame_header,
    write_block_header,
)

from ebts_wsq.wsq.codec import (
    MIN_DIMENSION,
    wsq_encode,
    wsq_decode,
    wsq_decode_to_array,
)


def ridge_image(width, height, period=10.0, seed=0):
    """
    A deterministic fingerprint-like image: concentric, slightly wavy ridges
    with a little noise.
    """
    y, x = np.mgrid[0:height, 0:width].astype(np.float64)
    cx = width * 0.45
    cy = height * 0.55
    radius = np.hypot(x - cx, y - cy)
    angle = np.arctan2(y - cy, x - cx)
    phase = (2.0 * np.pi * radius / period) + (1.5 * np.sin(3.0 * angle))
    noise = np.random.RandomState(seed).normal(0.0, 2.0, (height, width))
    pixels = 140.0 + (60.0 * np.sin(phase)) + noise
    return np.clip(np.round(pixels), 0, 255).astype(np.uint8)


def mean_absolute_error(a, b):
    return np.mean(np.abs(a.astype(np.int32) - b.astype(np.int32)))


def segments(data):
    """
    Walk the segments of an encoded WSQ file, returning a list of (marker,
    offset) pairs. Coded block data is skipped by searching for the next
    unstuffed 0xFF byte.
    """
    assert data[:2] == b"\xFF\xA0"
    found = [(SOI, 0)]
    pos = 2
    while True:
        marker = (data[pos] << 8) | data[pos + 1]
        found.append((marker, pos))
        pos += 2
        if marker == EOI:
            assert pos == len(data)
            return found

        length = (data[pos] << 8) | data[pos + 1]
        pos += length
        if marker == SOB:
            while True:
                if data[pos] != 0xFF:
                    pos += 1
                elif data[pos + 1] == 0x00:
                    pos += 2
                else:
                    break


def segment_markers(data):
    return [marker for marker, _ in segments(data)]


@pytest.fixture(scope="module")
def ridges():
    return ridge_image(300, 260)


@pytest.fixture(scope="module")
def encoded_ridges(ridges):
    return wsq_encode(ridges, ppi=500)


class TestEncode(object):
    def test_start_and_end_markers(self, encoded_ridges):
        assert encoded_ridges[:2] == b"\xFF\xA0"
        assert encoded_ridges[-2:] == b"\xFF\xA1"

    def test_segment_order(self, encoded_ridges):
        assert segment_markers(encoded_ridges) == [
            SOI,
            COM,
            DTT,
            DQT,
            SOF,
            DHT,
            SOB,
            DHT,
            SOB,
            SOB,
            EOI,
        ]

    def test_extra_comments(self, ridges):
        data = wsq_encode(ridges, comments=["one", "two"])
        assert segment_markers(data)[:5] == [SOI, COM, COM, COM, DTT]

    def test_compresses(self, ridges, encoded_ridges):
        assert len(encoded_ridges) < ridges.size / 4

    def test_higher_bit_rate_gives_larger_output(self, ridges, encoded_ridges):
        assert len(wsq_encode(ridges, ppi=500, bit_rate=2.0)) > len(encoded_ridges)

    def test_raw_buffer_matches_array(self, ridges, encoded_ridges):
        height, width = ridges.shape
        data = wsq_encode(ridges.tobytes(), width, height, ppi=500)
        assert data == encoded_ridges
        data = wsq_encode(bytearray(ridges.tobytes()), width, height, ppi=500)
        assert data == encoded_ridges

    def test_deterministic(self, ridges, encoded_ridges):
        assert wsq_encode(ridges, ppi=500) == encoded_ridges

    def test_strict_mode(self, ridges, encoded_ridges):
        assert wsq_encode(ridges, ppi=500, strict=True) == encoded_ridges

    @pytest.mark.parametrize(
        "pixels,width,height",
        [
            # Too small
            (np.zeros((MIN_DIMENSION - 1, 100), dtype=np.uint8), None, None),
            (np.zeros((100, MIN_DIMENSION - 1), dtype=np.uint8), None, None),
            # Not 2D
            (np.zeros((100, 100, 3), dtype=np.uint8), None, None),
            # Wrong dtype
            (np.zeros((100, 100), dtype=np.uint16), None, None),
            # Inconsistent dimensions
            (np.zeros((100, 100), dtype=np.uint8), 100, 101),
            # Raw buffers need dimensions
            (b"\x00" * 10000, None, None),
            # Wrong buffer length
            (b"\x00" * 9999, 100, 100),
        ],
    )
    def test_invalid_images(self, pixels, width, height):
        with pytest.raises(InvalidImage):
            wsq_encode(pixels, width, height)

    @pytest.mark.parametrize("bit_rate", [0.0, -1.0])
    def test_invalid_bit_rate(self, ridges, bit_rate):
        with pytest.raises(InvalidImage):
            wsq_encode(ridges, bit_rate=bit_rate)


class TestDecode(object):
    def test_round_trip(self, ridges, encoded_ridges):
        image = wsq_decode(encoded_ridges)
        assert image["width"] == 300
        assert image["height"] == 260
        assert image["ppi"] == 500
        assert image["black"] == 0
        assert image["white"] == 255
        assert image["bit_rate"] == pytest.approx(0.75)
        assert image["comments"] == []
        assert len(image["pixels"]) == 300 * 260

        pixels = np.frombuffer(image["pixels"], dtype=np.uint8).reshape(260, 300)
        assert mean_absolute_error(pixels, ridges) <= 10

    def test_decode_to_array(self, ridges, encoded_ridges):
        pixels = wsq_decode_to_array(encoded_ridges)
        assert pixels.shape == ridges.shape
        assert pixels.dtype == np.uint8

    def test_metadata_and_comments(self, ridges):
        data = wsq_encode(
            ridges, ppi=1000, metadata={"FOO": "bar baz"}, comments=["hello"]
        )
        image = wsq_decode(data)
        assert image["ppi"] == 1000
        assert image["metadata"]["FOO"] == "bar baz"
        assert image["metadata"]["PIX_WIDTH"] == "300"
        assert image["metadata"]["COMPRESSION"] == "WSQ"
        assert "NIST_COM" not in image["metadata"]
        assert image["comments"] == ["hello"]

    def test_unknown_ppi(self, ridges):
        image = wsq_decode(wsq_encode(ridges))
        assert image["ppi"] == -1

    def test_constant_image_is_exact(self):
        pixels = np.full((70, 90), 100, dtype=np.uint8)
        assert np.array_equal(wsq_decode_to_array(wsq_encode(pixels)), pixels)

    @pytest.mark.parametrize("width,height", [(65, 65), (100, 131), (257, 200)])
    def test_dimensions_preserved(self, width, height):
        pixels = ridge_image(width, height, seed=width)
        decoded = wsq_decode_to_array(wsq_encode(pixels, bit_rate=0.75))
        assert decoded.shape == (height, width)
        assert mean_absolute_error(decoded, pixels) <= 10

    def test_bad_start_marker(self, encoded_ridges):
        with pytest.raises(InvalidMarker) as exc_info:
            wsq_decode(b"\x00\x00" + encoded_ridges[2:])
        assert exc_info.value.expected == SOI
        assert exc_info.value.actual == 0x0000

    def test_empty(self):
        with pytest.raises(TruncatedStream):
            wsq_decode(b"")

    def test_not_a_wsq_file(self):
        with pytest.raises(WSQError):
            wsq_decode(b"\x89PNG\r\n\x1a\n" + b"\x00" * 100)

    def test_missing_huffman_table(self):
        f = BytesIO()
        write_marker(f, SOI)
        write_frame_header(
            f,
            FrameHeader(
                black=0,
                white=255,
                height=100,
                width=100,
                m_shift=128.0,
                r_scale=1.0,
                encoder=2,
                software=0,
            ),
        )
        write_block_header(f, 0)
        write_marker(f, EOI)
        with pytest.raises(MissingTable):
            wsq_decode(f.getvalue())

    def test_quantization_table_after_first_block(self, encoded_ridges):
        found = segments(encoded_ridges)
        dqt_start, sof_start = [pos for marker, pos in found if marker in (DQT, SOF)]
        second_dht = [pos for marker, pos in found if marker == DHT][1]

        # Move the DQT segment between the first and second coded blocks
        data = (
            encoded_ridges[:dqt_start]
            + encoded_ridges[sof_start:second_dht]
            + encoded_ridges[dqt_start:sof_start]
            + encoded_ridges[second_dht:]
        )
        assert segment_markers(data).index(DQT) > segment_markers(data).index(SOB)

        with pytest.raises(MissingTable) as exc_info:
            wsq_decode(data)
        assert exc_info.value.table_name == "DQT"

    def test_huffman_table_redefined(self, encoded_ridges):
        found = segments(encoded_ridges)
        second_dht = [pos for marker, pos in found if marker == DHT][1]
        second_sob = [pos for marker, pos in found if marker == SOB][1]

        # Repeat the DHT segment defining table 1 before the second block
        dht = encoded_ridges[second_dht:second_sob]
        data = encoded_ridges[:second_sob] + dht + encoded_ridges[second_sob:]

        with pytest.raises(DuplicateHuffmanTable) as exc_info:
            wsq_decode(data)
        assert exc_info.value.table_id == 1

    def test_truncated_block_decodes_partially(self, ridges, encoded_ridges, caplog):
        # Cut the data half way through the second coded block
        sobs = [pos for marker, pos in segments(encoded_ridges) if marker == SOB]
        start = sobs[1] + 5
        end = sobs[2]
        assert end - start > 2
        cut = (start + end) // 2

        with caplog.at_level(logging.WARNING):
            pixels = wsq_decode_to_array(encoded_ridges[:cut])
        assert "Premature end of WSQ data" in caplog.text
        assert pixels.shape == ridges.shape


def test_marker_exclusion(encoded_ridges):
    # Every 0xFF within coded data is stuffed; the only unstuffed 0xFF bytes
    # start the markers which legally follow a block
    markers = segment_markers(encoded_ridges)
    assert all(m in (SOI, EOI, SOF, SOB, DTT, DQT, DHT, COM) for m in markers)


def test_reference_sized_image():
    # A fingerprint card sized image
    pixels = ridge_image(1508, 1008, seed=42)
    data = wsq_encode(pixels, ppi=500, bit_rate=0.75)
    assert data[:2] == b"\xFF\xA0"
    assert data[-2:] == b"\xFF\xA1"

    decoded = wsq_decode_to_array(data)
    assert decoded.shape == pixels.shape
    assert mean_absolute_error(decoded, pixels) <= 10
