import pytest

import logging

import numpy as np

from io import BytesIO

from ebts_wsq.exceptions import (
    AllOnesCodeword,
    InvalidHuffmanCode,
    InvalidMarker,
    OversizeCoefficient,
)

from ebts_wsq.wsq.io import BitWriter, BitReader

from ebts_wsq.wsq.huffman import (
    tokenize,
    count_symbols,
    generate_table,
    canonical_codes,
    check_all_ones,
    encode_block,
    HuffmanDecoder,
    decode_block,
)


class TestTokenize(object):
    def test_empty(self):
        assert tokenize(np.zeros(0, dtype=np.int32)) == []

    def test_small_values_and_runs(self):
        assert tokenize(np.array([0, 0, 5, 0])) == [(2, 0, 0), (185, 0, 0), (1, 0, 0)]

    @pytest.mark.parametrize(
        "value,token",
        [
            (74, (254, 0, 0)),
            (-73, (107, 0, 0)),
            (75, (101, 8, 75)),
            (255, (101, 8, 255)),
            (256, (103, 16, 256)),
            (-74, (102, 8, 74)),
            (-255, (102, 8, 255)),
            (-300, (104, 16, 300)),
        ],
    )
    def test_escaped_values(self, value, token):
        assert tokenize(np.array([value])) == [token]

    @pytest.mark.parametrize(
        "run,tokens",
        [
            (100, [(100, 0, 0)]),
            (101, [(105, 8, 101)]),
            (255, [(105, 8, 255)]),
            (256, [(106, 16, 256)]),
            (0xFFFF + 3, [(106, 16, 0xFFFF), (3, 0, 0)]),
        ],
    )
    def test_zero_runs(self, run, tokens):
        assert tokenize(np.zeros(run, dtype=np.int32)) == tokens

    def test_oversize(self):
        with pytest.raises(OversizeCoefficient):
            tokenize(np.array([70000]))


def test_count_symbols():
    counts = count_symbols([(1, 0, 0), (1, 0, 0), (180, 0, 0)])
    assert len(counts) == 257
    assert counts[1] == 2
    assert counts[180] == 1
    assert counts[256] == 1
    assert sum(counts) == 4


class TestGenerateTable(object):
    def test_simple(self):
        counts = [0] * 257
        counts[180] = 10
        counts[1] = 5
        counts[256] = 1
        bits, values = generate_table(counts)
        assert len(bits) == 16
        assert sorted(values) == [1, 180]
        assert values[0] == 180
        assert sum(bits) == 2
        assert check_all_ones(bits)

    def test_lengths_limited_to_16_bits(self):
        # Fibonacci frequencies give a maximally unbalanced tree
        counts = [0] * 257
        a, b = 1, 1
        for symbol in range(107, 107 + 30):
            counts[symbol] = a
            a, b = b, a + b
        counts[256] = 1
        bits, values = generate_table(counts)

        assert len(bits) == 16
        assert sum(bits) == 30
        assert sorted(values) == list(range(107, 137))
        kraft = sum(count * 2.0 ** -length for length, count in enumerate(bits, 1))
        assert kraft < 1.0
        assert check_all_ones(bits)


class TestCheckAllOnes(object):
    def test_valid(self):
        assert check_all_ones([1, 1] + [0] * 14)

    def test_warns(self, caplog):
        with caplog.at_level(logging.WARNING):
            assert not check_all_ones([2] + [0] * 15, table_id=1)
        assert "all-ones codeword" in caplog.text

    def test_strict(self):
        with pytest.raises(AllOnesCodeword):
            check_all_ones([2] + [0] * 15, strict=True)


def test_canonical_codes():
    bits = [1, 2] + [0] * 14
    assert canonical_codes(bits, [180, 1, 2]) == {
        180: (0b0, 1),
        1: (0b10, 2),
        2: (0b11, 2),
    }


def _encode(tokens, bits, values, marker=b"\xFF\xA1"):
    f = BytesIO()
    writer = BitWriter(f)
    encode_block(writer, tokens, canonical_codes(bits, values))
    writer.flush()
    return f.getvalue() + marker


class TestDecodeBlock(object):
    def test_round_trip(self):
        rand = np.random.RandomState(0)
        qdata = rand.choice(
            [0, 0, 0, 0, 0, 1, -1, 2, -2, 73, -90, 300, -1000], size=5000
        )
        qdata[100:400] = 0
        tokens = tokenize(qdata)
        bits, values = generate_table(count_symbols(tokens))

        data = _encode(tokens, bits, values)
        reader = BitReader(BytesIO(data))
        out = []
        assert decode_block(reader, HuffmanDecoder(bits, values), out) == 0xFFA1
        assert out == qdata.tolist()

    def test_marker_mid_codeword_ends_block(self):
        bits = [1, 1] + [0] * 14
        values = [180, 181]
        # Seven zero coefficients then the first bit of a two-bit code
        reader = BitReader(BytesIO(b"\x01\xFF\xA3"))
        out = []
        assert decode_block(reader, HuffmanDecoder(bits, values), out) == 0xFFA3
        assert out == [0] * 7

    def test_marker_inside_extra_bits(self):
        bits = [1, 1] + [0] * 14
        values = [101, 180]
        reader = BitReader(BytesIO(b"\x55\xFF\xA3"))
        with pytest.raises(InvalidMarker):
            decode_block(reader, HuffmanDecoder(bits, values), [])

    def test_invalid_code(self):
        bits = [1] + [0] * 15
        reader = BitReader(BytesIO(b"\xFF\x00\xFF\x00\xFF\x00"))
        with pytest.raises(InvalidHuffmanCode):
            decode_block(reader, HuffmanDecoder(bits, [180]), [])

    @pytest.mark.parametrize("symbol", [0, 255])
    def test_invalid_symbol(self, symbol):
        bits = [1] + [0] * 15
        reader = BitReader(BytesIO(b"\x00"))
        with pytest.raises(InvalidHuffmanCode):
            decode_block(reader, HuffmanDecoder(bits, [symbol]), [])

    def test_eof_keeps_partial_data(self):
        bits = [1] + [0] * 15
        reader = BitReader(BytesIO(b"\x00"))
        out = []
        with pytest.raises(EOFError):
            decode_block(reader, HuffmanDecoder(bits, [181]), out)
        assert out == [1] * 8
