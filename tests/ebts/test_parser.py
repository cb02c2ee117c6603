import pytest

import logging

from ebts_wsq.exceptions import (
    EbtsParseError,
    EmptyRecord,
    InvalidField,
    MissingCntField,
    TruncatedRecord,
    UnsupportedRecordType,
)

from ebts_wsq.ebts.constants import ParseType, Type7Handling, TYPE_7_NIST_LAYOUT

from ebts_wsq.ebts.records import Field, LogicalRecord, Ebts

from ebts_wsq.ebts.builder import ebts_build

from ebts_wsq.ebts.parser import ebts_parse

from sample_transactions import FS, GS, JPEG_DATA, WSQ_DATA


MINIMAL_TYPE1 = b"1.001:36\x1d1.002:0400\x1d1.003:1\x1f01\x1e2\x1f00\x1c"

MINIMAL_TYPE2 = b"2.001:35\x1d2.002:00\x1d2.018:Smith\x1fJohn\x1c"

# Lists a type 2 and a type 4 record
TYPE1_WITH_TYPE4 = (
    b"1.001:41\x1d1.002:0400\x1d1.003:1\x1f02\x1e2\x1f00\x1e4\x1f01\x1c"
)


def make_type7(cga, payload, hll="0", vll="0", layout=None):
    record = LogicalRecord(7, layout)
    if layout is None:
        record.set_field("IMP", "0")
        record.set_field("FGP", "0")
        record.set_field("ISR", "0")
        record.set_field("HLL", hll)
        record.set_field("VLL", vll)
        record.set_field("CGA", str(cga))
    record.set_image_data(payload)
    return record


def type7_data(record):
    ebts = Ebts()
    type1 = LogicalRecord(1)
    type1.set_field("VER", "0400")
    ebts.add_record(type1)
    ebts.add_record(record)
    return ebts_build(ebts)


class TestGenericRecords(object):
    def test_minimal(self):
        assert len(MINIMAL_TYPE1) == 36
        assert len(MINIMAL_TYPE2) == 35

        ebts = ebts_parse(MINIMAL_TYPE1 + MINIMAL_TYPE2)

        [type1] = ebts.records_by_type(1)
        assert type1.length == 36
        assert type1.get_field("VER") == Field.from_string("0400")
        assert type1.get_field("CNT").occurrences == [[b"1", b"01"], [b"2", b"00"]]

        [type2] = ebts.records_by_type(2)
        assert type2.length == 35
        assert type2.idc == 0
        assert type2.get_field("NAM").occurrences == [[b"Smith", b"John"]]

        assert [record.record_type for record in ebts.all_records] == [1, 2]

    def test_accepts_bytearray(self):
        ebts = ebts_parse(bytearray(MINIMAL_TYPE1 + MINIMAL_TYPE2))
        assert ebts.contains_record(2)

    def test_debug_logging(self, caplog):
        with caplog.at_level(logging.DEBUG):
            ebts_parse(MINIMAL_TYPE1 + MINIMAL_TYPE2)
        assert "Parsing record type 2" in caplog.text
        assert "Parsed field 1.003: 1,01;2,00" in caplog.text
        assert "Parsed field 2.018: Smith,John" in caplog.text

    def test_image_data_contains_separators(self, sample_ebts):
        ebts = ebts_parse(ebts_build(sample_ebts))
        [type10] = ebts.records_by_type(10)
        assert type10.image_data == JPEG_DATA

    def test_descriptive_only(self):
        # The type 4 record is never read
        data = TYPE1_WITH_TYPE4 + MINIMAL_TYPE2 + b"\x00\x00\x00\xff"
        ebts = ebts_parse(data, ParseType.DESCRIPTIVE_ONLY)
        assert [record.record_type for record in ebts.all_records] == [1, 2]

        with pytest.raises(TruncatedRecord):
            ebts_parse(data)


class TestBinaryRecords(object):
    def test_type4(self, sample_ebts):
        ebts = ebts_parse(ebts_build(sample_ebts))
        [type4] = ebts.records_by_type(4)
        assert type4.layout == (4, 1, 1, 6, 1, 2, 2, 1)
        assert type4.idc == 1
        assert type4.get_field("FGP") == Field.from_strings(["1"])
        assert type4.get_field("HLL") == Field.from_string("500")
        assert type4.image_data == WSQ_DATA

    def test_finger_positions(self, sample_ebts):
        sample_ebts.records_by_type(4)[0].set_field(
            "FGP", Field.from_strings(["2", "3", "0"])
        )
        ebts = ebts_parse(ebts_build(sample_ebts))
        assert ebts.records_by_type(4)[0].get_field("FGP").occurrences == [
            [b"2"],
            [b"3"],
            [b"0"],
        ]

    def test_all_padding_keeps_one_position(self, sample_ebts):
        sample_ebts.records_by_type(4)[0].set_field("FGP", "255")
        ebts = ebts_parse(ebts_build(sample_ebts))
        assert ebts.records_by_type(4)[0].get_field("FGP") == Field.from_string(
            "255"
        )

    def test_type8(self):
        ebts = Ebts()
        type1 = LogicalRecord(1)
        type1.set_field("VER", "0400")
        ebts.add_record(type1)
        type8 = LogicalRecord(8)
        for mnemonic, value in [("SIG", "0"), ("SRT", "1"), ("ISR", "0")]:
            type8.set_field(mnemonic, value)
        type8.set_field("HLL", "0")
        type8.set_field("VLL", "0")
        type8.set_image_data(b"vectors")
        ebts.add_record(type8)

        parsed = ebts_parse(ebts_build(ebts))
        assert parsed == ebts
        assert parsed.records_by_type(8)[0].length == 12 + 7

    def test_length_shorter_than_header(self, sample_ebts):
        data = bytearray(ebts_build(sample_ebts))
        # Overwrite the type 4 LEN field
        offset = sum(record.length for record in sample_ebts.all_records[:2])
        data[offset : offset + 4] = b"\x00\x00\x00\x05"
        with pytest.raises(InvalidField):
            ebts_parse(bytes(data))


class TestType7(object):
    def test_nist_round_trip(self):
        record = make_type7(0, b"\x00\x01\x02payload", layout=TYPE_7_NIST_LAYOUT)
        data = type7_data(record)

        ebts = ebts_parse(data, type7_handling=Type7Handling.NIST)
        [type7] = ebts.records_by_type(7)
        assert type7.layout == TYPE_7_NIST_LAYOUT
        assert type7.get_field(3).data == b"\x00\x01\x02payload"
        assert type7.length == 5 + 10
        assert type7 == record

    def test_signature_at_start(self):
        record = make_type7(2, WSQ_DATA)
        ebts = ebts_parse(type7_data(record))
        [type7] = ebts.records_by_type(7)
        assert type7.image_data == WSQ_DATA
        assert type7 == record

    def test_wrapped_image_found(self):
        record = make_type7(2, b"CBEFF wrapper" + JPEG_DATA)
        ebts = ebts_parse(type7_data(record))
        [type7] = ebts.records_by_type(7)
        assert type7.image_data == JPEG_DATA
        assert type7.length == 18 + len(JPEG_DATA)

    def test_wrapped_image_not_found(self):
        record = make_type7(1, b"no image in here")
        ebts = ebts_parse(type7_data(record))
        assert ebts.records_by_type(7)[0].image_data == b"no image in here"

    def test_raw_pixels_at_end(self):
        record = make_type7(0, b"header" + bytes(range(6)), hll="2", vll="3")
        ebts = ebts_parse(type7_data(record))
        [type7] = ebts.records_by_type(7)
        assert type7.image_data == bytes(range(6))
        assert type7.length == 18 + 6

    def test_raw_pixels_larger_than_payload(self):
        record = make_type7(0, b"short", hll="100", vll="100")
        ebts = ebts_parse(type7_data(record))
        assert ebts.records_by_type(7)[0].image_data == b"short"

    def test_length_mismatch(self, caplog):
        record = make_type7(1, WSQ_DATA)
        data = type7_data(record)[:-4]
        with caplog.at_level(logging.WARNING):
            ebts = ebts_parse(data)
        assert (
            "Unexpected remaining length found in type-7 record. "
            "Expected: {} Actual: {}".format(len(WSQ_DATA), len(WSQ_DATA) - 4)
        ) in caplog.text

        [type7] = ebts.records_by_type(7)
        assert type7.image_data == WSQ_DATA[:-4]
        assert type7.length == 18 + len(WSQ_DATA) - 4

    def test_length_mismatch_strict(self):
        data = type7_data(make_type7(1, WSQ_DATA))[:-4]
        with pytest.raises(InvalidField):
            ebts_parse(data, strict=True)

    def test_empty(self):
        record = make_type7(1, b"")
        data = bytearray(type7_data(record))
        data[-18:-14] = b"\x00\x00\x00\x00"
        with pytest.raises(EmptyRecord):
            ebts_parse(bytes(data))


class TestErrors(object):
    def test_empty_data(self):
        with pytest.raises(TruncatedRecord):
            ebts_parse(b"")

    def test_missing_cnt(self):
        data = b"1.001:20\x1d1.002:0400\x1c"
        with pytest.raises(MissingCntField) as exc_info:
            ebts_parse(data)
        assert str(exc_info.value) == (
            "Field 1.003/CNT not found (record type 1, field 3)"
        )

    def test_unsupported_record_type(self):
        data = b"1.001:37\x1d1.002:0400\x1d1.003:1\x1f01\x1e11\x1f01\x1c"
        with pytest.raises(UnsupportedRecordType) as exc_info:
            ebts_parse(data)
        assert exc_info.value.record_type == 11
        assert exc_info.value.message == "File contains unsupported record type 11"

    def test_empty_record(self):
        data = b"1.001:0\x1d1.003:1\x1f00\x1c"
        with pytest.raises(EmptyRecord):
            ebts_parse(data)

    @pytest.mark.parametrize("data", [b"xx:1" + FS, b"1.a01:5" + FS, b"no tag here"])
    def test_invalid_tag(self, data):
        with pytest.raises(InvalidField):
            ebts_parse(data)

    def test_invalid_cnt_record_type(self):
        data = b"1.001:25\x1d1.003:1\x1f01\x1ex\x1f01\x1c"
        with pytest.raises(InvalidField) as exc_info:
            ebts_parse(data)
        assert exc_info.value.field_number == 3

    def test_length_too_large(self):
        data = MINIMAL_TYPE1.replace(b"1.001:36", b"1.001:99")
        with pytest.raises(TruncatedRecord) as exc_info:
            ebts_parse(data)
        assert exc_info.value.record_type == 1

    def test_missing_record(self):
        with pytest.raises(TruncatedRecord) as exc_info:
            ebts_parse(MINIMAL_TYPE1)
        assert exc_info.value.record_type == 2

    def test_no_separator(self):
        with pytest.raises(TruncatedRecord):
            ebts_parse(b"1.001:36" + GS + b"1.002:0400")

    def test_image_length_incorrect(self, sample_ebts):
        data = ebts_build(sample_ebts)
        # Set the type 10 LEN field so that the record ends just before the
        # image data
        start = data.index(b"10.01:") + len(b"10.01:")
        length_end = data.index(GS, start)
        image = data.index(b"10.999:", start) + len(b"10.999:")
        length = "{:0{}d}".format(image - start + 6, length_end - start)
        data = data[:start] + length.encode("ascii") + data[length_end:]
        with pytest.raises(InvalidField) as exc_info:
            ebts_parse(data)
        assert exc_info.value.field_number == 999

    def test_all_are_parse_errors(self):
        for exc in (EmptyRecord, InvalidField, TruncatedRecord, MissingCntField):
            assert issubclass(exc, EbtsParseError)
