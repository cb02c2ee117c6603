import pytest

from ebts_wsq.ebts.images import IMAGE_SIGNATURES, detect_image_format, find_image_start


class TestDetectImageFormat(object):
    @pytest.mark.parametrize("name", sorted(IMAGE_SIGNATURES))
    def test_signatures(self, name):
        assert detect_image_format(IMAGE_SIGNATURES[name] + b"rest") == name

    @pytest.mark.parametrize("data", [b"", b"\xFF", b"\xFF\xA0", b"not an image"])
    def test_unknown(self, data):
        assert detect_image_format(data) is None


class TestFindImageStart(object):
    def test_found(self):
        data = b"wrapper\xFF\xD8\xFF\xE0jpeg"
        assert find_image_start(data, 2) == 7

    def test_wsq(self):
        data = b"\x00\x01\xFF\xA0\xFF\xA8"
        assert find_image_start(data, 1) == 2

    def test_range(self):
        data = b"\xFF\xD8\xFFabc\xFF\xD8\xFF"
        assert find_image_start(data, 2, start=1) == 6
        assert find_image_start(data, 2, start=1, end=8) == -1

    def test_not_found(self):
        assert find_image_start(b"nothing here", 2) == -1

    @pytest.mark.parametrize("cga", [0, 3, 99])
    def test_unsearchable_cga(self, cga):
        assert find_image_start(b"\xFF\xD8\xFF\xFF\xA0\xFF", cga) == -1
