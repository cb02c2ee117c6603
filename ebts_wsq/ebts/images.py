"""
:py:mod:`ebts_wsq.ebts.images`: Image payload detection
========================================================

Helpers for recognising the compressed image formats carried in EBTS image
records from their leading 'magic' bytes.

.. autodata:: IMAGE_SIGNATURES
    :annotation:

.. autodata:: CGA_FORMATS
    :annotation:

.. autofunction:: detect_image_format

.. autofunction:: find_image_start
"""

__all__ = [
    "IMAGE_SIGNATURES",
    "CGA_FORMATS",
    "detect_image_format",
    "find_image_start",
]

IMAGE_SIGNATURES = {
    "wsq": bytes.fromhex("FFA0FF"),
    "jpeg": bytes.fromhex("FFD8FF"),
    "jp2": bytes.fromhex("0000000C6A5020200D0A870A"),
    "png": bytes.fromhex("89504E470D0A1A0A"),
    "tiff-le": b"II*\x00",
    "tiff-be": b"MM\x00*",
    "gif": b"GIF8",
}
"""Leading bytes of each recognised image format."""

CGA_FORMATS = {
    1: "wsq",
    2: "jpeg",
    4: "jp2",
    5: "jp2",
    6: "png",
}
"""Image format named by each binary header compression algorithm (CGA)."""


def detect_image_format(data):
    """
    Return the name of the image format (a key of :py:data:`IMAGE_SIGNATURES`)
    whose signature 'data' starts with, or None.
    """
    for name, signature in IMAGE_SIGNATURES.items():
        if data.startswith(signature):
            return name
    return None


def find_image_start(data, cga, start=0, end=None):
    """
    Search for the start of the image named by a compression algorithm code.

    Parameters
    ==========
    data : bytes
    cga : int
        A binary header compression algorithm code (see
        :py:data:`CGA_FORMATS`).
    start, end : int
        The range of 'data' to search.

    Returns
    =======
    offset : int
        The offset into 'data' of the first match, or -1 if not found (or the
        CGA does not name a searchable format).
    """
    name = CGA_FORMATS.get(cga)
    if name is None:
        return -1
    if end is None:
        end = len(data)
    return data.find(IMAGE_SIGNATURES[name], start, end)
