"""
:py:mod:`ebts_wsq.wsq.nistcom`: NISTCOM comment segments
=========================================================

WSQ files produced by this package start with a COM segment containing a
'NISTCOM' block: a series of ``key value`` lines describing the image. Keys
and values are percent-encoded (as UTF-8) so that neither may contain spaces
or newlines. The first line is always ``NIST_COM N`` where ``N`` is the
number of lines which follow it. For example::

    NIST_COM 8
    PIX_WIDTH 500
    PIX_HEIGHT 500
    PIX_DEPTH 8
    PPI 500
    LOSSY 1
    COLORSPACE GRAY
    COMPRESSION WSQ
    WSQ_BITRATE 0.75

Additional metadata supplied by the user are carried in the same block.

.. autofunction:: build_nistcom

.. autofunction:: nistcom_to_text

.. autofunction:: is_nistcom

.. autofunction:: parse_nistcom

.. autofunction:: read_metadata
"""

import logging

from urllib.parse import quote, unquote_plus

import numpy as np

from ebts_wsq.wsq.constants import NISTCOM_HEADER, PIX_DEPTH

__all__ = [
    "PIX_WIDTH",
    "PIX_HEIGHT",
    "PIX_DEPTH_KEY",
    "PPI",
    "LOSSY",
    "COLORSPACE",
    "COMPRESSION",
    "WSQ_BITRATE",
    "build_nistcom",
    "nistcom_to_text",
    "is_nistcom",
    "parse_nistcom",
    "read_metadata",
]

PIX_WIDTH = "PIX_WIDTH"
PIX_HEIGHT = "PIX_HEIGHT"
PIX_DEPTH_KEY = "PIX_DEPTH"
PPI = "PPI"
LOSSY = "LOSSY"
COLORSPACE = "COLORSPACE"
COMPRESSION = "COMPRESSION"
WSQ_BITRATE = "WSQ_BITRATE"

_STANDARD_KEYS = (
    NISTCOM_HEADER,
    PIX_WIDTH,
    PIX_HEIGHT,
    PIX_DEPTH_KEY,
    PPI,
    LOSSY,
    COLORSPACE,
    COMPRESSION,
    WSQ_BITRATE,
)


def build_nistcom(width, height, ppi, bit_rate, metadata=None):
    """
    Build the fields of the NISTCOM block for an encoded image.

    User supplied 'metadata' is included but cannot override the standard
    fields, which always describe the image actually encoded.

    Returns
    =======
    fields : {key: value, ...}
        An ordered dictionary of strings, starting with ``NIST_COM``.
    """
    # Standard keys first, in a fixed order
    fields = {key: "" for key in _STANDARD_KEYS}

    if metadata is not None:
        for key, value in metadata.items():
            if key is None or value is None:
                continue
            fields[str(key)] = str(value)

    fields[NISTCOM_HEADER] = str(len(fields) - 1)
    fields[PIX_WIDTH] = str(width)
    fields[PIX_HEIGHT] = str(height)
    fields[PIX_DEPTH_KEY] = str(PIX_DEPTH)
    fields[PPI] = str(ppi)
    fields[LOSSY] = "1"
    fields[COLORSPACE] = "GRAY"
    fields[COMPRESSION] = "WSQ"
    fields[WSQ_BITRATE] = str(np.float32(bit_rate))

    return fields


def nistcom_to_text(fields):
    """Serialise NISTCOM fields as percent-encoded 'key value' lines."""
    return "".join(
        "{} {}\n".format(quote(key, safe=""), quote(value, safe=""))
        for key, value in fields.items()
    )


def is_nistcom(text):
    """True if a comment contains a NISTCOM block."""
    return text.startswith(NISTCOM_HEADER)


def parse_nistcom(text):
    """
    Parse the text of a NISTCOM comment.

    Lines without a separating space are ignored (with a warning).

    Returns
    =======
    fields : {key: value, ...}
    """
    fields = {}
    for line in text.splitlines():
        if not line:
            continue
        key, space, value = line.partition(" ")
        if not space:
            logging.warning("Ignoring malformed NISTCOM line %r", line)
            continue
        fields[unquote_plus(key)] = unquote_plus(value)
    return fields


def read_metadata(comments, width, height):
    """
    Split the comments read from a WSQ file into NISTCOM metadata and
    ordinary comments.

    The standard fields describing the image are always set from the decoded
    image rather than trusted from the file. The ``NIST_COM`` header line
    itself is not included.

    Returns
    =======
    metadata : {key: value, ...}
    other_comments : [str, ...]
    ppi : int
        The PPI field, or -1 if absent or not a positive integer.
    """
    metadata = {}
    other_comments = []
    for comment in comments:
        if is_nistcom(comment):
            metadata.update(parse_nistcom(comment))
        else:
            other_comments.append(comment)

    metadata.pop(NISTCOM_HEADER, None)
    metadata[PIX_WIDTH] = str(width)
    metadata[PIX_HEIGHT] = str(height)
    metadata[PIX_DEPTH_KEY] = str(PIX_DEPTH)
    metadata[LOSSY] = "1"
    metadata[COLORSPACE] = "GRAY"
    metadata[COMPRESSION] = "WSQ"

    try:
        ppi = int(metadata.get(PPI, ""))
    except ValueError:
        ppi = -1
    if ppi <= 0:
        ppi = -1
    metadata[PPI] = str(ppi)

    return (metadata, other_comments, ppi)
