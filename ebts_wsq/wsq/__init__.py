"""
:py:mod:`ebts_wsq.wsq`: FBI WSQ grayscale fingerprint codec
============================================================

An implementation of the Wavelet Scalar Quantization (WSQ) image compression
format used for 500 ppi fingerprint images.

The main entry points are :py:func:`~ebts_wsq.wsq.codec.wsq_encode` and
:py:func:`~ebts_wsq.wsq.codec.wsq_decode`::

    >>> from ebts_wsq.wsq import wsq_encode, wsq_decode
    >>> data = wsq_encode(pixels, width=500, height=500, ppi=500)
    >>> image = wsq_decode(data)
    >>> image["width"], image["height"]
    (500, 500)

The codec is made up of the following modules:

* :py:mod:`ebts_wsq.wsq.codec`: Encoding and decoding pipelines
* :py:mod:`ebts_wsq.wsq.trees`: Subband layout
* :py:mod:`ebts_wsq.wsq.transform`: Wavelet transform
* :py:mod:`ebts_wsq.wsq.quantization`: Quantization
* :py:mod:`ebts_wsq.wsq.huffman`: Huffman coding
* :py:mod:`ebts_wsq.wsq.tables`: Table segments
* :py:mod:`ebts_wsq.wsq.nistcom`: NISTCOM metadata
* :py:mod:`ebts_wsq.wsq.io`: Bit and byte level I/O
* :py:mod:`ebts_wsq.wsq.constants`: Constants
"""

from ebts_wsq.wsq.codec import *  # noqa: F401, F403
