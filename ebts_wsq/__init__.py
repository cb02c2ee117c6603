"""
The :py:mod:`ebts_wsq` package contains codecs for the two binary formats
used to exchange fingerprint and other biometric data between agencies:

* :py:mod:`ebts_wsq.ebts`: A parser and builder for EBTS/NIST ITL
  transaction files, a record oriented container mixing ASCII tagged fields
  with binary image records.
* :py:mod:`ebts_wsq.wsq`: An encoder and decoder for the FBI Wavelet Scalar
  Quantization (WSQ) grayscale image compression format used for 500 ppi
  fingerprint images carried inside those transactions.

Errors raised by either codec are defined in :py:mod:`ebts_wsq.exceptions`.

Command line tools
------------------

``ebts-print FILE``
    Print the records and fields of an EBTS transaction.

``wsq-encode INPUT OUTPUT``, ``wsq-decode INPUT OUTPUT``
    Convert between WSQ and other image formats.
"""

from ebts_wsq.version import __version__  # noqa: F401
