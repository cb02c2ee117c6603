"""
:py:mod:`ebts_wsq.ebts`: EBTS/NIST ITL transaction codec
=========================================================

Parsing and building of EBTS (Electronic Biometric Transmission
Specification) transactions, which follow the ANSI/NIST-ITL record format.

The main entry points are :py:func:`~ebts_wsq.ebts.parser.ebts_parse` and
:py:func:`~ebts_wsq.ebts.builder.ebts_build`::

    >>> from ebts_wsq.ebts import ebts_parse, ebts_build
    >>> ebts = ebts_parse(open("transaction.eft", "rb").read())
    >>> [record.record_type for record in ebts.all_records]
    [1, 2, 4, 4, 10]
    >>> data = ebts_build(ebts)

The package is made up of the following modules:

* :py:mod:`ebts_wsq.ebts.records`: Data model
* :py:mod:`ebts_wsq.ebts.parser`: Parser
* :py:mod:`ebts_wsq.ebts.builder`: Serialiser
* :py:mod:`ebts_wsq.ebts.tags`: Field tags and mnemonics
* :py:mod:`ebts_wsq.ebts.images`: Image payload detection
* :py:mod:`ebts_wsq.ebts.constants`: Constants
"""

from ebts_wsq.ebts.constants import ParseType, Type7Handling  # noqa: F401

from ebts_wsq.ebts.records import *  # noqa: F401, F403

from ebts_wsq.ebts.parser import *  # noqa: F401, F403

from ebts_wsq.ebts.builder import *  # noqa: F401, F403
