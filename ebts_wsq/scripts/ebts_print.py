r"""
.. _ebts-print:

``ebts-print``
==============

A command-line utility which prints the contents of an EBTS transaction
file.

Usage
-----

Each record is printed followed by its fields, one per line, with field
mnemonics where known. Occurrences are separated by ``;`` and subfields by
``,``. Image data is summarised rather than printed::

    $ ebts-print transaction.eft
    Type-1 record
      1.001 LEN: 112
      1.002 VER: 0400
      1.003 CNT: 1,02;2,00;10,01
      1.004 TOT: CAR
      ...
    Type-2 record (IDC 0)
      2.001 LEN: 41
      2.002 IDC: 00
      2.018 NAM: Smith,John
    Type-10 record (IDC 1)
      10.001 LEN: 10524
      10.002 IDC: 01
      ...
      10.999 DATA: <10433 bytes, jpeg>

Records and fields of binary header records (types 3-8) are shown in the
same way.

Arguments
---------

The complete set of arguments can be listed using ``--help``.
"""

import sys
import logging

from argparse import ArgumentParser

from ebts_wsq import __version__

from ebts_wsq.exceptions import EbtsWsqError

from ebts_wsq.string_utils import indent, wrap_paragraphs

from ebts_wsq.ebts.constants import ParseType, Type7Handling

from ebts_wsq.ebts.tags import field_number_to_mnemonic

from ebts_wsq.ebts.images import detect_image_format

from ebts_wsq.ebts.parser import ebts_parse

__all__ = [
    "format_record",
    "format_ebts",
    "main",
]


def _format_field(record, number):
    field = record.fields[number]
    mnemonic = field_number_to_mnemonic(record.record_type, number)
    tag = "{}.{:03d}{}".format(
        record.record_type, number, " {}".format(mnemonic) if mnemonic else ""
    )
    if number == record.image_field:
        data = record.image_data
        image_format = detect_image_format(data)
        value = "<{} bytes{}>".format(
            len(data), ", {}".format(image_format) if image_format else ""
        )
    else:
        value = field.to_string(";", ",")
    return "{}: {}".format(tag, value)


def format_record(record):
    """Produce a human readable description of a single record."""
    title = "Type-{} record".format(record.record_type)
    if record.idc != -1:
        title += " (IDC {})".format(record.idc)
    return "\n".join(
        [title]
        + [indent(_format_field(record, number)) for number in sorted(record.fields)]
    )


def format_ebts(ebts):
    """Produce a human readable description of a whole transaction."""
    return "\n".join(format_record(record) for record in ebts.all_records)


def parse_args(*args, **kwargs):
    parser = ArgumentParser(
        description="""
        Print the records and fields of an EBTS transaction file.
    """
    )

    parser.add_argument(
        "--version",
        action="version",
        version="%(prog)s {}".format(__version__),
    )

    parser.add_argument(
        "filename",
        help="""
            The EBTS file to print.
        """,
    )

    parser.add_argument(
        "--descriptive-only",
        "-d",
        action="store_true",
        default=False,
        help="""
            Only print the type 1 and type 2 records.
        """,
    )

    parser.add_argument(
        "--type7",
        choices=["type4", "nist"],
        default="type4",
        help="""
            How to interpret type 7 records: with a type 4 style header
            ('type4') or with only length and IDC header fields ('nist').
            (Default: %(default)s).
        """,
    )

    parser.add_argument(
        "--strict",
        action="store_true",
        default=False,
        help="""
            Treat inconsistent type 7 record lengths as an error.
        """,
    )

    parser.add_argument(
        "--verbose",
        "-v",
        action="count",
        default=0,
        help="""
            Show debugging output while parsing.
        """,
    )

    return parser.parse_args(*args, **kwargs)


def main(*args, **kwargs):
    args = parse_args(*args, **kwargs)

    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO)

    try:
        with open(args.filename, "rb") as f:
            data = f.read()
    except OSError as e:
        sys.stderr.write("Error: Could not open {}: {}\n".format(args.filename, e))
        return 1

    try:
        ebts = ebts_parse(
            data,
            parse_type=(
                ParseType.DESCRIPTIVE_ONLY if args.descriptive_only else ParseType.FULL
            ),
            type7_handling=(
                Type7Handling.NIST
                if args.type7 == "nist"
                else Type7Handling.TREAT_AS_TYPE4
            ),
            strict=args.strict,
        )
    except EbtsWsqError as e:
        sys.stderr.write("Error: {}\n".format(wrap_paragraphs(e.explain())))
        return 2

    print(format_ebts(ebts))
    return 0


if __name__ == "__main__":
    sys.exit(main())
