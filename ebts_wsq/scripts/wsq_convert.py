r"""
.. _wsq-encode:

``wsq-encode`` and ``wsq-decode``
=================================

Command-line utilities which convert images to and from the WSQ format.
Any image format supported by Pillow may be used; colour images are
converted to greyscale before encoding.

Usage
-----

To compress an image::

    $ wsq-encode fingerprint.png fingerprint.wsq --bitrate 0.75 --ppi 500

If ``--ppi`` is not given, the resolution recorded in the input image (if
any) is used.

To decompress an image::

    $ wsq-decode fingerprint.wsq fingerprint.png
    fingerprint.wsq: 500x500 pixels, 500 ppi

The output format is chosen from the output filename's extension.

Arguments
---------

The complete set of arguments can be listed using ``--help``.
"""

import sys
import logging

from argparse import ArgumentParser

import numpy as np

from PIL import Image

from ebts_wsq import __version__

from ebts_wsq.exceptions import EbtsWsqError

from ebts_wsq.string_utils import wrap_paragraphs

from ebts_wsq.wsq.codec import wsq_encode, wsq_decode

__all__ = [
    "encode_main",
    "decode_main",
]


def _add_common_arguments(parser):
    parser.add_argument(
        "--version",
        action="version",
        version="%(prog)s {}".format(__version__),
    )

    parser.add_argument(
        "input",
        help="""
            The input image filename.
        """,
    )

    parser.add_argument(
        "output",
        help="""
            The output image filename.
        """,
    )

    parser.add_argument(
        "--verbose",
        "-v",
        action="count",
        default=0,
        help="""
            Show debugging output.
        """,
    )


def parse_encode_args(*args, **kwargs):
    parser = ArgumentParser(
        description="""
        Compress an image using the WSQ fingerprint image compression format.
    """
    )
    _add_common_arguments(parser)

    parser.add_argument(
        "--bitrate",
        "-b",
        type=float,
        default=0.75,
        help="""
            The target bit rate in bits per pixel. (Default: %(default)s).
        """,
    )

    parser.add_argument(
        "--ppi",
        "-p",
        type=int,
        help="""
            The image resolution in pixels per inch. Defaults to the
            resolution recorded in the input image, if any.
        """,
    )

    parser.add_argument(
        "--comment",
        "-c",
        action="append",
        default=[],
        help="""
            A comment to include in the output. May be given several times.
        """,
    )

    parser.add_argument(
        "--metadata",
        "-m",
        action="append",
        default=[],
        metavar="KEY=VALUE",
        help="""
            An additional NISTCOM metadata field. May be given several times.
        """,
    )

    args = parser.parse_args(*args, **kwargs)

    metadata = {}
    for item in args.metadata:
        key, equals, value = item.partition("=")
        if not equals:
            parser.error("--metadata values must be of the form KEY=VALUE")
        metadata[key] = value
    args.metadata = metadata

    return args


def parse_decode_args(*args, **kwargs):
    parser = ArgumentParser(
        description="""
        Decompress a WSQ image.
    """
    )
    _add_common_arguments(parser)
    return parser.parse_args(*args, **kwargs)


def _image_ppi(image):
    dpi = image.info.get("dpi")
    if dpi:
        return int(round(dpi[0]))
    else:
        return -1


def encode_main(*args, **kwargs):
    args = parse_encode_args(*args, **kwargs)

    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO)

    try:
        with Image.open(args.input) as image:
            ppi = args.ppi if args.ppi is not None else _image_ppi(image)
            pixels = np.asarray(image.convert("L"), dtype=np.uint8)
    except OSError as e:
        sys.stderr.write("Error: Could not read {}: {}\n".format(args.input, e))
        return 1

    try:
        data = wsq_encode(
            pixels,
            ppi=ppi,
            bit_rate=args.bitrate,
            metadata=args.metadata,
            comments=args.comment,
        )
    except EbtsWsqError as e:
        sys.stderr.write("Error: {}\n".format(wrap_paragraphs(e.explain())))
        return 2

    with open(args.output, "wb") as f:
        f.write(data)

    logging.info(
        "Compressed %s (%dx%d pixels) to %d bytes",
        args.input,
        pixels.shape[1],
        pixels.shape[0],
        len(data),
    )
    return 0


def decode_main(*args, **kwargs):
    args = parse_decode_args(*args, **kwargs)

    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO)

    try:
        with open(args.input, "rb") as f:
            data = f.read()
    except OSError as e:
        sys.stderr.write("Error: Could not open {}: {}\n".format(args.input, e))
        return 1

    try:
        decoded = wsq_decode(data)
    except EbtsWsqError as e:
        sys.stderr.write("Error: {}\n".format(wrap_paragraphs(e.explain())))
        return 2

    pixels = np.frombuffer(decoded["pixels"], dtype=np.uint8).reshape(
        decoded["height"], decoded["width"]
    )
    image = Image.fromarray(pixels)
    if decoded["ppi"] > 0:
        image.save(args.output, dpi=(decoded["ppi"], decoded["ppi"]))
    else:
        image.save(args.output)

    print(
        "{}: {}x{} pixels, {}".format(
            args.input,
            decoded["width"],
            decoded["height"],
            "{} ppi".format(decoded["ppi"]) if decoded["ppi"] > 0 else "unknown ppi",
        )
    )
    return 0
