"""
The :py:mod:`ebts_wsq.string_utils` module contains the small set of text
formatting routines used when pretty-printing codec structures and error
explanations.
"""

from textwrap import wrap, dedent

__all__ = [
    "indent",
    "ellipsise_bytes",
    "wrap_paragraphs",
]


def indent(text, prefix="  "):
    """
    Indent every line of the string 'text' with the prefix string 'prefix'.
    """
    return prefix + ("\n" + prefix).join(text.split("\n"))


def ellipsise_bytes(data, max_length=16):
    """
    Produce a short hexadecimal rendering of a byte string, eliding the middle
    of long values. The total length is always included, e.g.::

        >>> ellipsise_bytes(b"\\xFF\\xA0\\xFF\\xA8" * 10, max_length=4)
        'FF A0 ... FF A8 (40 bytes)'
    """
    data = bytes(data)
    if len(data) <= max_length:
        body = " ".join("{:02X}".format(b) for b in data)
    else:
        half = max_length // 2
        body = "{} ... {}".format(
            " ".join("{:02X}".format(b) for b in data[:half]),
            " ".join("{:02X}".format(b) for b in data[-half:]),
        )
    return "{} ({} bytes)".format(body, len(data)).lstrip()


def wrap_paragraphs(text, width=None):
    """
    De-indent a multi-line string and re-flow each blank-line separated
    paragraph into a single line (or lines of at most 'width' characters).

    Lines which remain indented after de-indentation (e.g. example command
    lines) are kept verbatim.

    Parameters
    ==========
    text : str
    width : int or None
        If None, every paragraph becomes exactly one line.
    """
    paragraphs = []
    current = []
    for line in dedent(text).strip("\n").splitlines():
        if line.strip() == "":
            if current:
                paragraphs.append(current)
                current = []
        elif line.startswith(" "):
            if current:
                paragraphs.append(current)
                current = []
            paragraphs.append([line.rstrip(), None])
        else:
            current.append(line.strip())
    if current:
        paragraphs.append(current)

    out = []
    for paragraph in paragraphs:
        if len(paragraph) == 2 and paragraph[1] is None:
            out.append(paragraph[0])
            continue
        if out and out[-1] != "":
            out.append("")
        joined = " ".join(paragraph)
        if width is None:
            out.append(joined)
        else:
            out.extend(wrap(joined, width))
        out.append("")

    while out and out[-1] == "":
        out.pop()

    return "\n".join(out)
