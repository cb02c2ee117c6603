"""
:py:mod:`ebts_wsq.ebts.tags`: Field tags and mnemonics
=======================================================

Every EBTS field is identified by a tag of the form ``R.NNN`` where ``R`` is
the record type and ``NNN`` the field number (e.g. ``2.019``). Most fields
also have a short mnemonic (e.g. ``IDC``) defined by the standard.

The :py:data:`TAG_DICTIONARY` maps between the two for the record types
supported by this package. The dictionary is read-only.

.. autodata:: TAG_DICTIONARY
    :annotation:

.. autofunction:: split_tag

.. autofunction:: tag_to_record_type

.. autofunction:: tag_to_field_number

.. autofunction:: field_number_to_mnemonic

.. autofunction:: field_number_to_description

.. autofunction:: field_mnemonic_to_number

.. autofunction:: field_tag_to_mnemonic

.. autofunction:: bytes_to_int

.. autofunction:: int_to_bytes
"""

import logging

from types import MappingProxyType

from ebts_wsq.exceptions import UnknownMnemonic

__all__ = [
    "TAG_DICTIONARY",
    "split_tag",
    "tag_to_record_type",
    "tag_to_field_number",
    "field_number_to_mnemonic",
    "field_number_to_description",
    "field_mnemonic_to_number",
    "field_tag_to_mnemonic",
    "bytes_to_int",
    "int_to_bytes",
]

_BINARY_IMAGE_FIELDS = {
    1: ("LEN", "Logical record length"),
    2: ("IDC", "Information designation character"),
    3: ("IMP", "Impression type"),
    4: ("FGP", "Friction ridge generalized position"),
    5: ("ISR", "Image scanning resolution"),
    6: ("HLL", "Horizontal line length"),
    7: ("VLL", "Vertical line length"),
    8: ("CGA", "Compression algorithm"),
    9: ("DATA", "Image data"),
}

_IMAGE_RECORD_FIELDS = {
    1: ("LEN", "Logical record length"),
    2: ("IDC", "Information designation character"),
    3: ("IMP", "Impression type"),
    4: ("SRC", "Source agency"),
    6: ("HLL", "Horizontal line length"),
    7: ("VLL", "Vertical line length"),
    8: ("SLC", "Scale units"),
    9: ("THPS", "Transmitted horizontal pixel scale"),
    10: ("TVPS", "Transmitted vertical pixel scale"),
    11: ("CGA", "Compression algorithm"),
    12: ("BPX", "Bits per pixel"),
    13: ("FGP", "Friction ridge generalized position"),
    16: ("SHPS", "Scanned horizontal pixel scale"),
    17: ("SVPS", "Scanned vertical pixel scale"),
    20: ("COM", "Comment"),
    902: ("ANN", "Annotation information"),
    903: ("DUI", "Device unique identifier"),
    904: ("MMS", "Make/model/serial number"),
    993: ("SAN", "Source agency name"),
    995: ("ASC", "Associated context"),
    996: ("HAS", "Hash"),
    997: ("SOR", "Source representation"),
    998: ("GEO", "Geographic sample acquisition location"),
}
"""Fields shared by the variable resolution image records (types 13-15)."""


def _image_record(**extra):
    fields = dict(_IMAGE_RECORD_FIELDS)
    for mnemonic, (number, description) in extra.items():
        fields[number] = (mnemonic, description)
    return fields


TAG_DICTIONARY = MappingProxyType(
    {
        1: {
            1: ("LEN", "Logical record length"),
            2: ("VER", "Version number"),
            3: ("CNT", "File content"),
            4: ("TOT", "Type of transaction"),
            5: ("DAT", "Date"),
            6: ("PRY", "Priority"),
            7: ("DAI", "Destination agency identifier"),
            8: ("ORI", "Originating agency identifier"),
            9: ("TCN", "Transaction control number"),
            10: ("TCR", "Transaction control reference"),
            11: ("NSR", "Native scanning resolution"),
            12: ("NTR", "Nominal transmitting resolution"),
            13: ("DOM", "Domain name"),
            14: ("GMT", "Greenwich mean time"),
            15: ("DCS", "Directory of character sets"),
            16: ("APS", "Application profile specifications"),
            17: ("ANM", "Agency names"),
            18: ("GNS", "Geographic name set"),
        },
        2: {
            1: ("LEN", "Logical record length"),
            2: ("IDC", "Information designation character"),
            5: ("RET", "Retention code"),
            14: ("FBI", "FBI number"),
            15: ("SID", "State identification number"),
            16: ("SOC", "Social security account number"),
            17: ("MNU", "Miscellaneous identification number"),
            18: ("NAM", "Name"),
            19: ("AKA", "Aliases"),
            20: ("POB", "Place of birth"),
            21: ("CTZ", "Country of citizenship"),
            22: ("DOB", "Date of birth"),
            24: ("SEX", "Sex"),
            25: ("RAC", "Race"),
            26: ("SMT", "Scars, marks and tattoos"),
            27: ("HGT", "Height"),
            29: ("WGT", "Weight"),
            31: ("EYE", "Color eyes"),
            32: ("HAI", "Hair color"),
            37: ("RFP", "Reason fingerprinted"),
            38: ("DPR", "Date printed"),
            73: ("CRI", "Controlling agency identifier"),
        },
        3: dict(_BINARY_IMAGE_FIELDS),
        4: dict(_BINARY_IMAGE_FIELDS),
        5: dict(_BINARY_IMAGE_FIELDS),
        6: dict(_BINARY_IMAGE_FIELDS),
        7: dict(_BINARY_IMAGE_FIELDS),
        8: {
            1: ("LEN", "Logical record length"),
            2: ("IDC", "Information designation character"),
            3: ("SIG", "Signature type"),
            4: ("SRT", "Signature representation type"),
            5: ("ISR", "Image scanning resolution"),
            6: ("HLL", "Horizontal line length"),
            7: ("VLL", "Vertical line length"),
            8: ("DATA", "Signature image data"),
        },
        9: {
            1: ("LEN", "Logical record length"),
            2: ("IDC", "Information designation character"),
            3: ("IMP", "Impression type"),
            4: ("FMT", "Minutiae format"),
            126: ("CBI", "M1 CBEFF information"),
            127: ("CEI", "M1 capture equipment identification"),
            128: ("HLL", "M1 horizontal line length"),
            129: ("VLL", "M1 vertical line length"),
            130: ("SLC", "M1 scale units"),
            131: ("THPS", "M1 transmitted horizontal pixel scale"),
            132: ("TVPS", "M1 transmitted vertical pixel scale"),
            133: ("FVW", "M1 finger view"),
            134: ("FGP", "M1 friction ridge generalized position"),
            135: ("FQD", "M1 friction ridge quality data"),
            136: ("NOM", "M1 number of minutiae"),
            137: ("FMD", "M1 finger minutiae data"),
            138: ("RCI", "M1 ridge count information"),
            139: ("CIN", "M1 core information"),
            140: ("DIN", "M1 delta information"),
            141: ("ADA", "M1 additional delta angles"),
            902: ("ANN", "Annotation information"),
            903: ("DUI", "Device unique identifier"),
            904: ("MMS", "Make/model/serial number"),
        },
        10: {
            1: ("LEN", "Logical record length"),
            2: ("IDC", "Information designation character"),
            3: ("IMT", "Image type"),
            4: ("SRC", "Source agency"),
            5: ("PHD", "Photo capture date"),
            6: ("HLL", "Horizontal line length"),
            7: ("VLL", "Vertical line length"),
            8: ("SLC", "Scale units"),
            9: ("THPS", "Transmitted horizontal pixel scale"),
            10: ("TVPS", "Transmitted vertical pixel scale"),
            11: ("CGA", "Compression algorithm"),
            12: ("CSP", "Color space"),
            13: ("SAP", "Subject acquisition profile"),
            16: ("SHPS", "Scanned horizontal pixel scale"),
            17: ("SVPS", "Scanned vertical pixel scale"),
            20: ("POS", "Subject pose"),
            21: ("POA", "Pose offset angle"),
            23: ("PAS", "Photo acquisition source"),
            38: ("COM", "Comment"),
            40: ("SMT", "NCIC SMT code"),
            41: ("SMS", "SMT size"),
            42: ("SMD", "SMT descriptors"),
            43: ("COL", "Tattoo color"),
            902: ("ANN", "Annotation information"),
            903: ("DUI", "Device unique identifier"),
            904: ("MMS", "Make/model/serial number"),
            993: ("SAN", "Source agency name"),
            995: ("ASC", "Associated context"),
            996: ("HAS", "Hash"),
            997: ("SOR", "Source representation"),
            998: ("GEO", "Geographic sample acquisition location"),
            999: ("DATA", "Body part image"),
        },
        13: _image_record(
            LCD=(5, "Latent capture date"),
            SPD=(14, "Search position descriptors"),
            PPC=(15, "Print position coordinates"),
            LQM=(24, "Latent quality metric"),
            DATA=(999, "Latent friction ridge image"),
        ),
        14: _image_record(
            FCD=(5, "Fingerprint capture date"),
            PPD=(14, "Print position descriptors"),
            PPC=(15, "Print position coordinates"),
            AMP=(18, "Amputated or bandaged"),
            SEG=(21, "Finger segment position"),
            NQM=(22, "NIST quality metric"),
            SQM=(23, "Segmentation quality metric"),
            FQM=(24, "Fingerprint quality metric"),
            ASEG=(25, "Alternate finger segment position"),
            DATA=(999, "Fingerprint image"),
        ),
        15: _image_record(
            PCD=(5, "Palm print capture date"),
            AMP=(18, "Amputated or bandaged"),
            SEG=(21, "Palm segment position"),
            PQM=(24, "Palm quality metric"),
            DATA=(999, "Palm print image"),
        ),
        16: {
            1: ("LEN", "Logical record length"),
            2: ("IDC", "Information designation character"),
            3: ("UDI", "User-defined image type"),
            4: ("SRC", "Source agency"),
            5: ("UTD", "User-defined image test capture date"),
            6: ("HLL", "Horizontal line length"),
            7: ("VLL", "Vertical line length"),
            8: ("SLC", "Scale units"),
            9: ("THPS", "Transmitted horizontal pixel scale"),
            10: ("TVPS", "Transmitted vertical pixel scale"),
            11: ("CGA", "Compression algorithm"),
            12: ("BPX", "Bits per pixel"),
            13: ("CSP", "Color space"),
            16: ("SHPS", "Scanned horizontal pixel scale"),
            17: ("SVPS", "Scanned vertical pixel scale"),
            20: ("COM", "Comment"),
            24: ("UQS", "User-defined image quality metric"),
            902: ("ANN", "Annotation information"),
            993: ("SAN", "Source agency name"),
            999: ("DATA", "User-defined image data"),
        },
        17: {
            1: ("LEN", "Logical record length"),
            2: ("IDC", "Information designation character"),
            3: ("ELR", "Eye label"),
            4: ("SRC", "Source agency"),
            5: ("ICD", "Iris capture date"),
            6: ("HLL", "Horizontal line length"),
            7: ("VLL", "Vertical line length"),
            8: ("SLC", "Scale units"),
            9: ("THPS", "Transmitted horizontal pixel scale"),
            10: ("TVPS", "Transmitted vertical pixel scale"),
            11: ("CGA", "Compression algorithm"),
            12: ("BPX", "Bits per pixel"),
            13: ("CSP", "Color space"),
            14: ("RAE", "Rotation angle of eye"),
            15: ("RAU", "Rotation uncertainty"),
            16: ("IPC", "Image property code"),
            17: ("DUI", "Device unique identifier"),
            19: ("MMS", "Make/model/serial number"),
            20: ("ECL", "Eye color"),
            21: ("COM", "Comment"),
            22: ("SHPS", "Scanned horizontal pixel scale"),
            23: ("SVPS", "Scanned vertical pixel scale"),
            24: ("IQS", "Image quality score"),
            902: ("ANN", "Annotation information"),
            993: ("SAN", "Source agency name"),
            999: ("DATA", "Iris image data"),
        },
    }
)
"""
The tag dictionary: ``{record_type: {field_number: (mnemonic, description),
...}, ...}``.
"""

_MNEMONIC_TO_NUMBER = {
    record_type: {mnemonic: number for number, (mnemonic, _) in fields.items()}
    for record_type, fields in TAG_DICTIONARY.items()
}


def split_tag(tag):
    """
    Split a field tag into its record type and field number, e.g.
    ``split_tag("2.019") == (2, 19)``.

    A tag without a record type prefix (e.g. ``"19"``) is accepted with a
    warning and given record type 0.

    Raises :py:exc:`ValueError` if either part is not an integer.
    """
    if "." in tag:
        record_type, _, field_number = tag.partition(".")
        return (int(record_type), int(field_number))
    else:
        logging.warning("No record type found in field tag %r", tag)
        return (0, int(tag))


def tag_to_record_type(tag):
    return split_tag(tag)[0]


def tag_to_field_number(tag):
    return split_tag(tag)[1]


def field_number_to_mnemonic(record_type, field_number):
    """
    Return the mnemonic of a field (e.g. ``"IDC"``), or an empty string if
    the field has none.
    """
    return TAG_DICTIONARY.get(record_type, {}).get(field_number, ("", ""))[0]


def field_number_to_description(record_type, field_number):
    """
    Return the full name of a field (e.g. ``"Logical record length"``), or an
    empty string if unknown.
    """
    return TAG_DICTIONARY.get(record_type, {}).get(field_number, ("", ""))[1]


def field_mnemonic_to_number(record_type, mnemonic):
    """
    Look up the field number for a mnemonic. Mnemonics are case insensitive.

    Raises :py:exc:`~ebts_wsq.exceptions.UnknownMnemonic` if the record type
    has no such field.
    """
    try:
        return _MNEMONIC_TO_NUMBER[record_type][mnemonic.upper()]
    except KeyError:
        raise UnknownMnemonic(record_type, mnemonic)


def field_tag_to_mnemonic(tag):
    """Return the mnemonic for a tag such as ``"10.999"`` (here ``"DATA"``)."""
    return field_number_to_mnemonic(*split_tag(tag))


def bytes_to_int(data):
    """
    Convert a binary header field into an integer. Fields of 1, 2 or 4 bytes
    are unsigned and big-endian.

    Raises :py:exc:`ValueError` for other lengths.
    """
    if len(data) not in (1, 2, 4):
        raise ValueError("Invalid integer field length {}".format(len(data)))
    return int.from_bytes(bytes(data), "big")


def int_to_bytes(value, width):
    """
    The inverse of :py:func:`bytes_to_int`.

    Raises :py:exc:`ValueError` if the value does not fit.
    """
    if width not in (1, 2, 4):
        raise ValueError("Invalid integer field length {}".format(width))
    try:
        return int(value).to_bytes(width, "big")
    except OverflowError:
        raise ValueError("{} does not fit in {} byte(s)".format(value, width))
