"""
:py:mod:`ebts_wsq.wsq.constants`
================================

Fixed values defined by the FBI WSQ grayscale fingerprint compression
standard: segment markers, Huffman alphabet limits, subband ranges and the
default 9/7 biorthogonal analysis filter taps.
"""

import numpy as np

__all__ = [
    "SOI",
    "EOI",
    "SOF",
    "SOB",
    "DTT",
    "DQT",
    "DHT",
    "DRT",
    "COM",
    "ANY_MARKER",
    "TABLE_MARKERS",
    "MARKER_NAMES",
    "W_TREELEN",
    "Q_TREELEN",
    "MAX_SUBBANDS",
    "NUM_SUBBANDS",
    "STRT_SUBBAND_2",
    "STRT_SUBBAND_3",
    "STRT_SUBBAND_DEL",
    "STRT_SIZE_REGION_2",
    "STRT_SIZE_REGION_3",
    "MAX_DHT_TABLES",
    "MAX_HUFFBITS",
    "MAX_HUFFCOUNTS_WSQ",
    "MAX_HUFFCOEFF",
    "MAX_HUFFZRUN",
    "VARIANCE_THRESH",
    "BIN_CENTER",
    "SUBBAND_WEIGHTS",
    "HIFILT",
    "LOFILT",
    "ENCODER_ID",
    "SOFTWARE_ID",
    "PIX_DEPTH",
    "NISTCOM_HEADER",
]

# Segment markers
SOI = 0xFFA0
EOI = 0xFFA1
SOF = 0xFFA2
SOB = 0xFFA3
DTT = 0xFFA4
DQT = 0xFFA5
DHT = 0xFFA6
DRT = 0xFFA7
COM = 0xFFA8

ANY_MARKER = (SOI, EOI, SOF, SOB, DTT, DQT, DHT, DRT, COM)
"""Every marker which may legally appear in a WSQ stream."""

TABLE_MARKERS = (SOF, SOB, DTT, DQT, DHT, DRT, COM)
"""Markers which may appear in the table section (before or between blocks)."""

MARKER_NAMES = {
    SOI: "SOI",
    EOI: "EOI",
    SOF: "SOF",
    SOB: "SOB",
    DTT: "DTT",
    DQT: "DQT",
    DHT: "DHT",
    DRT: "DRT",
    COM: "COM",
}

# Decomposition/quantization tree sizes
W_TREELEN = 20
Q_TREELEN = 64

MAX_SUBBANDS = 64
NUM_SUBBANDS = 60

# First subband of each Huffman coded block, and the first subband which is
# never coded
STRT_SUBBAND_2 = 19
STRT_SUBBAND_3 = 52
STRT_SUBBAND_DEL = 60

# Subband boundaries used when weighting bit allocation
STRT_SIZE_REGION_2 = 4
STRT_SIZE_REGION_3 = 51

# Huffman coding
MAX_DHT_TABLES = 8
MAX_HUFFBITS = 16
MAX_HUFFCOUNTS_WSQ = 256
MAX_HUFFCOEFF = 74
MAX_HUFFZRUN = 100

# Quantizer
VARIANCE_THRESH = np.float32(1.01)
BIN_CENTER = np.float32(44.0)
"""The quantizer bin center written to the DQT, in hundredths (i.e. 0.44)."""

SUBBAND_WEIGHTS = {
    52: 1.32,
    53: 1.08,
    54: 1.42,
    55: 1.08,
    56: 1.32,
    57: 1.42,
    58: 1.08,
    59: 1.08,
}
"""Bit allocation weights ('A' in the WSQ standard). Absent bands use 1.0."""

HIFILT = np.array(
    [
        0.06453888262869706,
        -0.04068941760916406,
        -0.41809227322161724,
        0.7884856164055829,
        -0.41809227322161724,
        -0.04068941760916406,
        0.06453888262869706,
    ],
    dtype=np.float32,
)
"""Encoder high-pass analysis filter (7 taps)."""

LOFILT = np.array(
    [
        0.03782845550726404,
        -0.023849465019556843,
        -0.11062440441843718,
        0.37740285561283066,
        0.8526986790088938,
        0.37740285561283066,
        -0.11062440441843718,
        -0.023849465019556843,
        0.03782845550726404,
    ],
    dtype=np.float32,
)
"""Encoder low-pass analysis filter (9 taps)."""

# Frame header identification values
ENCODER_ID = 2
SOFTWARE_ID = 0

PIX_DEPTH = 8

NISTCOM_HEADER = "NIST_COM"
