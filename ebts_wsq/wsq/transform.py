"""
:py:mod:`ebts_wsq.wsq.transform`: Wavelet analysis and synthesis
=================================================================

The WSQ transform repeatedly splits rectangular regions of the image (as
listed by the decomposition tree, see :py:mod:`ebts_wsq.wsq.trees`) into
low- and high-pass halves, first along every row and then along every
column. Boundaries are handled by symmetric extension.

All arithmetic is performed in 32-bit floating point and, for every output
sample, the products of filter taps and input samples are accumulated in a
fixed order. The result is therefore bit-for-bit reproducible, which matters
because the quantizer's dead-zone decisions are sensitive to the last bit
of a coefficient.

Implementation
--------------

The 1D filtering step only depends on the line length, the filter taps and
the inversion flag, not on the sample values. Each step is therefore
'compiled' once into a *schedule*: a pair of ``(length, taps)`` arrays
giving, for every output sample, the input positions read and the
coefficient each is multiplied by, in accumulation order. A schedule is then
applied to every row (or column) of a region at once using numpy.

.. autofunction:: decompose

.. autofunction:: reconstruct

.. autofunction:: analysis_schedule

.. autofunction:: synthesis_schedule

.. autofunction:: apply_schedule
"""

from functools import lru_cache

import numpy as np

__all__ = [
    "analysis_schedule",
    "synthesis_schedule",
    "apply_schedule",
    "decompose",
    "reconstruct",
]


def _split_lengths(length):
    """Return (llen, hlen): the sizes of the low- and high-pass halves."""
    if length % 2:
        llen = (length + 1) // 2
        return (llen, llen - 1)
    else:
        return (length // 2, length // 2)


def _to_schedule(outputs, length):
    """
    Convert a list of per-output term lists [[(position, coeff), ...], ...]
    into a pair of padded (sources, coefficients) arrays.
    """
    taps = max(max(len(terms) for terms in outputs), 1)
    sources = np.zeros((length, taps), dtype=np.intp)
    coefficients = np.zeros((length, taps), dtype=np.float32)
    for out_pos, terms in enumerate(outputs):
        for tap, (position, coeff) in enumerate(terms):
            if not 0 <= position < length:
                raise ValueError(
                    "Line of {} samples is too short for a {}-tap filter".format(
                        length, taps
                    )
                )
            sources[out_pos, tap] = position
            coefficients[out_pos, tap] = coeff
    sources.flags.writeable = False
    coefficients.flags.writeable = False
    return (sources, coefficients)


@lru_cache(maxsize=None)
def analysis_schedule(length, lofilt, hifilt, inv):
    """
    Compile the forward (analysis) filtering of one line.

    Parameters
    ==========
    length : int
        The number of samples in the line.
    lofilt, hifilt : (float, ...)
        The complete low- and high-pass analysis filters.
    inv : int
        If non-zero, the high-pass half is written first.

    Returns
    =======
    sources : :py:class:`numpy.ndarray`
        An (length, taps) array of input positions.
    coefficients : :py:class:`numpy.ndarray`
        An (length, taps) float32 array of filter coefficients.
    """
    lsz = len(lofilt)
    hsz = len(hifilt)
    last = length - 1

    if lsz % 2:
        loc = (lsz - 1) // 2
        hoc = (hsz - 1) // 2 - 1
        olle = ohle = olre = ohre = 0
    else:
        loc = lsz // 2 - 2
        hoc = hsz // 2 - 2
        olle = ohle = olre = ohre = 1
        if loc == -1:
            loc = 0
            olle = 0
        if hoc == -1:
            hoc = 0
            ohle = 0
        # Even length high-pass filters are applied negated
        hifilt = tuple(-h for h in hifilt)

    llen, hlen = _split_lengths(length)
    if inv:
        hipass = 0
        lopass = hlen
    else:
        lopass = 0
        hipass = llen

    def walk(position, step, left_edge, right_edge, taps):
        terms = [(position, taps[0])]
        for tap in taps[1:]:
            if position == 0:
                if left_edge:
                    step = 0
                    left_edge = 0
                else:
                    step = 1
            if position == last:
                if right_edge:
                    step = 0
                    right_edge = 0
                else:
                    step = -1
            position += step
            terms.append((position, tap))
        return terms

    outputs = [[] for _ in range(length)]

    lspx, lspxstr, lle2, lre2 = loc, -1, olle, olre
    hspx, hspxstr, hle2, hre2 = hoc, -1, ohle, ohre
    for pix in range(hlen):
        outputs[lopass + pix] = walk(lspx, lspxstr, lle2, lre2, lofilt)
        outputs[hipass + pix] = walk(hspx, hspxstr, hle2, hre2, hifilt)

        # Advance both filter origins by two samples, reflecting off the
        # left edge
        for _ in range(2):
            if lspx == 0:
                if lle2:
                    lspxstr = 0
                    lle2 = 0
                else:
                    lspxstr = 1
            lspx += lspxstr
            if hspx == 0:
                if hle2:
                    hspxstr = 0
                    hle2 = 0
                else:
                    hspxstr = 1
            hspx += hspxstr

    if length % 2:
        outputs[lopass + hlen] = walk(lspx, lspxstr, lle2, lre2, lofilt)

    return _to_schedule(outputs, length)


@lru_cache(maxsize=None)
def synthesis_schedule(length, lofilt, hifilt, inv):
    """
    Compile the inverse (synthesis) filtering of one line. The inverse of
    :py:func:`analysis_schedule` when given the synthesis filters which
    complement the analysis filters used.

    Parameters and return values are as for :py:func:`analysis_schedule`.
    """
    lsz = len(lofilt)
    hsz = len(hifilt)
    odd_data = length % 2
    llen, hlen = _split_lengths(length)

    if lsz % 2 == 0:
        asym = True
        ssfac = -1.0
        ofhre = 2
        loc = lsz // 4 - 1
        hoc = hsz // 4 - 1
        lotap = (lsz // 2) % 2
        hotap = (hsz // 2) % 2
        olre = 0 if odd_data else 1
        olle = ohle = ohre = 1
        if loc == -1:
            loc = 0
            olle = 0
        if hoc == -1:
            hoc = 0
            ohle = 0
        hifilt = tuple(-h for h in hifilt)
    else:
        asym = False
        ssfac = 1.0
        ofhre = 0
        loc = (lsz - 1) // 4
        hoc = (hsz + 1) // 4 - 1
        lotap = ((lsz - 1) // 2) % 2
        hotap = ((hsz + 1) // 2) % 2
        if odd_data:
            olre = 0
            ohre = 1
        else:
            olre = 1
            ohre = 0
        olle = 0
        ohle = 1

    if inv:
        hp0 = 0
        lp0 = hlen
    else:
        lp0 = 0
        hp0 = llen
    lp1 = lp0 + llen - 1
    hp1 = hp0 + hlen - 1

    outputs = [[] for _ in range(length)]
    state = {"limg": 0, "himg": 0, "fhre": 0}

    def low_pass(tap, lpx, lpxstr, lle, lre):
        # Low-pass contributions overwrite the output sample
        terms = [(lpx, lofilt[tap])]
        for i in range(tap + 2, lsz, 2):
            if lpx == lp0:
                if lle:
                    lpxstr = 0
                    lle = 0
                else:
                    lpxstr = 1
            if lpx == lp1:
                if lre:
                    lpxstr = 0
                    lre = 0
                else:
                    lpxstr = -1
            lpx += lpxstr
            terms.append((lpx, lofilt[i]))
        outputs[state["limg"]] = terms
        state["limg"] += 1

    def high_pass(tap, hpx, hpxstr, hle, hre, sfac):
        # High-pass contributions are accumulated onto the output sample
        terms = outputs[state["himg"]]
        for i in range(tap, hsz, 2):
            if hpx == hp0:
                if hle:
                    hpxstr = 0
                    hle = 0
                else:
                    hpxstr = 1
                    sfac = 1.0
            if hpx == hp1:
                if hre:
                    hpxstr = 0
                    hre = 0
                    if asym and odd_data:
                        hre = 1
                        state["fhre"] -= 1
                        sfac = float(state["fhre"])
                        if sfac == 0.0:
                            hre = 0
                else:
                    hpxstr = -1
                    if asym:
                        sfac = -1.0
            terms.append((hpx, hifilt[i] * sfac))
            hpx += hpxstr
        state["himg"] += 1

    lspx, lspxstr, lstap, lle2, lre2 = lp0 + loc, -1, lotap, olle, olre
    hspx, hspxstr, hstap, hle2, hre2 = hp0 + hoc, -1, hotap, ohle, ohre
    osfac = ssfac

    for pix in range(hlen):
        for tap in range(lstap, -1, -1):
            low_pass(tap, lspx, lspxstr, lle2, lre2)
        if lspx == lp0:
            if lle2:
                lspxstr = 0
                lle2 = 0
            else:
                lspxstr = 1
        lspx += lspxstr
        lstap = 1

        for tap in range(hstap, -1, -1):
            state["fhre"] = ofhre
            high_pass(tap, hspx, hspxstr, hle2, hre2, osfac)
        if hspx == hp0:
            if hle2:
                hspxstr = 0
                hle2 = 0
            else:
                hspxstr = 1
                osfac = 1.0
        hspx += hspxstr
        hstap = 1

    if odd_data:
        lstap = 1 if lotap else 0
    else:
        lstap = 2 if lotap else 1
    for tap in range(1, lstap - 1, -1):
        low_pass(tap, lspx, lspxstr, lle2, lre2)

    if odd_data:
        hstap = 1 if hotap else 0
        if hsz == 2:
            hspx -= hspxstr
            state["fhre"] = 1
    else:
        hstap = 2 if hotap else 1
    for tap in range(1, hstap - 1, -1):
        if hsz != 2:
            state["fhre"] = ofhre
        high_pass(tap, hspx, hspxstr, hle2, hre2, osfac)

    return _to_schedule(outputs, length)


def apply_schedule(schedule, lines):
    """
    Filter every row of the 2D float32 array 'lines' according to a
    schedule produced by :py:func:`analysis_schedule` or
    :py:func:`synthesis_schedule`. Returns a new array.
    """
    sources, coefficients = schedule
    out = lines[:, sources[:, 0]] * coefficients[:, 0]
    for tap in range(1, sources.shape[1]):
        out += lines[:, sources[:, tap]] * coefficients[:, tap]
    return out


def _filter_key(filt):
    return tuple(float(v) for v in np.asarray(filt, dtype=np.float32))


def decompose(fdata, w_tree, lofilt, hifilt):
    """
    Forward wavelet transform (in place).

    Parameters
    ==========
    fdata : :py:class:`numpy.ndarray`
        A (height, width) float32 array of (normalised) pixel values. This
        array is overwritten with the subband coefficients.
    w_tree : [:py:data:`~ebts_wsq.wsq.trees.WTreeNode`, ...]
    lofilt, hifilt : array-like
        The analysis filters. These are never modified.
    """
    lofilt = _filter_key(lofilt)
    hifilt = _filter_key(hifilt)
    for node in w_tree:
        x, y = node["x"], node["y"]
        region = fdata[y : y + node["leny"], x : x + node["lenx"]]

        rows = apply_schedule(
            analysis_schedule(node["lenx"], lofilt, hifilt, node["inv_rw"]),
            region,
        )
        columns = apply_schedule(
            analysis_schedule(node["leny"], lofilt, hifilt, node["inv_cl"]),
            rows.T,
        )
        region[...] = columns.T


def reconstruct(fdata, w_tree, lofilt, hifilt):
    """
    Inverse wavelet transform (in place).

    Parameters
    ==========
    fdata : :py:class:`numpy.ndarray`
        A (height, width) float32 array of dequantized subband coefficients,
        overwritten with the reconstructed (normalised) pixel values.
    w_tree : [:py:data:`~ebts_wsq.wsq.trees.WTreeNode`, ...]
    lofilt, hifilt : array-like
        The complete synthesis filters. These are never modified.
    """
    lofilt = _filter_key(lofilt)
    hifilt = _filter_key(hifilt)
    for node in reversed(w_tree):
        x, y = node["x"], node["y"]
        region = fdata[y : y + node["leny"], x : x + node["lenx"]]

        columns = apply_schedule(
            synthesis_schedule(node["leny"], lofilt, hifilt, node["inv_cl"]),
            region.T,
        )
        rows = apply_schedule(
            synthesis_schedule(node["lenx"], lofilt, hifilt, node["inv_rw"]),
            columns.T,
        )
        region[...] = rows
