"""
:py:mod:`ebts_wsq.wsq.quantization`: Normalisation and scalar quantization
===========================================================================

Before the wavelet transform, pixel values are normalised to roughly
+/- 128.0 (:py:func:`normalise_image`). After the transform each subband is
quantized with a uniform scalar quantizer with a dead zone. The bin widths
are chosen, per subband, from the subband variances and the target bit rate
(:py:func:`subband_variances`, :py:func:`bin_widths`) and then applied by
:py:func:`quantize`.

The quantized coefficients are stored subband-by-subband (in raster order
within each subband), omitting subbands whose bin width is zero. They are
coded as three blocks (see :py:func:`block_sizes`):

* Block 1: subbands 0 to 18
* Block 2: subbands 19 to 51
* Block 3: subbands 52 to 59

The decoder reverses the process with :py:func:`dequantize` and
:py:func:`denormalise_image`.

Encoding
--------

.. autofunction:: normalise_image

.. autofunction:: subband_variances

.. autofunction:: bin_widths

.. autofunction:: quantize

.. autofunction:: block_sizes

Decoding
--------

.. autofunction:: dequantize

.. autofunction:: denormalise_image
"""

import math
import logging

import numpy as np

from ebts_wsq.wsq.constants import (
    MAX_SUBBANDS,
    NUM_SUBBANDS,
    STRT_SUBBAND_2,
    STRT_SUBBAND_3,
    STRT_SUBBAND_DEL,
    STRT_SIZE_REGION_2,
    STRT_SIZE_REGION_3,
    VARIANCE_THRESH,
    SUBBAND_WEIGHTS,
)

__all__ = [
    "normalise_image",
    "denormalise_image",
    "subband_variances",
    "bin_widths",
    "quantize",
    "block_sizes",
    "dequantize",
]

_f32 = np.float32


def normalise_image(pixels):
    """
    Convert 8-bit pixels into floating point values centred on zero and
    scaled into the range +/- 128.0.

    Parameters
    ==========
    pixels : :py:class:`numpy.ndarray`
        A 2D uint8 array.

    Returns
    =======
    fdata : :py:class:`numpy.ndarray`
        A float32 array of the same shape.
    m_shift : float
        The mean pixel value (subtracted from every pixel).
    r_scale : float
        The scale factor every (shifted) pixel was divided by. Zero for
        images where every pixel has the same value, in which case 'fdata'
        is all zeros.
    """
    num_pixels = pixels.size
    low = int(pixels.min())
    high = int(pixels.max())

    m_shift = _f32(int(pixels.sum(dtype=np.int64))) / _f32(num_pixels)
    r_scale = max(m_shift - _f32(low), _f32(high) - m_shift) / _f32(128.0)

    if r_scale == 0.0:
        fdata = np.zeros(pixels.shape, dtype=np.float32)
    else:
        fdata = (pixels.astype(np.float32) - m_shift) / r_scale

    return (fdata, float(m_shift), float(r_scale))


def denormalise_image(fdata, m_shift, r_scale):
    """
    Convert reconstructed floating point values back into 8-bit pixels,
    clamping to 0-255.
    """
    pixels = fdata * _f32(r_scale) + (_f32(m_shift) + _f32(0.5))
    np.clip(pixels, 0.0, 255.0, out=pixels)
    # Truncation is exact here since all values are non-negative
    return pixels.astype(np.uint8)


def _variance(region):
    """Sample variance of a float32 region (0.0 for fewer than two samples)."""
    n = region.size
    if n < 2:
        return 0.0
    values = region.astype(np.float64)
    total = values.sum()
    sum_of_squares = np.square(values).sum()
    return float(_f32((sum_of_squares - (total * total) / n) / (n - 1.0)))


def _central_window(fdata, node):
    """The cropped window of a subband used for variance estimation."""
    skipx = node["lenx"] // 8
    skipy = (9 * node["leny"]) // 32
    lenx = (3 * node["lenx"]) // 4
    leny = (7 * node["leny"]) // 16
    x = node["x"] + skipx
    y = node["y"] + skipy
    return fdata[y : y + leny, x : x + lenx]


def _full_band(fdata, node):
    x, y = node["x"], node["y"]
    return fdata[y : y + node["leny"], x : x + node["lenx"]]


def subband_variances(fdata, q_tree):
    """
    Estimate the variance of each of the 60 coded subbands.

    Variances are normally computed over a central window of each subband.
    When the four lowest-frequency subbands have a combined (windowed)
    variance below 20000 all variances are instead computed over the whole
    of each subband.

    Returns
    =======
    variances : [float, ...]
        :py:data:`~ebts_wsq.wsq.constants.MAX_SUBBANDS` entries (the last
        four are always zero).
    """
    variances = [0.0] * MAX_SUBBANDS

    vsum = 0.0
    for band in range(4):
        variances[band] = _variance(_central_window(fdata, q_tree[band]))
        vsum += variances[band]

    if vsum < 20000.0:
        for band in range(NUM_SUBBANDS):
            variances[band] = _variance(_full_band(fdata, q_tree[band]))
    else:
        for band in range(4, NUM_SUBBANDS):
            variances[band] = _variance(_central_window(fdata, q_tree[band]))

    return variances


def _size_reciprocal(band):
    """The fraction of the image area occupied by a subband ('1/m')."""
    if band < STRT_SIZE_REGION_2:
        return _f32(1.0 / 1024.0)
    elif band < STRT_SIZE_REGION_3:
        return _f32(1.0 / 256.0)
    else:
        return _f32(1.0 / 16.0)


def bin_widths(variances, bit_rate):
    """
    Choose the quantizer bin widths for every subband.

    Parameters
    ==========
    variances : [float, ...]
        As produced by :py:func:`subband_variances`.
    bit_rate : float
        The target bit rate (bits per pixel).

    Returns
    =======
    qbss : [float, ...]
        64 quantizer bin widths. Zero for subbands which are not coded.
    qzbs : [float, ...]
        64 zero-bin (dead zone) widths.
    """
    qbss = [_f32(0.0)] * MAX_SUBBANDS
    sigma = [_f32(0.0)] * MAX_SUBBANDS

    # Initial (relative) bin widths
    initial = []
    for band in range(NUM_SUBBANDS):
        var = _f32(variances[band])
        if var < VARIANCE_THRESH:
            continue
        if band < STRT_SIZE_REGION_2:
            qbss[band] = _f32(1.0)
        else:
            weight = _f32(SUBBAND_WEIGHTS.get(band, 1.0))
            qbss[band] = _f32(10.0) / (weight * _f32(math.log(var)))
        sigma[band] = _f32(math.sqrt(var))
        initial.append(band)

    # Iteratively find the proportionality constant 'q' which meets the
    # target bit rate, dropping subbands which would receive a non-positive
    # bit rate
    r = _f32(bit_rate)
    active = list(initial)
    q = None
    while active:
        S = _f32(0.0)
        for band in active:
            S += _size_reciprocal(band)

        P = _f32(1.0)
        for band in active:
            ratio = float(sigma[band] / qbss[band])
            P = _f32(float(P) * math.pow(ratio, float(_size_reciprocal(band))))

        q = (_f32(math.pow(2.0, float(r / S - _f32(1.0)))) / _f32(2.5)) / _f32(
            math.pow(float(P), float(_f32(1.0) / S))
        )

        non_positive = set(
            band for band in active if float(qbss[band] / q) >= 5.0 * float(sigma[band])
        )
        if not non_positive:
            break
        active = [band for band in active if band not in non_positive]
    else:
        q = None

    logging.debug("Quantizer q = %s (%d subbands coded)", q, len(initial))

    qzbs = [_f32(0.0)] * MAX_SUBBANDS
    for band in range(NUM_SUBBANDS):
        if q is not None and band in initial:
            qbss[band] = qbss[band] / q
        else:
            qbss[band] = _f32(0.0)
        qzbs[band] = _f32(1.2) * qbss[band]

    return (qbss, qzbs)


def quantize(fdata, q_tree, qbss, qzbs):
    """
    Quantize the transformed image.

    Returns
    =======
    qdata : :py:class:`numpy.ndarray`
        A 1D int32 array containing the quantized coefficients of each coded
        subband in turn.
    """
    out = []
    for band in range(NUM_SUBBANDS):
        q = _f32(qbss[band])
        if q == 0.0:
            continue
        zbin = _f32(qzbs[band]) / _f32(2.0)
        values = _full_band(fdata, q_tree[band]).ravel()

        indices = np.zeros(values.shape, dtype=np.int32)
        positive = values > zbin
        negative = values < -zbin
        # Conversion to int truncates toward zero
        indices[positive] = ((values[positive] - zbin) / q + _f32(1.0)).astype(np.int32)
        indices[negative] = ((values[negative] + zbin) / q - _f32(1.0)).astype(np.int32)
        out.append(indices)

    if out:
        return np.concatenate(out)
    else:
        return np.zeros(0, dtype=np.int32)


def block_sizes(w_tree, q_tree, qbss):
    """
    Compute the number of quantized coefficients in each of the three
    Huffman coded blocks.

    Returns
    =======
    sizes : (int, int, int)
    """
    size1 = w_tree[14]["lenx"] * w_tree[14]["leny"]
    size2 = (w_tree[5]["leny"] * w_tree[1]["lenx"]) + (
        w_tree[4]["lenx"] * w_tree[4]["leny"]
    )
    size3 = (w_tree[2]["lenx"] * w_tree[2]["leny"]) + (
        w_tree[3]["lenx"] * w_tree[3]["leny"]
    )

    def dropped(first, last):
        return sum(
            q_tree[band]["lenx"] * q_tree[band]["leny"]
            for band in range(first, last)
            if qbss[band] == 0.0
        )

    size1 -= dropped(0, STRT_SUBBAND_2)
    size2 -= dropped(STRT_SUBBAND_2, STRT_SUBBAND_3)
    size3 -= dropped(STRT_SUBBAND_3, STRT_SUBBAND_DEL)

    logging.debug("Block sizes: %d, %d, %d", size1, size2, size3)

    return (size1, size2, size3)


def dequantize(qdata, q_tree, q_bin, z_bin, bin_center, width, height):
    """
    Reverse :py:func:`quantize`.

    Parameters
    ==========
    qdata : :py:class:`numpy.ndarray`
        1D integer array of quantized coefficients, ordered as produced by
        :py:func:`quantize`.
    q_tree : [:py:data:`~ebts_wsq.wsq.trees.QTreeNode`, ...]
    q_bin, z_bin : [float, ...]
        The bin and zero-bin widths for each subband.
    bin_center : float
        The quantizer bin center (e.g. 0.44).
    width, height : int

    Returns
    =======
    fdata : :py:class:`numpy.ndarray`
        A (height, width) float32 array.
    """
    fdata = np.zeros((height, width), dtype=np.float32)
    bin_center = _f32(bin_center)

    offset = 0
    for band in range(NUM_SUBBANDS):
        q = _f32(q_bin[band])
        if q == 0.0:
            continue
        half_zbin = _f32(z_bin[band]) / _f32(2.0)
        node = q_tree[band]
        count = node["lenx"] * node["leny"]

        indices = qdata[offset : offset + count].astype(np.float32)
        offset += count

        values = np.zeros(indices.shape, dtype=np.float32)
        positive = indices > 0
        negative = indices < 0
        values[positive] = q * (indices[positive] - bin_center) + half_zbin
        values[negative] = q * (indices[negative] + bin_center) - half_zbin

        _full_band(fdata, node)[...] = values.reshape(node["leny"], node["lenx"])

    return fdata
