"""
:py:mod:`ebts_wsq.wsq.trees`: Wavelet decomposition and quantization trees
===========================================================================

The WSQ wavelet decomposition is described by two tables which are pure
functions of the image dimensions:

* The *decomposition tree* (:py:data:`WTreeNode` x 20) lists the rectangles
  which are split into four by one 2D analysis step, in the order the
  forward transform visits them. Each node also says whether its row and
  column splits are 'spectrally inverted', i.e. whether the high-pass half
  is stored before (left of, or above) the low-pass half.

* The *quantization tree* (:py:data:`QTreeNode` x 64) gives the rectangle
  occupied by each of the 64 subbands once the decomposition is complete.

Both are produced by :py:func:`build_trees`. Because every rectangle is
derived with :py:func:`split_region` (which rounds in exactly the way the
transform does) the quantization tree always tiles the output of the
transform exactly.

Subband numbering runs over the lowest frequency bands first::

    +--------+--------+----------------+
    |  0..18 | 19..34 |                |
    +--------+--------+     52..55     |
    | 35..50 |   51   |                |
    +--------+--------+----------------+
    |                 |                |
    |     56..59      |     60..63     |
    |                 |                |
    +-----------------+----------------+

Bands 60 to 63 (the first level high-high quadrant) are never transmitted
and have zero size.

.. autofunction:: build_trees

.. autofunction:: split_region

.. autodata:: WTreeNode
    :annotation:

.. autodata:: QTreeNode
    :annotation:
"""

from ebts_wsq.fixeddict import fixeddict, Entry

from ebts_wsq.wsq.constants import W_TREELEN, Q_TREELEN

__all__ = [
    "WTreeNode",
    "QTreeNode",
    "INV_RW_NODES",
    "INV_CL_NODES",
    "split_region",
    "build_trees",
]


WTreeNode = fixeddict(
    "WTreeNode",
    Entry("x", help="Left edge of the region."),
    Entry("y", help="Top edge of the region."),
    Entry("lenx", help="Width of the region."),
    Entry("leny", help="Height of the region."),
    Entry(
        "inv_rw",
        help="If 1, each row stores its high-pass half before its low-pass half.",
    ),
    Entry(
        "inv_cl",
        help="If 1, each column stores its high-pass half before its low-pass half.",
    ),
    help="""
        A region split into four by one 2D wavelet analysis step.
    """,
)
"""
A :py:func:`~ebts_wsq.fixeddict.fixeddict` describing one node of the
decomposition tree.
"""

QTreeNode = fixeddict(
    "QTreeNode",
    Entry("x"),
    Entry("y"),
    Entry("lenx"),
    Entry("leny"),
    help="""
        The rectangle occupied by one quantized subband.
    """,
)
"""
A :py:func:`~ebts_wsq.fixeddict.fixeddict` giving the location of one subband.
"""

INV_RW_NODES = frozenset([2, 4, 7, 9, 11, 13, 16, 18])
"""Decomposition tree nodes whose rows are spectrally inverted."""

INV_CL_NODES = frozenset([3, 5, 8, 9, 12, 13, 17, 18])
"""Decomposition tree nodes whose columns are spectrally inverted."""


def _halves(length, inverted):
    """
    Split a length into the (first, second) lengths produced by one 1D
    analysis step. The low-pass half is the larger one for odd lengths.
    """
    larger = (length + 1) // 2
    smaller = length - larger
    if inverted:
        return (smaller, larger)
    else:
        return (larger, smaller)


def split_region(x, y, lenx, leny, inv_rw=0, inv_cl=0):
    """
    Split a rectangle into the four quadrants produced by a 2D analysis step.

    Returns
    =======
    quadrants : [(x, y, lenx, leny), ...]
        The top-left, top-right, bottom-left and bottom-right quadrants (in
        that order).
    """
    w1, w2 = _halves(lenx, inv_rw)
    h1, h2 = _halves(leny, inv_cl)
    return [
        (x, y, w1, h1),
        (x + w1, y, w2, h1),
        (x, y + h1, w1, h2),
        (x + w1, y + h1, w2, h2),
    ]


def _make_w_node(node, rect):
    x, y, lenx, leny = rect
    return WTreeNode(
        x=x,
        y=y,
        lenx=lenx,
        leny=leny,
        inv_rw=int(node in INV_RW_NODES),
        inv_cl=int(node in INV_CL_NODES),
    )


def _quadrants(w_node):
    return split_region(
        w_node["x"],
        w_node["y"],
        w_node["lenx"],
        w_node["leny"],
        w_node["inv_rw"],
        w_node["inv_cl"],
    )


def _build_w_tree(width, height):
    rects = {0: (0, 0, width, height)}

    def split(parent, children):
        parent_node = _make_w_node(parent, rects[parent])
        for child, quadrant in zip(children, _quadrants(parent_node)):
            if child is not None:
                rects[child] = quadrant

    # First level: the image quadrants. The bottom-right (high-high)
    # quadrant is discarded.
    split(0, (1, 2, 3, None))

    # Second level within the low-pass quadrant. Its bottom-right quadrant
    # becomes subband 51 directly.
    split(1, (14, 4, 5, None))
    split(4, (6, 7, 8, 9))
    split(5, (10, 11, 12, 13))
    split(14, (15, 16, 17, 18))
    split(15, (19, None, None, None))

    return [_make_w_node(node, rects[node]) for node in range(W_TREELEN)]


def _build_q_tree(w_tree):
    bands = []

    def add(node, which=(0, 1, 2, 3)):
        quadrants = _quadrants(w_tree[node])
        for index in which:
            x, y, lenx, leny = quadrants[index]
            bands.append(QTreeNode(x=x, y=y, lenx=lenx, leny=leny))

    # Bands 0-18: the lowest frequency region (node 14)
    add(19)
    add(15, (1, 2, 3))
    for node in (16, 17, 18):
        add(node)

    # Bands 19-34 and 35-50
    for node in (6, 7, 8, 9, 10, 11, 12, 13):
        add(node)

    # Band 51
    add(1, (3,))

    # Bands 52-59
    add(2)
    add(3)

    # Bands 60-63 are never coded
    while len(bands) < Q_TREELEN:
        bands.append(QTreeNode(x=0, y=0, lenx=0, leny=0))

    return bands


def build_trees(width, height):
    """
    Build the decomposition and quantization trees for an image.

    Parameters
    ==========
    width, height : int

    Returns
    =======
    w_tree : [:py:data:`WTreeNode`, ...]
        20 entries.
    q_tree : [:py:data:`QTreeNode`, ...]
        64 entries.
    """
    w_tree = _build_w_tree(width, height)
    q_tree = _build_q_tree(w_tree)
    return (w_tree, q_tree)
