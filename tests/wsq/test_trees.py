import pytest

import numpy as np

from ebts_wsq.wsq.trees import build_trees, split_region


class TestSplitRegion(object):
    def test_even(self):
        assert split_region(0, 0, 10, 6) == [
            (0, 0, 5, 3),
            (5, 0, 5, 3),
            (0, 3, 5, 3),
            (5, 3, 5, 3),
        ]

    def test_odd_low_pass_is_larger(self):
        assert split_region(10, 20, 7, 5) == [
            (10, 20, 4, 3),
            (14, 20, 3, 3),
            (10, 23, 4, 2),
            (14, 23, 3, 2),
        ]

    def test_inverted(self):
        assert split_region(0, 0, 7, 5, inv_rw=1, inv_cl=1) == [
            (0, 0, 3, 2),
            (3, 0, 4, 2),
            (0, 2, 3, 3),
            (3, 2, 4, 3),
        ]


class TestBuildTrees(object):
    def test_lengths(self):
        w_tree, q_tree = build_trees(500, 500)
        assert len(w_tree) == 20
        assert len(q_tree) == 64

    def test_root_node(self):
        w_tree, _ = build_trees(545, 622)
        assert w_tree[0] == {
            "x": 0,
            "y": 0,
            "lenx": 545,
            "leny": 622,
            "inv_rw": 0,
            "inv_cl": 0,
        }
        assert w_tree[1]["lenx"] == 273
        assert w_tree[1]["leny"] == 311

    def test_inverted_nodes(self):
        w_tree, _ = build_trees(500, 500)
        assert [n["inv_rw"] for n in w_tree] == [
            0, 0, 1, 0, 1, 0, 0, 1, 0, 1, 0, 1, 0, 1, 0, 0, 1, 0, 1, 0,
        ]  # fmt: skip
        assert [n["inv_cl"] for n in w_tree] == [
            0, 0, 0, 1, 0, 1, 0, 0, 1, 1, 0, 0, 1, 1, 0, 0, 0, 1, 1, 0,
        ]  # fmt: skip

    def test_uncoded_bands_are_empty(self):
        _, q_tree = build_trees(500, 500)
        for band in range(60, 64):
            assert q_tree[band]["lenx"] == 0
            assert q_tree[band]["leny"] == 0

    @pytest.mark.parametrize(
        "width,height", [(65, 65), (100, 80), (500, 500), (545, 622), (1008, 1508)]
    )
    def test_bands_tile_image(self, width, height):
        w_tree, q_tree = build_trees(width, height)
        coverage = np.zeros((height, width), dtype=int)

        for node in q_tree[:60]:
            assert node["lenx"] > 0
            assert node["leny"] > 0
            x, y = node["x"], node["y"]
            coverage[y : y + node["leny"], x : x + node["lenx"]] += 1

        # The first level high-high quadrant is never coded
        x = w_tree[1]["lenx"]
        y = w_tree[1]["leny"]
        coverage[y:, x:] += 1

        assert np.all(coverage == 1)
