import pytest

import numpy as np

from ebts_wsq.wsq.constants import LOFILT, HIFILT

from ebts_wsq.wsq.trees import build_trees

from ebts_wsq.wsq.tables import TransformTable, synthesis_filters

from ebts_wsq.wsq.transform import (
    analysis_schedule,
    synthesis_schedule,
    apply_schedule,
    decompose,
    reconstruct,
)


def _filters():
    return (tuple(float(v) for v in LOFILT), tuple(float(v) for v in HIFILT))


def _synthesis():
    lofilt, hifilt = synthesis_filters(
        TransformTable(lofilt=list(LOFILT), hifilt=list(HIFILT))
    )
    return (tuple(lofilt), tuple(hifilt))


class TestSchedules(object):
    @pytest.mark.parametrize("length", [16, 17])
    @pytest.mark.parametrize("inv", [0, 1])
    def test_shape(self, length, inv):
        lofilt, hifilt = _filters()
        sources, coefficients = analysis_schedule(length, lofilt, hifilt, inv)
        assert sources.shape[0] == length
        assert coefficients.shape == sources.shape
        assert np.all(sources >= 0)
        assert np.all(sources < length)

    def test_schedules_are_cached(self):
        lofilt, hifilt = _filters()
        assert analysis_schedule(32, lofilt, hifilt, 0) is analysis_schedule(
            32, lofilt, hifilt, 0
        )

    @pytest.mark.parametrize("length", [16, 17, 31, 64])
    @pytest.mark.parametrize("inv", [0, 1])
    def test_one_dimensional_round_trip(self, length, inv):
        lofilt, hifilt = _filters()
        slofilt, shifilt = _synthesis()
        rand = np.random.RandomState(length)
        lines = rand.uniform(-128, 128, (3, length)).astype(np.float32)

        transformed = apply_schedule(
            analysis_schedule(length, lofilt, hifilt, inv), lines
        )
        restored = apply_schedule(
            synthesis_schedule(length, slofilt, shifilt, inv), transformed
        )
        assert np.allclose(restored, lines, atol=1e-3)

    def test_constant_line_has_no_high_pass_energy(self):
        lofilt, hifilt = _filters()
        lines = np.full((1, 20), 10.0, dtype=np.float32)
        out = apply_schedule(analysis_schedule(20, lofilt, hifilt, 0), lines)
        # Low pass half first, high pass half second
        assert np.allclose(out[0, 10:], 0.0, atol=1e-4)
        assert np.allclose(out[0, :10], 10.0 * np.sqrt(2.0), atol=1e-3)


class TestDecomposeReconstruct(object):
    @pytest.mark.parametrize("width,height", [(65, 65), (128, 96), (131, 77)])
    def test_round_trip(self, width, height):
        w_tree, _ = build_trees(width, height)
        rand = np.random.RandomState(0)
        original = rand.uniform(-128, 128, (height, width)).astype(np.float32)

        fdata = original.copy()
        decompose(fdata, w_tree, LOFILT, HIFILT)
        assert not np.allclose(fdata, original)

        lofilt, hifilt = _synthesis()
        reconstruct(fdata, w_tree, lofilt, hifilt)
        assert np.allclose(fdata, original, atol=1e-2)

    def test_filters_not_modified(self):
        w_tree, _ = build_trees(65, 65)
        lofilt = LOFILT.copy()
        hifilt = HIFILT.copy()
        decompose(np.ones((65, 65), dtype=np.float32), w_tree, lofilt, hifilt)
        assert np.array_equal(lofilt, LOFILT)
        assert np.array_equal(hifilt, HIFILT)
