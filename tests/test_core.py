import naive
import numpy as np
import numpy.testing as npt
import pytest

from scampy import core

test_data = [
    np.array([584, -11, 23, 79, 1001, 0, -19], dtype=np.float64),
    np.random.uniform(-1000, 1000, [64]),
]

window_sizes = [3, 5]


def test_check_segment_bad_dtype():
    for dtype in [np.int32, np.int64, np.float32, bool]:
        with pytest.raises(TypeError):
            core.check_segment(np.random.rand(10).astype(dtype))


def test_check_segment_bad_ndim():
    with pytest.raises(ValueError):
        core.check_segment(np.random.rand(3, 10))


def test_check_segment_copy():
    T = np.random.rand(10)

    assert core.check_segment(T) is not T
    assert core.check_segment(T, copy=False) is T


def test_check_window_size():
    for m in range(-1, 3):
        with pytest.raises(ValueError):
            core.check_window_size(m)


def test_check_max_window_size():
    for m in range(4, 7):
        with pytest.raises(ValueError):
            core.check_window_size(m, max_size=3)


def test_check_window_size_excl_zone():
    # For `len(T) == 10` and `m == 7`, the `excl_zone` is ceil(m / 4) = 2 and the
    # subsequence that starts at index 1 has no neighbor outside of it
    with pytest.warns(UserWarning):
        core.check_window_size(7, max_size=10, n=10)


@pytest.mark.parametrize("T", test_data)
@pytest.mark.parametrize("m", window_sizes)
def test_sliding_mean_std(T, m):
    ref_μ, ref_σ = naive.compute_mean_std(T, m)
    comp_μ, comp_σ = core._sliding_mean_std(T, m)

    npt.assert_almost_equal(ref_μ, comp_μ)
    npt.assert_almost_equal(ref_σ, comp_σ)


def test_sliding_isfinite():
    T = np.arange(12).astype(np.float64)
    T[1] = np.nan
    T[5] = np.inf
    T[11] = -np.inf
    m = 3

    ref = naive.rolling_isfinite(T, m)
    comp = core.sliding_isfinite(T, m)

    npt.assert_equal(ref, comp)


def test_sliding_isconstant():
    T = np.arange(12).astype(np.float64)
    T[:3] = 77.0
    T[1] = np.inf
    T[4:7] = 77.0
    T[9:12] = [77.0, np.nan, 77.0]
    m = 3

    ref = naive.rolling_isconstant(T, m)
    T_subseq_isfinite = core.sliding_isfinite(T, m)
    T[~np.isfinite(T)] = 0.0
    comp = core.sliding_isconstant(T, m, T_subseq_isfinite)

    npt.assert_equal(ref, comp)


@pytest.mark.parametrize("m", [3, 4, 8])
def test_sliding_isconstant_window_alignment(m):
    T = np.random.rand(32)
    T[10 : 10 + m] = 0.5

    ref = np.zeros(T.shape[0] - m + 1, dtype=bool)
    ref[10] = True
    comp = core.sliding_isconstant(T, m, np.ones(ref.shape[0], dtype=bool))

    npt.assert_equal(ref, comp)


def test_preprocess_segment():
    T = np.array([0, np.nan, 2, 3, 4, 5, 6, 7, np.inf, 9])
    m = 3

    ref_T = np.array([0, 0, 2, 3, 4, 5, 6, 7, 0, 9], dtype=np.float64)
    ref_M, ref_Σ = naive.compute_mean_std(ref_T, m)
    ref_M_m_1, _ = naive.compute_mean_std(ref_T, m - 1)
    ref_T_subseq_isfinite = naive.rolling_isfinite(T, m)

    (
        comp_T,
        comp_M,
        comp_Σ_inverse,
        comp_M_m_1,
        comp_T_subseq_isfinite,
        comp_T_subseq_isconstant,
    ) = core.preprocess_segment(T, m)

    npt.assert_almost_equal(ref_T, comp_T)
    npt.assert_almost_equal(ref_M, comp_M)
    npt.assert_almost_equal(1.0 / ref_Σ, comp_Σ_inverse)
    npt.assert_almost_equal(ref_M_m_1, comp_M_m_1)
    npt.assert_equal(ref_T_subseq_isfinite, comp_T_subseq_isfinite)
    assert not comp_T_subseq_isconstant.any()
    # The input is left untouched
    assert np.isnan(T[1])


def test_preprocess_segment_constant():
    T = np.array([1, 1, 1, 1, 2, 3, 5, 5, 5], dtype=np.float64)
    m = 3

    _, _, comp_Σ_inverse, _, _, comp_T_subseq_isconstant = core.preprocess_segment(
        T, m
    )

    npt.assert_equal(naive.rolling_isconstant(T, m), comp_T_subseq_isconstant)
    assert np.all(np.isfinite(comp_Σ_inverse))


@pytest.mark.parametrize("n_chunks", [1, 2, 3, 8])
def test_split_diags(n_chunks):
    l_A, l_B = 13, 9
    diags = np.random.permutation(np.arange(-l_A + 1, l_B)).astype(np.int64)
    comp = core._split_diags(diags, l_A, l_B, n_chunks)

    assert comp.shape == (n_chunks, 2)
    # The ranges are contiguous and cover every diagonal exactly once
    npt.assert_equal(comp[0, 0], 0)
    npt.assert_equal(comp[1:, 0], comp[:-1, 1])
    npt.assert_equal(comp[-1, 1], diags.shape[0])

    ones_matrix = np.ones((l_A, l_B), dtype=np.int64)
    counts = np.array([ones_matrix.diagonal(offset=g).sum() for g in diags])
    total = 0
    for start, stop in comp:
        total += counts[start:stop].sum()
        # No range exceeds its share by more than a single diagonal
        assert counts[start:stop].sum() <= counts.sum() / n_chunks + counts.max()
    assert total == l_A * l_B


def test_split_diags_empty():
    diags = np.array([], dtype=np.int64)
    comp = core._split_diags(diags, 5, 5, 4)

    npt.assert_equal(comp, np.zeros((4, 2), dtype=np.int64))


def test_get_tile_ranges():
    ref = np.array([[0, 4], [4, 8], [8, 10]])
    comp = core._get_tile_ranges(10, 4)
    npt.assert_equal(ref, comp)

    ref = np.array([[0, 10]])
    comp = core._get_tile_ranges(10, 1 << 20)
    npt.assert_equal(ref, comp)
