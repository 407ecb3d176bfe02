"""Tests for interactive layer height profile editing."""

import pytest

from layerplan.slicing.editor import AdjustAction, adjust_layer_height_profile
from layerplan.slicing.params import PrintConfig, PrintObjectConfig, SlicingParameters, build_slicing_parameters
from layerplan.slicing.profile import EPSILON, LayerHeightProfile, layer_height_profile_from_ranges


@pytest.fixture
def params():
    """Object on the bed: layer 0.2, range [0.05, 0.3], first layer fixed at 0.2."""
    return build_slicing_parameters(PrintConfig(), PrintObjectConfig(), 1.0, [0])


@pytest.fixture
def variable_params():
    """Object on a soluble raft, first layer variable."""
    return SlicingParameters(
        layer_height=0.2,
        first_object_layer_height=0.2,
        min_layer_height=0.05,
        max_layer_height=0.3,
        object_print_z_min=0.5,
        object_print_z_max=1.5,
        base_raft_layers=1,
        interface_raft_layers=1,
    )


@pytest.fixture
def flat(params):
    """Flat nominal profile."""
    return layer_height_profile_from_ranges(params, [])


def sample(profile, lo=0.0, hi=1.0, steps=200):
    """Heights on a regular grid."""
    return [(lo + (hi - lo) * i / steps, profile.height_at(lo + (hi - lo) * i / steps))
            for i in range(steps + 1)]


class TestAdjustAction:
    """Tests for AdjustAction enum."""

    def test_values(self):
        """Test action values."""
        assert AdjustAction.DELTA == 0
        assert AdjustAction.PULL_TO_NOMINAL == 1


class TestDelta:
    """Tests for raising and lowering the profile."""

    def test_bump(self, params, flat):
        """Test a smooth bump centred at the picked height."""
        adjust_layer_height_profile(params, flat, 0.5, 0.05, 0.4, AdjustAction.DELTA, z_step=0.1)

        assert flat.height_at(0.5) == pytest.approx(0.25)
        assert flat.height_at(0.4) == pytest.approx(0.225)
        assert flat.height_at(0.6) == pytest.approx(0.225)
        assert flat.height_at(0.3) == pytest.approx(0.2)
        assert flat.height_at(0.7) == pytest.approx(0.2)
        assert flat.check(params) == []

    def test_bump_is_smooth(self, params, flat):
        """Test the bump rises toward the centre and falls after it."""
        adjust_layer_height_profile(params, flat, 0.5, 0.05, 0.4, z_step=0.1)

        rising = [flat.height_at(z) for z in (0.3, 0.35, 0.4, 0.45, 0.5)]
        falling = [flat.height_at(z) for z in (0.5, 0.55, 0.6, 0.65, 0.7)]
        assert rising == sorted(rising)
        assert falling == sorted(falling, reverse=True)

    def test_delta_clamped_to_max(self, params, flat):
        """Test a large delta stops at the maximum layer height."""
        adjust_layer_height_profile(params, flat, 0.5, 0.5, 0.4, z_step=0.1)

        assert flat.height_at(0.5) == pytest.approx(params.max_layer_height)
        for _, h in flat:
            assert h <= params.max_layer_height + EPSILON

    def test_delta_clamped_to_min(self, params, flat):
        """Test a large negative delta stops at the minimum layer height."""
        adjust_layer_height_profile(params, flat, 0.5, -0.5, 0.4, z_step=0.1)

        assert flat.height_at(0.5) == pytest.approx(params.min_layer_height)
        for _, h in flat:
            assert h >= params.min_layer_height - EPSILON

    def test_noop_at_max(self, params, flat):
        """Test raising a profile already at its maximum does nothing."""
        adjust_layer_height_profile(params, flat, 0.5, 0.5, 0.4, z_step=0.1)
        before = flat.copy()
        adjust_layer_height_profile(params, flat, 0.5, 0.05, 0.4, z_step=0.1)

        assert flat == before

    def test_noop_at_min(self, params, flat):
        """Test lowering a profile already at its minimum does nothing."""
        adjust_layer_height_profile(params, flat, 0.5, -0.5, 0.4, z_step=0.1)
        before = flat.copy()
        adjust_layer_height_profile(params, flat, 0.5, -0.05, 0.4, z_step=0.1)

        assert flat == before

    @pytest.mark.parametrize("z", [-0.1, 0.1, 0.19, 1.01, 5.0])
    def test_outside_span_unchanged(self, params, flat, z):
        """Test edits outside the variable span, including the fixed first layer, do nothing."""
        before = flat.copy()
        adjust_layer_height_profile(params, flat, z, 0.05, 0.4)

        assert flat == before

    def test_zero_band_unchanged(self, params, flat):
        """Test an empty band does nothing."""
        before = flat.copy()
        adjust_layer_height_profile(params, flat, 0.5, 0.05, 0.0)

        assert flat == before

    @pytest.mark.parametrize("z, band", [(0.0, EPSILON), (0.0, 0.5 * EPSILON), (0.4, 0.5 * EPSILON)])
    def test_narrow_band_unchanged(self, variable_params, z, band):
        """Test a band narrower than EPSILON does nothing, also at the profile start."""
        profile = layer_height_profile_from_ranges(variable_params, [])
        before = profile.copy()
        adjust_layer_height_profile(variable_params, profile, z, 0.05, band, z_step=0.1)

        assert profile == before
        assert profile.check(variable_params) == []

    def test_narrow_band_at_top(self, params, flat):
        """Test a narrow band clipped by the object top does nothing."""
        before = flat.copy()
        adjust_layer_height_profile(params, flat, 1.0, 0.05, 1.5 * EPSILON, z_step=0.1)

        assert flat == before

    def test_locality(self, params, flat):
        """Test heights away from the band are unchanged."""
        before = flat.copy()
        adjust_layer_height_profile(params, flat, 0.5, 0.05, 0.4, z_step=0.1)

        for (z, h_old), (_, h_new) in zip(sample(before), sample(flat)):
            if abs(z - 0.5) > 0.2 + 0.1:
                assert h_new == pytest.approx(h_old), f"z={z}"

    def test_locality_on_varying_profile(self, params):
        """Test heights away from the band are unchanged on a sloped profile."""
        profile = LayerHeightProfile([(0.0, 0.2), (0.2, 0.2), (0.2, 0.1), (1.0, 0.3)])
        before = profile.copy()
        adjust_layer_height_profile(params, profile, 0.5, 0.05, 0.3, z_step=0.1)

        for (z, h_old), (_, h_new) in zip(sample(before), sample(profile)):
            if abs(z - 0.5) > 0.15 + 0.1:
                assert h_new == pytest.approx(h_old), f"z={z}"
        assert profile.check(params) == []

    def test_near_top(self, params, flat):
        """Test an edit whose band reaches the object top."""
        adjust_layer_height_profile(params, flat, 0.95, 0.05, 0.4, z_step=0.1)

        assert flat.points[-1] == pytest.approx((1.0, 0.2))
        assert flat.height_at(0.95) == pytest.approx(0.25)
        assert flat.check(params) == []

    def test_at_top(self, params, flat):
        """Test an edit exactly at the object top."""
        adjust_layer_height_profile(params, flat, 1.0, 0.05, 0.4, z_step=0.1)

        assert flat.points[-1][0] == pytest.approx(1.0)
        assert flat.check(params) == []

    def test_band_before_first_point(self, variable_params):
        """Test a band starting at z=0 replaces the start of the profile."""
        profile = layer_height_profile_from_ranges(variable_params, [])
        adjust_layer_height_profile(variable_params, profile, 0.1, 0.05, 0.4, z_step=0.1)

        assert profile.points[0] == pytest.approx((0.0, 0.225))
        assert profile.height_at(0.1) == pytest.approx(0.25)
        assert profile.height_at(0.5) == pytest.approx(0.2)
        assert profile.check(variable_params) == []

    def test_bridging_point(self, params, flat):
        """Test the join to the preserved profile is at most one step long."""
        adjust_layer_height_profile(params, flat, 0.5, 0.05, 0.4, z_step=0.1)

        zs = [z for z, _ in flat]
        idx = zs.index(pytest.approx(0.7))
        assert zs[idx] - zs[idx - 1] == pytest.approx(0.1)

    def test_finer_step(self, params):
        """Test a finer resampling step adds more control points."""
        coarse = layer_height_profile_from_ranges(params, [])
        fine = layer_height_profile_from_ranges(params, [])
        adjust_layer_height_profile(params, coarse, 0.5, 0.05, 0.4, z_step=0.1)
        adjust_layer_height_profile(params, fine, 0.5, 0.05, 0.4, z_step=0.02)

        assert len(fine) > len(coarse)
        assert fine.height_at(0.5) == pytest.approx(0.25)

    def test_int_action(self, params, flat):
        """Test actions given as integers."""
        adjust_layer_height_profile(params, flat, 0.5, 0.05, 0.4, 0, z_step=0.1)

        assert flat.height_at(0.5) == pytest.approx(0.25)

    def test_repeated_edits_stay_valid(self, params, flat):
        """Test the invariants hold after a series of edits."""
        edits = [(0.3, 0.04, 0.5), (0.6, -0.1, 0.3), (0.45, 0.2, 0.8), (0.9, -0.02, 0.2)]
        for z, delta, band in edits:
            adjust_layer_height_profile(params, flat, z, delta, band, z_step=0.05)

            assert flat.check(params) == []
            assert len(flat) > 1


class TestPullToNominal:
    """Tests for pulling the profile back to the nominal height."""

    @pytest.fixture
    def bumped(self, params, flat):
        """Profile with a bump at z=0.5."""
        adjust_layer_height_profile(params, flat, 0.5, 0.05, 0.4, z_step=0.1)
        return flat

    def test_converges(self, params, bumped):
        """Test repeated pulls restore the nominal height."""
        for _ in range(10):
            adjust_layer_height_profile(params, bumped, 0.5, 0.05, 0.4,
                                        AdjustAction.PULL_TO_NOMINAL, z_step=0.1)

        for z, h in sample(bumped):
            assert h == pytest.approx(params.layer_height, abs=EPSILON), f"z={z}"

    def test_never_moves_away(self, params, bumped):
        """Test a small pull only reduces the distance to nominal."""
        before = bumped.copy()
        adjust_layer_height_profile(params, bumped, 0.5, 0.01, 0.4,
                                    AdjustAction.PULL_TO_NOMINAL, z_step=0.1)

        for (z, h_old), (_, h_new) in zip(sample(before), sample(bumped)):
            assert abs(h_new - params.layer_height) <= abs(h_old - params.layer_height) + 1e-9, f"z={z}"
        assert bumped.height_at(0.5) == pytest.approx(0.24)

    def test_negative_delta_pulls(self, params, bumped):
        """Test the sign of the delta is ignored when pulling."""
        adjust_layer_height_profile(params, bumped, 0.5, -0.01, 0.4,
                                    AdjustAction.PULL_TO_NOMINAL, z_step=0.1)

        assert bumped.height_at(0.5) == pytest.approx(0.24)

    def test_pull_raises_dent(self, params, flat):
        """Test pulling raises a profile below nominal."""
        adjust_layer_height_profile(params, flat, 0.5, -0.1, 0.4, z_step=0.1)
        adjust_layer_height_profile(params, flat, 0.5, 0.04, 0.4,
                                    AdjustAction.PULL_TO_NOMINAL, z_step=0.1)

        assert flat.height_at(0.5) == pytest.approx(0.14)

    def test_noop_at_nominal(self, params, flat):
        """Test pulling a nominal profile does nothing."""
        before = flat.copy()
        adjust_layer_height_profile(params, flat, 0.5, 0.05, 0.4,
                                    AdjustAction.PULL_TO_NOMINAL, z_step=0.1)

        assert flat == before
