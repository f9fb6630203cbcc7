"""
Unit tests for CANConfig and calc_bitrate.
"""

import pytest

from tiva_can.bitrate import (
    BitTimeRequest,
    BitTimeSolution,
    InvalidConfiguration,
    NoSolutionFound,
    TimingConstants,
)
from tiva_can.config import CANConfig, calc_bitrate


class TestCANConfig:
    """Test config defaults and helpers."""

    def test_defaults(self):
        config = CANConfig()

        assert config.bitrate == 500000
        assert config.propagation_delay_ns == 220
        assert config.oscillator_tolerance_ppm == 1580
        assert config.bittime_autoguess
        assert config.solution is None

    def test_request_uses_module_clock(self):
        config = CANConfig(250000, oscillator_tolerance_ppm=25000)

        assert config.request(80000000) == BitTimeRequest(
            bitrate_bps=250000,
            propagation_delay_ns=220,
            oscillator_tolerance_ppm=25000,
            reference_clock_hz=80000000,
        )

    def test_solution_needs_all_four_values(self):
        config = CANConfig(prescaler=4, tseg1=5, tseg2=2)
        assert config.solution is None

        config.sjw = 2
        assert config.solution == BitTimeSolution(4, 5, 2, 2)

    def test_repr(self):
        assert repr(CANConfig()).startswith("CANConfig(bitrate=500000,")


class TestCalcBitrate:
    """Test the auto-guess and manual timing paths."""

    def test_autoguess_writes_timing(self):
        config = CANConfig(500000, oscillator_tolerance_ppm=25000)

        solution = calc_bitrate(config, TimingConstants.Tiva16Const)

        assert solution == BitTimeSolution(8, 2, 1, 1)
        assert (config.prescaler, config.tseg1, config.tseg2, config.sjw) == (8, 2, 1, 1)

    def test_default_clock_is_16mhz(self):
        config = CANConfig(500000, oscillator_tolerance_ppm=25000)
        assert calc_bitrate(config) == BitTimeSolution(8, 2, 1, 1)

    def test_faster_clock_gives_larger_prescaler(self):
        slow = CANConfig(500000, oscillator_tolerance_ppm=25000)
        fast = CANConfig(500000, oscillator_tolerance_ppm=25000)

        calc_bitrate(slow, TimingConstants.Tiva16Const)
        calc_bitrate(fast, TimingConstants.Tiva80Const)

        assert fast.prescaler > slow.prescaler

    def test_manual_timing_untouched(self, manual_timing):
        config = CANConfig(bittime_autoguess=False, **manual_timing)

        solution = calc_bitrate(config)

        assert solution == BitTimeSolution(4, 5, 2, 2)
        assert (config.prescaler, config.tseg1, config.tseg2, config.sjw) == (4, 5, 2, 2)

    def test_manual_timing_skips_validation(self, manual_timing):
        # out of range request fields are never looked at
        config = CANConfig(0, propagation_delay_ns=0, bittime_autoguess=False,
                           **manual_timing)

        assert calc_bitrate(config) == BitTimeSolution(4, 5, 2, 2)

    def test_manual_register_values_not_range_checked(self):
        config = CANConfig(bittime_autoguess=False, prescaler=5000, tseg1=40, tseg2=0, sjw=9)

        assert calc_bitrate(config) == BitTimeSolution(5000, 40, 0, 9)

    def test_manual_incomplete(self):
        config = CANConfig(bittime_autoguess=False, prescaler=4)
        assert calc_bitrate(config) is None

    def test_no_solution_leaves_config_unmodified(self, manual_timing):
        config = CANConfig(5000000, oscillator_tolerance_ppm=25000, **manual_timing)

        with pytest.raises(NoSolutionFound):
            calc_bitrate(config)

        assert (config.prescaler, config.tseg1, config.tseg2, config.sjw) == (4, 5, 2, 2)

    def test_invalid_request_fails_fast(self):
        config = CANConfig(999)

        with pytest.raises(InvalidConfiguration):
            calc_bitrate(config)

        assert config.solution is None
