# SPDX-FileCopyrightText: Copyright (c) 2020 Bryan Siepert for Adafruit Industries
#
# SPDX-License-Identifier: MIT
"""Driver configuration for a Tiva CAN module"""
# pylint:disable=too-few-public-methods,too-many-instance-attributes

from .bitrate import BitTimeRequest, BitTimeSolution, TimingConstants, solve

__all__ = ["CANConfig", "calc_bitrate"]


class CANConfig:
    """Bitrate settings for a `CANDriver`

    Either ask for a ``bitrate`` and let the driver guess the bit timing, or set
    ``bittime_autoguess`` to False and supply the four timing values yourself.
    """

    # pylint:disable=too-many-arguments
    def __init__(
        self,
        bitrate=500000,
        *,
        oscillator_tolerance_ppm=1580,
        propagation_delay_ns=220,
        bittime_autoguess=True,
        prescaler=None,
        tseg1=None,
        tseg2=None,
        sjw=None
    ):
        """Create a `CANConfig`

        Args:
            bitrate (int): Bus bitrate in bits/second. Only used if \
                ``bittime_autoguess`` is True.
            oscillator_tolerance_ppm (int): Maximum oscillator tolerance between this node \
                and another, in parts per million. If this chip's oscillator and another \
                chip's both have 1.25% tolerance, set this to 2 x 1.25% = 25000 ppm.
            propagation_delay_ns (int): Estimated propagation delay in nanoseconds. \
                Always rounded up to whole time quanta. 220 is a good starting point.
            bittime_autoguess (bool): Try to determine the bit timing automatically.
            prescaler (int): Clock prescaler. Only used if ``bittime_autoguess`` is False.
            tseg1 (int): Time quanta before the sample point, excluding sync. Only used if \
                ``bittime_autoguess`` is False.
            tseg2 (int): Time quanta after the sample point. Only used if \
                ``bittime_autoguess`` is False.
            sjw (int): Synchronization Jump Width. Only used if ``bittime_autoguess`` is False.
        """
        self.bitrate = bitrate
        self.oscillator_tolerance_ppm = oscillator_tolerance_ppm
        self.propagation_delay_ns = propagation_delay_ns
        self.bittime_autoguess = bittime_autoguess
        self.prescaler = prescaler
        self.tseg1 = tseg1
        self.tseg2 = tseg2
        self.sjw = sjw

    def request(self, reference_clock_hz):
        """The solver request for this config at the given module clock"""
        return BitTimeRequest(
            bitrate_bps=self.bitrate,
            propagation_delay_ns=self.propagation_delay_ns,
            oscillator_tolerance_ppm=self.oscillator_tolerance_ppm,
            reference_clock_hz=reference_clock_hz,
        )

    @property
    def solution(self):
        """The four timing values, or None if any of them is still unset"""
        if None in (self.prescaler, self.tseg1, self.tseg2, self.sjw):
            return None
        return BitTimeSolution(self.prescaler, self.tseg1, self.tseg2, self.sjw)

    def __repr__(self):
        return (
            "CANConfig(bitrate={}, oscillator_tolerance_ppm={}, propagation_delay_ns={}, "
            "bittime_autoguess={}, prescaler={}, tseg1={}, tseg2={}, sjw={})".format(
                self.bitrate,
                self.oscillator_tolerance_ppm,
                self.propagation_delay_ns,
                self.bittime_autoguess,
                self.prescaler,
                self.tseg1,
                self.tseg2,
                self.sjw,
            )
        )


def calc_bitrate(config, timing_const=TimingConstants.Tiva16Const):
    """Fill in the bit timing of ``config`` for the module clock of ``timing_const``

    When ``bittime_autoguess`` is False the timing values already on the config are
    used as they are. They are not range checked.

    Args:
        config (CANConfig): The config to update
        timing_const: ``TimingConstants`` subclass for the module clock

    Returns:
        BitTimeSolution: The timing now on the config, or None if ``bittime_autoguess`` \
            is False and the config is incomplete

    Raises:
        InvalidConfiguration: If the bitrate, delay or tolerance is out of range
        NoSolutionFound: If no timing fits. ``config`` is left unmodified.
    """
    if not config.bittime_autoguess:
        return config.solution

    solution = solve(config.request(timing_const.fsys), timing_const)

    config.prescaler = solution.prescaler
    config.tseg1 = solution.tseg1
    config.tseg2 = solution.tseg2
    config.sjw = solution.sjw
    return solution
