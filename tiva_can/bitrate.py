# SPDX-FileCopyrightText: Copyright (c) 2020 Kevin Schlosser for Adafruit Industries
#
# SPDX-License-Identifier: MIT
"""
`tiva_can.bitrate`
================================================================================

Solver for the 4 bit timing values (prescaler, TSEG1, TSEG2 and SJW)
needed to set the bitrate on a Tiva CAN module.

A bit is split into time quanta (tq). The first quantum is the
synchronization quantum, then a few quanta are spent on signal
propagation, followed by "phase 1" and "phase 2". The bus is sampled
between phase 1 and phase 2. To follow clock drift the controller may
lengthen phase 1 or shorten phase 2 by up to the Synchronization Jump
Width (SJW). The SJW can never be larger than phase 2, otherwise the
controller would have to change its mind about a bit it already sampled.

The best timing parameters make the SJW as large as possible relative to
what the oscillator tolerance requires, with quanta as long as possible.


* Author(s): Kevin Schlosser
"""

from collections import namedtuple
from typing import Iterator, Optional

__all__ = [
    "BitTimeRequest",
    "Candidate",
    "BitTimeSolution",
    "BitTiming",
    "InvalidConfiguration",
    "NoSolutionFound",
    "TimingConstants",
    "TivaConst",
    "RESYNC_INTERVAL_BITS",
    "check_request",
    "tolerance_nanos",
    "evaluate",
    "iter_candidates",
    "score",
    "to_solution",
    "solve",
]

_NANOS_PER_SECOND = 1000000000
_PPM = 1000000

# longest run of bit times between two resynchronizing edges (bit stuffing)
RESYNC_INTERVAL_BITS = 10

MIN_BITRATE = 1000


BitTimeRequest = namedtuple(
    "BitTimeRequest",
    [
        "bitrate_bps",
        "propagation_delay_ns",
        "oscillator_tolerance_ppm",
        "reference_clock_hz",
    ],
)

Candidate = namedtuple(
    "Candidate",
    [
        "quanta_per_bit",
        "prescaler",
        "quantum_duration_ns",
        "propagation_quanta",
        "phase1_quanta",
        "phase2_quanta",
        "synchronization_jump_width",
        "required_jump_width",
        "mismatch_ns",
    ],
)

BitTimeSolution = namedtuple("BitTimeSolution", ["prescaler", "tseg1", "tseg2", "sjw"])


class InvalidConfiguration(ValueError):
    """The bit timing request breaks a precondition of the solver"""


class NoSolutionFound(RuntimeError):
    """No bit length and prescaler combination satisfies the timing constraints"""


class _TimingConst(object):
    """
    Constants used to search for the bit timing values

    If wanting to expand the search so it will support a different
    interface family this class would need to be subclassed and the
    approptiate limits set for that interface family.
    """
    quanta_min = 4
    quanta_max = 25
    tseg1_max = 15
    phase2_max = 4
    sjw_max = 4
    brp_min = 1
    brp_max = 64
    fsys = 16000000


class _TivaConst(_TimingConst):
    # the BRPE register extends the 6 bit BRP field to 10 bits
    brp_max = 1024


TivaConst = _TivaConst


class TimingConstants(object):
    """
    Constants used to calculate the timing values, one per system clock
    """
    class Tiva16Const(_TivaConst):
        fsys = 16000000

    class Tiva50Const(_TivaConst):
        fsys = 50000000

    class Tiva80Const(_TivaConst):
        fsys = 80000000

    class Tiva120Const(_TivaConst):
        fsys = 120000000


def check_request(request: BitTimeRequest) -> None:
    """
    Fail fast on a request that could only come from a broken static configuration.

    :raises: InvalidConfiguration
    """
    if request.bitrate_bps < MIN_BITRATE:
        raise InvalidConfiguration(
            "bitrate must be at least %d bits/s, got %r" % (MIN_BITRATE, request.bitrate_bps)
        )
    if request.propagation_delay_ns <= 0:
        raise InvalidConfiguration(
            "propagation delay must be positive, got %r" % request.propagation_delay_ns
        )
    if request.oscillator_tolerance_ppm <= 0:
        raise InvalidConfiguration(
            "oscillator tolerance must be positive, got %r" % request.oscillator_tolerance_ppm
        )
    if request.reference_clock_hz <= 0:
        raise InvalidConfiguration(
            "reference clock must be positive, got %r" % request.reference_clock_hz
        )


def tolerance_nanos(bitrate_bps: int, oscillator_tolerance_ppm: int) -> int:
    """
    Convert a frequency tolerance in ppm to a nanoseconds-per-bit tolerance.

    T = T0 / (1 + Error_frequency) where T0 is the nominal period and
    Error_frequency the tolerance as a fraction, so the error is T0 - T.
    The scaling is shuffled around to avoid roundoff errors.

    :param bitrate_bps: nominal bitrate
    :type bitrate_bps: int

    :param oscillator_tolerance_ppm: combined tolerance in parts per million
    :type oscillator_tolerance_ppm: int

    :rtype: int
    """
    period = _NANOS_PER_SECOND // bitrate_bps
    scaled = (_NANOS_PER_SECOND * _PPM) // bitrate_bps
    return period - scaled // (_PPM + oscillator_tolerance_ppm)


def _ceil_div(numerator, denominator):
    return -(-numerator // denominator)


def evaluate(
        request: BitTimeRequest,
        quanta_per_bit: int,
        prescaler: int,
        timing_const=_TivaConst,
        tolerance_ns: Optional[int] = None
) -> Optional[Candidate]:
    """
    Evaluate one bit length / prescaler pair.

    :param request: the bit timing request
    :type request: BitTimeRequest

    :param quanta_per_bit: total number of time quanta in one bit
    :type quanta_per_bit: int

    :param prescaler: system clock divider
    :type prescaler: int

    :param timing_const: subclass of :class: `_TimingConst` with the register limits

    :param tolerance_ns: precomputed result of :func: `tolerance_nanos`

    :return: the accepted `Candidate` or `None` if the pair breaks a constraint
    :rtype: Candidate
    """
    if not timing_const.brp_min <= prescaler <= timing_const.brp_max:
        return None

    tq_nanos = prescaler * _NANOS_PER_SECOND // request.reference_clock_hz
    if tq_nanos == 0:
        return None

    if tolerance_ns is None:
        tolerance_ns = tolerance_nanos(
            request.bitrate_bps, request.oscillator_tolerance_ppm
        )

    # timing error per bit due to imperfect prescaler selection
    mismatch_nanos = abs(
        tq_nanos * quanta_per_bit - _NANOS_PER_SECOND // request.bitrate_bps
    )
    needed_sjw = _ceil_div(
        RESYNC_INTERVAL_BITS * (mismatch_nanos + tolerance_ns), tq_nanos
    )

    prop_tq = _ceil_div(request.propagation_delay_ns, tq_nanos)
    remaining = quanta_per_bit - 1 - prop_tq  # one tq for sync
    phase1_tq = (remaining + 1) // 2
    phase2_tq = remaining // 2

    if (
            phase2_tq <= 0 or
            phase2_tq > timing_const.phase2_max or
            prop_tq + phase1_tq > timing_const.tseg1_max or
            needed_sjw > timing_const.sjw_max or
            needed_sjw > phase2_tq
    ):
        return None

    return Candidate(
        quanta_per_bit=quanta_per_bit,
        prescaler=prescaler,
        quantum_duration_ns=tq_nanos,
        propagation_quanta=prop_tq,
        phase1_quanta=phase1_tq,
        phase2_quanta=phase2_tq,
        synchronization_jump_width=min(phase2_tq, timing_const.sjw_max),
        required_jump_width=needed_sjw,
        mismatch_ns=mismatch_nanos,
    )


def _iter_candidates(request, timing_const):
    tolerance_ns = tolerance_nanos(
        request.bitrate_bps, request.oscillator_tolerance_ppm
    )
    for quanta_per_bit in range(timing_const.quanta_min, timing_const.quanta_max + 1):
        # try both sides in case the clock doesn't divide evenly
        prescaler = request.reference_clock_hz // request.bitrate_bps // quanta_per_bit
        for brp in (prescaler, prescaler + 1):
            candidate = evaluate(
                request, quanta_per_bit, brp, timing_const, tolerance_ns
            )
            if candidate is not None:
                yield candidate


def iter_candidates(request: BitTimeRequest, timing_const=_TivaConst) -> Iterator[Candidate]:
    """
    Enumerates every accepted candidate for a request, in search order.

    :param request: the bit timing request
    :type request: BitTimeRequest

    :param timing_const: _TimingConst subclass that holds the register limits.

    :raises: InvalidConfiguration if the request breaks a precondition

    :rtype: generator
    """
    check_request(request)
    return iter(_iter_candidates(request, timing_const))


def score(candidate: Candidate) -> int:
    """
    Robustness of a candidate against clock drift.

    Slack between available and required jump width, scaled by the
    absolute length of a quantum.
    """
    # +1 to break the tie when sjw == needed sjw
    # TODO: confirm the +1 offset is the intended weighting before changing it
    return (
        candidate.synchronization_jump_width - candidate.required_jump_width + 1
    ) * candidate.quantum_duration_ns


def to_solution(candidate: Candidate) -> BitTimeSolution:
    return BitTimeSolution(
        prescaler=candidate.prescaler,
        tseg1=candidate.propagation_quanta + candidate.phase1_quanta,
        tseg2=candidate.phase2_quanta,
        sjw=candidate.synchronization_jump_width,
    )


def solve(request: BitTimeRequest, timing_const=_TivaConst) -> BitTimeSolution:
    """
    Pick the bit timing most robust to clock drift.

    .. code-block:: python

    request = BitTimeRequest(
        bitrate_bps=500000,
        propagation_delay_ns=220,
        oscillator_tolerance_ppm=25000,
        reference_clock_hz=16000000,
    )
    print(solve(request))

    outputs: `BitTimeSolution(prescaler=8, tseg1=2, tseg2=1, sjw=1)`

    :param request: the bit timing request
    :type request: BitTimeRequest

    :param timing_const: _TimingConst subclass that holds the register limits.

    :raises: InvalidConfiguration if the request breaks a precondition
    :raises: NoSolutionFound if no candidate satisfies the constraints

    :rtype: BitTimeSolution
    """
    best = None
    best_score = None
    for candidate in iter_candidates(request, timing_const):
        candidate_score = score(candidate)
        if best is None or candidate_score > best_score:
            best = candidate
            best_score = candidate_score

    if best is None:
        raise NoSolutionFound(
            "no bit timing for %d bits/s with a %d Hz clock, %d ns propagation "
            "delay and %d ppm tolerance" % (
                request.bitrate_bps,
                request.reference_clock_hz,
                request.propagation_delay_ns,
                request.oscillator_tolerance_ppm,
            )
        )

    return to_solution(best)


class BitTiming(object):
    """
    Read only report of a bit timing solution.

    ***NOTE***
    The solved timing may not return an identical match to the bitrate
    the user is wanting to use. This is OK and normal, the module may not be
    able to directly support a given bitrate because of its system clock.
    The SJW is what absorbs the difference.
    """

    sync_seg = 1

    def __init__(self, solution: BitTimeSolution, fsys: int, nominal_bitrate: int):
        self._solution = solution
        self._fsys = fsys
        self._nominal_bitrate = nominal_bitrate

    @property
    def prescaler(self) -> int:
        """
        Bitrate Prescaler

        :rtype: int
        """
        return self._solution.prescaler

    @property
    def tseg1(self) -> int:
        """
        Propagation plus phase 1 quanta

        :rtype: int
        """
        return self._solution.tseg1

    @property
    def tseg2(self) -> int:
        """
        Phase 2 quanta

        :rtype: int
        """
        return self._solution.tseg2

    @property
    def sjw(self) -> int:
        """
        Synchronization Jump Width

        Used to compensate for the oscillator tolerance.

        :rtype: int
        """
        return self._solution.sjw

    @property
    def nbt(self) -> int:
        """
        Nominal Bit Time, in quanta

        :rtype: int
        """
        return self.sync_seg + self.tseg1 + self.tseg2

    @property
    def tq(self) -> int:
        """
        Time Quantum

        The length of the time quantum in nanoseconds, defined by the
        CAN module's system clock fsys and the prescaler.

        :rtype: int
        """
        return self.prescaler * _NANOS_PER_SECOND // self._fsys

    @property
    def fsys(self) -> int:
        """
        CAN module's system clock (fsys)

        :rtype: int
        """
        return self._fsys

    @property
    def nominal_bitrate(self) -> int:
        return self._nominal_bitrate

    @property
    def bitrate(self) -> int:
        """
        Bitrate actually produced by the timing values

        :rtype: int
        """
        return self._fsys // (self.prescaler * self.nbt)

    @property
    def bitrate_error(self) -> float:
        """
        Difference between the nominal bitrate and the produced bitrate

        :return: difference represented as a 0-100 percentage difference.
        :rtype: float
        """
        return (abs(self.bitrate - self.nominal_bitrate) / self.nominal_bitrate) * 100

    @property
    def sample_point(self) -> float:
        """
        Position of the sample point in the bit

        :return: percentage of the bit time before the sample point
        :rtype: float
        """
        return round((self.sync_seg + self.tseg1) / self.nbt * 1e4) / 100.0

    def __str__(self) -> str:
        res = [
            f"bitrate: {self.bitrate} bits/s",
            f"nominal bitrate: {self.nominal_bitrate} bits/s",
            f"bitrate error: {self.bitrate_error:.2f}%",
            f"sample point: {self.sample_point:.2f}%",
            f"FSYS: {self.fsys / 1000000}MHz",
            f"SYNC_SEG: {self.sync_seg}",
            f"TQ: {self.tq}ns",
            f"NBT: {self.nbt}",
            f"TSEG1: {self.tseg1}",
            f"TSEG2: {self.tseg2}",
            f"BRP: {self.prescaler}",
            f"SJW: {self.sjw}",
        ]

        return "\n".join(res)

    def __repr__(self) -> str:
        kwargs = dict(
            fsys=self.fsys,
            bitrate=self.bitrate,
            nominal_bitrate=self.nominal_bitrate,
            bitrate_error="{0:.2f}".format(self.bitrate_error),
            sample_point="{0:.2f}".format(self.sample_point),
            tq=self.tq,
            nbt=self.nbt,
            tseg1=self.tseg1,
            tseg2=self.tseg2,
            prescaler=self.prescaler,
            sjw=self.sjw,
        )

        args = ", ".join(f"{key}={value}" for key, value in kwargs.items())
        return f"bitrate.BitTiming({args})"
