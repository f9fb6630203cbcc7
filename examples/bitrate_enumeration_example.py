# SPDX-FileCopyrightText: Copyright (c) 2020 Kevin Schlosser for Adafruit Industries
#
# SPDX-License-Identifier: MIT

# enumerating every accepted timing for a bitrate shows the
# alternatives the solver chose between. The one with the highest
# score is what `solve` returns.

from tiva_can import BitTimeRequest, TimingConstants, iter_candidates, score, solve

request = BitTimeRequest(
    bitrate_bps=250000,
    propagation_delay_ns=220,
    oscillator_tolerance_ppm=1580,
    reference_clock_hz=TimingConstants.Tiva80Const.fsys,
)

for candidate in iter_candidates(request, TimingConstants.Tiva80Const):
    print('quanta per bit:', candidate.quanta_per_bit)
    print('prescaler:', candidate.prescaler)
    print('tq:', candidate.quantum_duration_ns, 'ns')
    print('sjw:', candidate.synchronization_jump_width, 'needed:', candidate.required_jump_width)
    print('score:', score(candidate))
    print()

print('chosen:', solve(request, TimingConstants.Tiva80Const))
