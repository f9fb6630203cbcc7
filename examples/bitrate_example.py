# SPDX-FileCopyrightText: Copyright (c) 2020 Kevin Schlosser for Adafruit Industries
#
# SPDX-License-Identifier: MIT

from tiva_can import CAN0_BASE, CANConfig, CANDriver, TimingConstants

config = CANConfig(500000, oscillator_tolerance_ppm=25000, propagation_delay_ns=220)
can = CANDriver(CAN0_BASE, timing_const=TimingConstants.Tiva80Const, debug=True)
can.start(config)

print(can.bit_timing)
