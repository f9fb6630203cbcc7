# SPDX-FileCopyrightText: Copyright (c) 2020 Bryan Siepert for Adafruit Industries
#
# SPDX-License-Identifier: MIT

# Timing values entered by hand are used as they are, without range checks.

from tiva_can import CAN1_BASE, CANConfig, CANDriver


def program_registers(driver, config):
    print("module 0x{:08X}".format(driver.can_base))
    print("BRP:", config.prescaler, "TSEG1:", config.tseg1,
          "TSEG2:", config.tseg2, "SJW:", config.sjw)


config = CANConfig(bittime_autoguess=False, prescaler=4, tseg1=5, tseg2=2, sjw=2)
with CANDriver(CAN1_BASE, hardware=program_registers) as can:
    can.start(config)
    print(can.bit_timing)
