# SPDX-FileCopyrightText: Copyright (c) 2020 Bryan Siepert for Adafruit Industries
#
# SPDX-License-Identifier: MIT
"""
`tiva_can`
================================================================================

A library for configuring the CAN modules of Tiva (TM4C) microcontrollers


* Author(s): Bryan Siepert

Implementation Notes
--------------------

**Hardware:**

* Tiva TM4C123 / TM4C129 CAN0 and CAN1 modules

**Software and Dependencies:**

* Adafruit Blinka, for ``micropython.const`` on CPython:
  https://github.com/adafruit/Adafruit_Blinka
"""

from micropython import const
from .bitrate import *
from .config import *

__version__ = "0.0.0-auto.0"

# module base addresses
CAN0_BASE = const(0x40040000)
CAN1_BASE = const(0x40041000)

_CAN_BASES = (CAN0_BASE, CAN1_BASE)

# driver states
STATE_UNINIT = const(0)
STATE_STOP = const(1)
STATE_STARTING = const(2)
STATE_READY = const(3)
STATE_SLEEP = const(4)

_STATE_NAMES = {
    STATE_UNINIT: "UNINIT",
    STATE_STOP: "STOP",
    STATE_STARTING: "STARTING",
    STATE_READY: "READY",
    STATE_SLEEP: "SLEEP",
}

# NVIC priorities, 0 is highest
_IRQ_PRIORITY_MIN = const(0)
_IRQ_PRIORITY_MAX = const(7)
_IRQ_PRIORITY_DEFAULT = const(7)


class CANDriver:
    """Driver for one Tiva CAN module"""

    def __init__(
        self,
        can_base,
        *,
        timing_const=TimingConstants.Tiva16Const,
        irq_priority: int = _IRQ_PRIORITY_DEFAULT,
        hardware=None,
        debug: bool = False
    ):
        """Create a driver for the module at ``can_base``, in the stopped state

        Args:
            can_base (int): Base address of the module, `CAN0_BASE` or `CAN1_BASE`
            timing_const: ``TimingConstants`` subclass matching the system clock. \
                Defaults to the 16MHz internal oscillator.
            irq_priority (int, optional): Interrupt priority from 0 (highest) to 7. \
                Defaults to 7.
            hardware (callable, optional): Called as ``hardware(driver, config)`` once the \
                bit timing is known, to program the module registers. Defaults to None.
            debug (bool, optional): If True, will enable printing debug information. \
                Defaults to False.
        """
        if can_base not in _CAN_BASES:
            raise ValueError("Unknown CAN module base address 0x%08X" % can_base)
        if not _IRQ_PRIORITY_MIN <= irq_priority <= _IRQ_PRIORITY_MAX:
            raise ValueError(
                "irq_priority must be between %d and %d"
                % (_IRQ_PRIORITY_MIN, _IRQ_PRIORITY_MAX)
            )
        self._debug = debug
        self._can_base = can_base
        self._timing_const = timing_const
        self._irq_priority = irq_priority
        self._hardware = hardware
        self._config = None
        self._state = STATE_UNINIT

        self._object_init()

    def _object_init(self):
        self._config = None
        self._state = STATE_STOP
        self._dbg("init module at", "0x{:08X}".format(self._can_base))

    @property
    def can_base(self):
        """Base address of the module (read-only)"""
        return self._can_base

    @property
    def irq_priority(self):
        """Interrupt priority of the module (read-only)"""
        return self._irq_priority

    @property
    def timing_const(self):
        """The ``TimingConstants`` class used for the bit timing (read-only)"""
        return self._timing_const

    @property
    def state(self):
        """The current driver state, one of the ``STATE_*`` constants"""
        return self._state

    @property
    def config(self):
        """The active `CANConfig`, or None while stopped"""
        return self._config

    @property
    def bit_timing(self):
        """A `BitTiming` report of the active configuration, or None"""
        if self._config is None:
            return None
        solution = self._config.solution
        if solution is None:
            return None
        return BitTiming(solution, self._timing_const.fsys, self._config.bitrate)

    def start(self, config):
        """Configure and activate the module

        Args:
            config (CANConfig): The bitrate settings. When ``bittime_autoguess`` is set the \
                solved timing is written back into it.

        Raises:
            RuntimeError: If the driver is not stopped or ready
            InvalidConfiguration: If the bitrate, delay or tolerance is out of range
            NoSolutionFound: If no bit timing fits the config. The driver stays stopped.
        """
        if self._state not in (STATE_STOP, STATE_READY):
            raise RuntimeError(
                "Unable to start from state %s" % _STATE_NAMES[self._state]
            )
        self._state = STATE_STARTING
        self._config = None
        try:
            solution = calc_bitrate(config, self._timing_const)
        except (InvalidConfiguration, NoSolutionFound):
            self._dbg("no bit timing for", config)
            self._state = STATE_STOP
            raise

        self._dbg("bit timing:", solution)
        if self._hardware is not None:
            try:
                self._hardware(self, config)
            except Exception:
                self._state = STATE_STOP
                raise
        self._config = config
        self._state = STATE_READY

    def stop(self):
        """Deactivate the module"""
        if self._state not in (STATE_STOP, STATE_READY):
            raise RuntimeError(
                "Unable to stop from state %s" % _STATE_NAMES[self._state]
            )
        self._dbg("stop from", _STATE_NAMES[self._state])
        self._config = None
        self._state = STATE_STOP

    def sleep(self):
        """Enter sleep mode"""
        if self._state == STATE_SLEEP:
            return
        if self._state != STATE_READY:
            raise RuntimeError(
                "Unable to sleep from state %s" % _STATE_NAMES[self._state]
            )
        self._state = STATE_SLEEP

    def wakeup(self):
        """Leave sleep mode"""
        if self._state == STATE_READY:
            return
        if self._state != STATE_SLEEP:
            raise RuntimeError(
                "Unable to wake up from state %s" % _STATE_NAMES[self._state]
            )
        self._state = STATE_READY

    def deinit(self):
        """Deinitialize this object, stopping the module"""
        if self._state == STATE_SLEEP:
            self.wakeup()
        if self._state != STATE_STOP:
            self.stop()

    def __enter__(self):
        """Returns self, to allow the object to be used in a with statement for \
            resource control"""
        return self

    def __exit__(self, unused1, unused2, unused3):
        """Calls deinit()"""
        self.deinit()

    def __repr__(self):
        return "CANDriver(can_base=0x{:08X}, state={})".format(
            self._can_base, _STATE_NAMES[self._state]
        )

    def _dbg(self, *args, **kwargs):
        if self._debug:
            print("DBG::\t\t", *args, **kwargs)
