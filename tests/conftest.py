"""
Pytest configuration and fixtures for tiva_can tests.
"""

import pytest

from tiva_can.bitrate import BitTimeRequest


@pytest.fixture
def reference_clock():
    """Tiva precision internal oscillator."""
    return 16000000


@pytest.fixture
def request_500k(reference_clock):
    """500 kbit/s with 2.5% combined oscillator tolerance."""
    return BitTimeRequest(
        bitrate_bps=500000,
        propagation_delay_ns=220,
        oscillator_tolerance_ppm=25000,
        reference_clock_hz=reference_clock,
    )


@pytest.fixture
def manual_timing():
    """Register values a user would enter by hand."""
    return {'prescaler': 4, 'tseg1': 5, 'tseg2': 2, 'sjw': 2}
