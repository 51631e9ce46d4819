"""Numba-based envelope follower kernels — the per-sample companding core.

Both directions share the same two-stage follower:

    peak     -- rises instantly with |x|, falls by step_down each sample
    envelope -- climbs by step_up while below peak, falls by step_down otherwise

The compressor divides each sample by sqrt(envelope) via the gain table,
the expander multiplies by sqrt(envelope) directly.  Kernels process the
buffer in place and return the updated (peak, envelope) so the caller can
carry state into the next block.
"""

import numpy as np
from numba import njit

ENVELOPE_MIN = 0.001   # -60 dB floor, keeps the gain finite
ENVELOPE_MAX = 9.990   # keeps the table index below 10000
TABLE_STEP = 0.001


@njit(cache=True)
def advance(x, peak, envelope, step_up, step_down):
    """One step of the two-stage follower. Returns (peak, envelope)."""
    level = abs(x)
    if level > peak:
        peak = level
    else:
        peak *= step_down

    # Multiplicative every sample: never holds, never jumps to peak
    if peak > envelope:
        envelope *= step_up
    else:
        envelope *= step_down
    return peak, envelope


@njit(cache=True)
def compress_kernel(samples, count, peak, envelope, step_up, step_down, table):
    """2:1 compression of samples[:count] in place."""
    for i in range(count):
        x = samples[i]
        peak, envelope = advance(x, peak, envelope, step_up, step_down)

        if envelope < ENVELOPE_MIN:
            envelope = ENVELOPE_MIN
        if envelope > ENVELOPE_MAX:
            envelope = ENVELOPE_MAX

        samples[i] = x / table[int(envelope / TABLE_STEP)]
    return peak, envelope


@njit(cache=True)
def expand_kernel(samples, count, peak, envelope, step_up, step_down):
    """1:2 expansion of samples[:count] in place.

    Only the lower clamp applies here; the expander never indexes the table.
    """
    for i in range(count):
        x = samples[i]
        peak, envelope = advance(x, peak, envelope, step_up, step_down)

        if envelope < ENVELOPE_MIN:
            envelope = ENVELOPE_MIN

        samples[i] = x * np.sqrt(envelope)
    return peak, envelope
