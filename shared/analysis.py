"""Attack/recovery timing measurement.

ITU-T G.162 defines the compandor's attack and recovery times as the time
for the output to settle within 2 dB of its final value after a 12 dB step
in input level.  These helpers run that measurement on the compressor so
the calibration of ATTACK_FACTOR / RECOVERY_FACTOR can be checked at any
sample rate.

Dependencies: numpy, scipy (already installed).
"""

import numpy as np
from scipy.signal import lfilter

from engine.compandor import new_state, compress
from engine.params import SR, ATTACK_MS, RECOVERY_MS
from shared.audio import make_step


def envelope_db(audio, win):
    """Trailing-window RMS level in dB, one value per sample."""
    win = max(1, int(win))
    power = lfilter(np.ones(win) / win, [1.0], np.asarray(audio, dtype=np.float64) ** 2)
    return 10.0 * np.log10(power + 1e-20)


def settling_time_ms(level_db, sr, start, end, tolerance_db=2.0):
    """Time from `start` until level_db stays within tolerance of its final value.

    The final value is the median of the last quarter of [start, end).
    """
    segment = level_db[start:end]
    tail = segment[len(segment) * 3 // 4:]
    final = float(np.median(tail))
    outside = np.nonzero(np.abs(segment - final) > tolerance_db)[0]
    if outside.size == 0:
        return 0.0
    return (outside[-1] + 1) / sr * 1000.0


def measure_attack_recovery(sr=SR, attack_ms=ATTACK_MS, recovery_ms=RECOVERY_MS,
                            step_db=12.0, freq=1000.0, tolerance_db=2.0,
                            seconds=0.25, table=None):
    """Drive a fresh compressor with a low-high-low step tone.

    Returns dict with measured 'attack_ms' and 'recovery_ms'.
    """
    high = 1.0
    low = high * 10.0 ** (-step_db / 20.0)
    audio = make_step(sr, [low, high, low], seconds=seconds, freq=freq)
    seg = len(audio) // 3

    state = new_state(sr, attack_ms, recovery_ms, table=table)
    compress(state, audio)

    # One period of the tone keeps the RMS window free of ripple
    level = envelope_db(audio, round(sr / freq))
    return {
        "attack_ms": settling_time_ms(level, sr, seg, 2 * seg, tolerance_db),
        "recovery_ms": settling_time_ms(level, sr, 2 * seg, 3 * seg, tolerance_db),
    }
