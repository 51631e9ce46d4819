"""Test the peak/envelope follower through compress() and expand().

Run: uv run python tests/test_envelope.py

Samples are fed one at a time where the per-sample trajectory matters.
"""

import numpy as np
import os
import sys

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))
from engine.compandor import new_state, compress, expand, step_factors
from engine.gain_table import build_gain_table
from engine.params import ENVELOPE_MIN, ENVELOPE_MAX

SR = 8000
ATTACK_MS = 3.0
RECOVERY_MS = 13.5

build_gain_table()


def trace(transform, follower, state, signal):
    """Run signal through one sample at a time, recording the follower."""
    out = np.array(signal, dtype=np.float64)
    peaks = np.zeros(len(out))
    envs = np.zeros(len(out))
    for i in range(len(out)):
        transform(state, out[i:i + 1])
        f = getattr(state, follower)
        peaks[i] = f.peak
        envs[i] = f.envelope
    return out, peaks, envs


# ---------------------------------------------------------------------------
# Test 1: Step factors at the nominal 8 kHz timing
# ---------------------------------------------------------------------------
def test_step_factors():
    print("Test 1: step factors")
    up, down = step_factors(SR, ATTACK_MS, RECOVERY_MS)
    print(f"  step_up={up:.6f} step_down={down:.6f}")
    assert abs(up - 1.0469) < 1e-4
    assert abs(down - 0.98978) < 1e-4
    # Calibration: raised to the nominal sample count they give the factors
    assert np.isclose(up ** (ATTACK_MS * SR / 1000), 3.0)
    assert np.isclose(down ** (RECOVERY_MS * SR / 1000), 0.33)

    for sr in [8000, 16000, 44100, 48000]:
        for attack, recovery in [(0.5, 1.0), (3.0, 13.5), (50.0, 500.0)]:
            up, down = step_factors(sr, attack, recovery)
            assert up > 1.0 and down < 1.0, (sr, attack, recovery)

    for bad in [(0, 3.0, 13.5), (8000, 0.0, 13.5), (8000, 3.0, -1.0)]:
        try:
            step_factors(*bad)
        except ValueError:
            pass
        else:
            raise AssertionError(f"accepted {bad}")


# ---------------------------------------------------------------------------
# Test 2: Setup resets both followers
# ---------------------------------------------------------------------------
def test_setup_resets():
    print("Test 2: setup resets")
    state = new_state(SR, ATTACK_MS, RECOVERY_MS)
    for f in (state.compressor, state.expander):
        assert f.peak == 1.0 and f.envelope == 1.0
    assert state.compressor.step_up == state.expander.step_up
    assert state.compressor.step_down == state.expander.step_down


# ---------------------------------------------------------------------------
# Test 3: Constant 0.5 for 200 samples
# ---------------------------------------------------------------------------
def test_constant_level():
    print("Test 3: constant |x| = 0.5")
    state = new_state(SR, ATTACK_MS, RECOVERY_MS)
    up, down = state.compressor.step_up, state.compressor.step_down
    signal = np.full(200, 0.5)
    signal[1::2] *= -1.0
    _, peaks, envs = trace(compress, "compressor", state, signal)

    # Envelope starts above the level and decays every sample until it crosses
    cross = int(np.argmax(envs < 0.5))
    assert cross > 0
    assert np.allclose(envs[:cross], down ** np.arange(1, cross + 1))

    # Once the peak has come down to the level it snaps back each time
    assert np.all(peaks[cross:] <= 0.5)
    assert np.all(peaks[cross:] >= 0.5 * down - 1e-12)

    # Within 2 dB of the level by sample 150
    assert np.all(envs[150:] < 0.5 * 1.259)
    assert np.all(envs[150:] > 0.5 / 1.259)
    print(f"  envelope crossed 0.5 at sample {cross}, final {envs[-1]:.4f}")


# ---------------------------------------------------------------------------
# Test 4: Peak snaps on rise, envelope only climbs by step_up
# ---------------------------------------------------------------------------
def test_rise():
    print("Test 4: rising input")
    state = new_state(SR, ATTACK_MS, RECOVERY_MS)
    up = state.compressor.step_up
    _, peaks, envs = trace(compress, "compressor", state, np.full(30, 3.0))
    assert peaks[0] == 3.0
    assert np.all(peaks >= 3.0 * state.compressor.step_down - 1e-12)
    assert np.all(peaks <= 3.0)
    assert np.allclose(envs[:20], up ** np.arange(1, 21))


# ---------------------------------------------------------------------------
# Test 5: Single sample of 2.0 right after setup
# ---------------------------------------------------------------------------
def test_single_sample():
    print("Test 5: single sample 2.0")
    state = new_state(SR, ATTACK_MS, RECOVERY_MS)
    buf = np.array([2.0])
    compress(state, buf)
    f = state.compressor
    assert f.peak == 2.0
    assert f.envelope == f.step_up
    assert buf[0] == 2.0 / state.table.lookup(f.envelope)
    assert np.isclose(buf[0], 2.0 / np.sqrt(f.envelope), rtol=1e-3)
    print(f"  out={buf[0]:.6f} envelope={f.envelope:.6f}")


# ---------------------------------------------------------------------------
# Test 6: Silence — output exactly zero, envelope settles on the floor
# ---------------------------------------------------------------------------
def test_silence():
    print("Test 6: all-zero input")
    for transform, follower in [(compress, "compressor"), (expand, "expander")]:
        state = new_state(SR, ATTACK_MS, RECOVERY_MS)
        out, peaks, envs = trace(transform, follower, state, np.zeros(2000))
        assert np.all(out == 0.0)
        assert np.all(np.diff(peaks) < 0)
        assert np.all(np.diff(envs) <= 0)
        assert envs.min() == ENVELOPE_MIN
        assert envs[-1] == ENVELOPE_MIN

    # One call with the whole buffer ends in the same state
    a = new_state(SR, ATTACK_MS, RECOVERY_MS)
    compress(a, np.zeros(2000))
    assert a.compressor.envelope == ENVELOPE_MIN


# ---------------------------------------------------------------------------
# Test 7: Clamp bounds — compress is capped, expand is not
# ---------------------------------------------------------------------------
def test_clamp_bounds():
    print("Test 7: envelope bounds")
    rng = np.random.default_rng(7)
    loud = rng.standard_normal(4000) * 1e6

    state = new_state(SR, ATTACK_MS, RECOVERY_MS)
    _, _, envs = trace(compress, "compressor", state, loud)
    assert envs.max() == ENVELOPE_MAX
    assert envs.min() >= ENVELOPE_MIN

    state = new_state(SR, ATTACK_MS, RECOVERY_MS)
    _, _, envs = trace(expand, "expander", state, loud)
    assert envs.max() > ENVELOPE_MAX
    assert envs.min() >= ENVELOPE_MIN
    print(f"  expander envelope reached {envs.max():.1f}")

    # Bursts of loud and silent input keep compress inside the table
    bursty = np.concatenate([loud[:500], np.zeros(1500), loud[:500] * 1e-9])
    state = new_state(SR, ATTACK_MS, RECOVERY_MS)
    out, _, envs = trace(compress, "compressor", state, bursty)
    assert np.all(np.isfinite(out))
    assert np.all((envs >= ENVELOPE_MIN) & (envs <= ENVELOPE_MAX))


# ---------------------------------------------------------------------------
# Test 8: The two followers are independent
# ---------------------------------------------------------------------------
def test_directions_independent():
    print("Test 8: independent followers")
    state = new_state(SR, ATTACK_MS, RECOVERY_MS)
    compress(state, np.full(100, 5.0))
    assert state.expander.peak == 1.0 and state.expander.envelope == 1.0
    expand(state, np.zeros(100))
    assert state.compressor.peak > 1.0
    assert state.expander.envelope < 1.0


if __name__ == "__main__":
    test_step_factors()
    test_setup_resets()
    test_constant_level()
    test_rise()
    test_single_sample()
    test_silence()
    test_clamp_bounds()
    test_directions_independent()
    print("\nDone!")
