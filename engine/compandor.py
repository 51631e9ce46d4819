"""2:1 compandor — compressor on transmit, expander on receive.

Signal flow (per sample, per direction):
    |x| -> peak (instant rise, slow fall) -> envelope (attack/recovery)
        -> clamp -> gain = 1/sqrt(envelope)  [compress, quantized via table]
                    gain = sqrt(envelope)    [expand, direct]

One CompandorState per audio stream.  Its two followers evolve independently,
each driven only by the samples passed to its own transform.  State carries
forward across calls, so a stream may be processed in blocks of any size.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field

import numpy as np

from engine.gain_table import (
    CompandorError, CompandorNotInitializedError, GainTable, get_gain_table,
)
from engine.params import (
    SR, ATTACK_MS, RECOVERY_MS, ATTACK_FACTOR, RECOVERY_FACTOR, DIRECTION_NAMES,
)
from primitives.envelope import compress_kernel, expand_kernel

__all__ = [
    "CompandorError", "CompandorNotInitializedError", "EnvelopeFollower",
    "CompandorState", "step_factors", "setup", "new_state", "compress",
    "expand", "render_compandor",
]

log = logging.getLogger(__name__)


@dataclass
class EnvelopeFollower:
    """Smoothing state for one direction."""
    peak: float = 1.0
    envelope: float = 1.0
    step_up: float = 1.0
    step_down: float = 1.0

    def reset(self, step_up: float, step_down: float):
        self.peak = 1.0
        self.envelope = 1.0
        self.step_up = step_up
        self.step_down = step_down


@dataclass
class CompandorState:
    compressor: EnvelopeFollower = field(default_factory=EnvelopeFollower)
    expander: EnvelopeFollower = field(default_factory=EnvelopeFollower)
    table: GainTable | None = None
    sample_rate: float = 0.0
    attack_ms: float = 0.0
    recovery_ms: float = 0.0


def step_factors(sample_rate, attack_ms, recovery_ms):
    """Per-sample (step_up, step_down) for the given timing.

    step_up ** (attack_ms * sample_rate / 1000) == ATTACK_FACTOR, and
    likewise for step_down over the recovery time.
    """
    for name, value in (("sample_rate", sample_rate), ("attack_ms", attack_ms),
                        ("recovery_ms", recovery_ms)):
        if not value > 0:
            raise ValueError(f"{name} must be > 0, got {value!r}")
    step_up = ATTACK_FACTOR ** (1000.0 / attack_ms / sample_rate)
    step_down = RECOVERY_FACTOR ** (1000.0 / recovery_ms / sample_rate)
    return step_up, step_down


def setup(state: CompandorState, sample_rate, attack_ms, recovery_ms,
          table: GainTable | None = None):
    """Reset both followers and derive their step factors.

    Without an explicit table the process-wide one is used; if
    build_gain_table() has not run this raises CompandorNotInitializedError.
    """
    if table is None:
        table = get_gain_table()
    step_up, step_down = step_factors(sample_rate, attack_ms, recovery_ms)

    # Both directions use the same attack/recovery per TIA/EIA-553
    state.compressor.reset(step_up, step_down)
    state.expander.reset(step_up, step_down)
    state.table = table
    state.sample_rate = float(sample_rate)
    state.attack_ms = float(attack_ms)
    state.recovery_ms = float(recovery_ms)
    log.debug("setup sr=%g attack=%gms recovery=%gms step_up=%.6f step_down=%.6f",
              sample_rate, attack_ms, recovery_ms, step_up, step_down)


def new_state(sample_rate=SR, attack_ms=ATTACK_MS, recovery_ms=RECOVERY_MS,
              table: GainTable | None = None) -> CompandorState:
    state = CompandorState()
    setup(state, sample_rate, attack_ms, recovery_ms, table=table)
    return state


def _check_buffer(buffer, count):
    if not isinstance(buffer, np.ndarray) or buffer.ndim != 1:
        raise TypeError("buffer must be a 1-D numpy array")
    if not np.issubdtype(buffer.dtype, np.floating):
        raise TypeError(f"buffer must be floating point, got {buffer.dtype}")
    if not buffer.flags.writeable:
        raise TypeError("buffer is read-only")
    if count is None:
        return len(buffer)
    count = int(count)
    if count < 0 or count > len(buffer):
        raise ValueError(f"count {count} outside buffer of length {len(buffer)}")
    return count


def _check_configured(state, name):
    if state.table is None:
        raise CompandorNotInitializedError(f"{name}() on a state that was never set up")


def compress(state: CompandorState, buffer: np.ndarray, count=None):
    """Compress buffer[:count] in place (transmit path)."""
    count = _check_buffer(buffer, count)
    _check_configured(state, "compress")
    f = state.compressor
    f.peak, f.envelope = compress_kernel(buffer, count, f.peak, f.envelope,
                                         f.step_up, f.step_down, state.table.values)


def expand(state: CompandorState, buffer: np.ndarray, count=None):
    """Expand buffer[:count] in place (receive path)."""
    count = _check_buffer(buffer, count)
    _check_configured(state, "expand")
    f = state.expander
    f.peak, f.envelope = expand_kernel(buffer, count, f.peak, f.envelope,
                                       f.step_up, f.step_down)


def _render_mono(audio, state, direction, chunk_size):
    out = np.array(audio, dtype=np.float64)
    transform = compress if direction == "compress" else expand
    for start in range(0, len(out), chunk_size):
        transform(state, out[start:start + chunk_size])
    return out


def render_compandor(input_audio: np.ndarray, params: dict,
                     chunk_callback=None) -> np.ndarray:
    """Offline render entry point — the CLI and tests call this.

    Args:
        input_audio: float array, mono (samples,) or multichannel (samples, ch)
        params: parameter dict (see engine/params.py)
        chunk_callback: if provided, called with each chunk of the finished
            output (chunk_size samples, all channels).
            Return True to continue, False to stop streaming.

    Returns:
        processed float64 array, same shape as input.  Each channel runs
        through its own CompandorState.  Stopping the callback early never
        shortens or alters the result.
    """
    direction = params.get("direction", 0)
    if isinstance(direction, int):
        if not 0 <= direction < len(DIRECTION_NAMES):
            raise ValueError(f"Unknown direction index {direction}")
        direction = DIRECTION_NAMES[direction]
    if direction not in DIRECTION_NAMES:
        raise ValueError(f"Unknown direction '{direction}'. Options: {DIRECTION_NAMES}")

    sr = params.get("sample_rate", SR)
    attack_ms = params.get("attack_ms", ATTACK_MS)
    recovery_ms = params.get("recovery_ms", RECOVERY_MS)
    chunk_size = max(1, int(params.get("chunk_size", 160)))

    t0 = time.perf_counter()
    if input_audio.ndim == 2:
        channels = []
        for ch in range(input_audio.shape[1]):
            state = new_state(sr, attack_ms, recovery_ms)
            channels.append(_render_mono(input_audio[:, ch], state, direction,
                                         chunk_size))
        result = np.column_stack(channels)
    else:
        state = new_state(sr, attack_ms, recovery_ms)
        result = _render_mono(input_audio, state, direction, chunk_size)

    elapsed = time.perf_counter() - t0
    duration = input_audio.shape[0] / sr
    rtf = duration / elapsed if elapsed > 0 else float('inf')
    log.info("%s %.1fs audio in %.3fs (%d ch, %.0fx RT)", direction, duration,
             elapsed, 1 if input_audio.ndim == 1 else input_audio.shape[1], rtf)

    if chunk_callback is not None:
        for start in range(0, len(result), chunk_size):
            if not chunk_callback(result[start:start + chunk_size]):
                log.debug("streaming stopped at sample %d of %d", start, len(result))
                break
    return result
