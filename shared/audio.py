"""Audio I/O and test signals.

Provides load_wav, save_wav and make_step used by the CLI renderer,
the timing analysis and the tests.
"""

from math import gcd

import numpy as np
from scipy.io import wavfile


def load_wav(path, sr=None):
    """Load a WAV file, optionally resampling to `sr`.

    Returns (audio_array, sample_rate).
    Audio is float64, mono (samples,) or multichannel (samples, ch).
    """
    file_sr, data = wavfile.read(path)
    if data.dtype == np.int16:
        audio = data.astype(np.float64) / 32768.0
    elif data.dtype == np.int32:
        audio = data.astype(np.float64) / 2147483648.0
    else:
        audio = data.astype(np.float64)
    if sr is not None and file_sr != sr:
        from scipy.signal import resample_poly
        g = gcd(sr, file_sr)
        audio = resample_poly(audio, sr // g, file_sr // g, axis=0)
        file_sr = sr
    return audio, file_sr


def save_wav(path, audio, sr, fmt="float32"):
    """Save audio without normalization.

    float32 keeps the companded signal exactly (it may exceed full scale
    during attack); int16 clips to [-1, 1].
    """
    if fmt == "float32":
        wavfile.write(path, sr, audio.astype(np.float32))
    elif fmt == "int16":
        out = (np.clip(audio, -1.0, 1.0) * 32767).astype(np.int16)
        wavfile.write(path, sr, out)
    else:
        raise ValueError(f"Unknown WAV format '{fmt}'. Options: float32, int16")


def make_step(sr, levels, seconds=0.25, freq=1000.0):
    """Sine tone whose amplitude steps through `levels`, `seconds` each.

    The standard test signal for attack/recovery: a 12 dB step is
    levels=[0.25, 1.0, 0.25].
    """
    seg = int(sr * seconds)
    t = np.arange(seg * len(levels)) / sr
    env = np.repeat(np.asarray(levels, dtype=np.float64), seg)
    return np.sin(2 * np.pi * freq * t) * env
