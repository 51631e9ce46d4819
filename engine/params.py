"""Parameter schema and calibration constants for the compandor.

This is the shared contract between the CLI, presets and tests.
All parameter sources produce a dict in this format.

Timing per TIA/EIA-553 referencing ITU-T G.162: attack 3 ms, recovery
13.5 ms, measured as the time for the output to settle within 2 dB of its
final value after a 12 dB input step.  For a 2:1 compressor the output moves
6 dB, so "within 2 dB" is 4/6 of the way there: an exponential reaches that
after one time constant of t / ln(3).  The factors below are what the
per-sample step raised to the number of samples in the nominal time yields:

    step_up   = ATTACK_FACTOR   ** (1000 / attack_ms   / sr)
    step_down = RECOVERY_FACTOR ** (1000 / recovery_ms / sr)
"""

from primitives.envelope import ENVELOPE_MIN, ENVELOPE_MAX, TABLE_STEP  # noqa: F401
from shared.params import ParamDef, ParamSchema, ParamType

SR = 8000

ATTACK_MS = 3.0
RECOVERY_MS = 13.5

ATTACK_FACTOR = 3.0      # envelope multiplier after attack_ms
RECOVERY_FACTOR = 0.33   # envelope multiplier after recovery_ms

TABLE_SIZE = 10000

DIRECTION_NAMES = ["compress", "expand"]
FORMAT_NAMES = ["float32", "int16"]

PARAMS = [
    # Sample rate follows the input file, so it has no clamping range
    ParamDef("sample_rate", ParamType.INT, SR,
             label="Sample rate (Hz)"),
    ParamDef("attack_ms", ParamType.FLOAT, ATTACK_MS,
             label="Attack (ms)", range=(0.1, 100.0)),
    ParamDef("recovery_ms", ParamType.FLOAT, RECOVERY_MS,
             label="Recovery (ms)", range=(0.1, 1000.0)),
    ParamDef("direction", ParamType.CHOICE, 0,
             label="Direction", choices=DIRECTION_NAMES),
    ParamDef("chunk_size", ParamType.INT, 160,  # 20 ms at 8 kHz
             label="Block size (samples)", range=(1, 1 << 20)),
    ParamDef("format", ParamType.CHOICE, 0,
             label="Output format", choices=FORMAT_NAMES),
]

SCHEMA = ParamSchema(PARAMS)


def default_params() -> dict:
    """Nominal AMPS/TACS/NMT timing at the 8 kHz narrowband rate."""
    return SCHEMA.default_params()


def validate_params(raw: dict) -> dict:
    """Merge a raw dict over the defaults, dropping unknown keys and clamping."""
    params = default_params()
    params.update(SCHEMA.validate_and_clamp(raw))
    return params
