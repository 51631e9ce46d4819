"""Square-root gain table shared by every compressor in the process.

entry[i] = sqrt(i * 0.001) for i in [0, 10000), i.e. the square root of the
envelope quantized to 3 decimal digits.  build_gain_table() is the single
designated initialization call; states configured afterwards keep a
reference to the table they were set up with.

Public API for host applications:
    build_gain_table()  -- the one-time init, at process start
    is_initialized()    -- startup check before configuring streams
    get_gain_table()    -- the published table, raises if never built
    GainTable.index / GainTable.lookup -- the quantized sqrt(envelope) the
        compressor divides by, for inspecting a state's current gain
"""

import logging

import numpy as np

from engine.params import TABLE_SIZE, TABLE_STEP

log = logging.getLogger(__name__)


class CompandorError(Exception):
    """Base class for compandor errors."""


class CompandorNotInitializedError(CompandorError, RuntimeError):
    """setup() was called before build_gain_table().

    This is an integration defect in the host application, not a runtime
    condition: nothing in the library catches it.
    """


class GainTable:
    """Immutable sqrt lookup table over the envelope domain [0, 10)."""

    def __init__(self, size: int = TABLE_SIZE, step: float = TABLE_STEP):
        values = np.sqrt(np.arange(size, dtype=np.float64) * step)
        values.setflags(write=False)
        self._values = values
        self.step = step

    @property
    def values(self) -> np.ndarray:
        """Read-only backing array, passed straight into the kernels."""
        return self._values

    def index(self, envelope: float) -> int:
        return int(envelope / self.step)

    def lookup(self, envelope: float) -> float:
        """sqrt(envelope) quantized down to the table step."""
        return float(self._values[self.index(envelope)])

    def __len__(self):
        return len(self._values)

    def __getitem__(self, i):
        return self._values[i]

    def __repr__(self):
        return f"GainTable(size={len(self)}, step={self.step})"


_table = None


def build_gain_table() -> GainTable:
    """Build and publish the process-wide table.

    Must run once before any setup() that does not pass its own table.
    Calling it again publishes a fresh, bit-identical table; states already
    configured keep the one they captured.
    """
    global _table
    table = GainTable()
    _table = table
    log.debug("gain table built: %d entries, step %.3f", len(table), table.step)
    return table


def is_initialized() -> bool:
    return _table is not None


def get_gain_table() -> GainTable:
    """Return the published table, or raise if build_gain_table() never ran."""
    if not is_initialized():
        log.critical("compandor not initialized: call build_gain_table() first")
        raise CompandorNotInitializedError(
            "compandor not initialized: build_gain_table() must run before setup()")
    return _table
