"""
Logging Setup and Render Audit Trail.

Every module logs through `get_logger`, which writes pipe-separated records
to stdout. On top of that, `AuditLogger` keeps a short history of render
runs: for each run it stores the parameter corrections the factory applied
(clamps, NaN defaults, unknown projection types) and whatever output
metadata the renderer attached, so a surprising frame can be traced back to
the inputs that produced it.
"""

import hashlib
import json
import logging
import sys
from collections import OrderedDict
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional
import threading

LOG_FORMAT = '%(asctime)s | %(name)s | %(levelname)s | %(message)s'
LOG_DATE_FORMAT = '%Y-%m-%d %H:%M:%S'

CORRECTION_REASONS = ('clamped', 'non_finite', 'unknown_type')


def get_logger(name: str, level: int = logging.INFO) -> logging.Logger:
    """Return a stdout logger for a module or component.

    A handler is attached the first time a name is requested; later calls
    only adjust the level.

    Parameters
    ----------
    name : str
        Module path (`__name__`) or component class name.
    level : int
        Logging level.

    Returns
    -------
    logging.Logger
    """
    logger = logging.getLogger(name)

    if not logger.handlers:
        stream = logging.StreamHandler(sys.stdout)
        stream.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=LOG_DATE_FORMAT))
        logger.addHandler(stream)

    logger.setLevel(level)
    return logger


@dataclass
class ParameterCorrection:
    """A caller parameter the engine replaced before use.

    Attributes
    ----------
    timestamp : datetime
        When the correction was applied.
    parameter : str
        Parameter name, e.g. 'edge_angle_deg'.
    original_value : Any
        Value the caller supplied.
    corrected_value : Any
        Value the projection was built with.
    reason : str
        One of `CORRECTION_REASONS`.
    context : dict
        Extra information such as the projection type.
    """
    timestamp: datetime
    parameter: str
    original_value: Any
    corrected_value: Any
    reason: str
    context: Dict[str, Any] = field(default_factory=dict)


@dataclass
class RunMetadata:
    """Audit record of one render run."""
    run_id: str
    start_time: datetime
    end_time: Optional[datetime] = None
    config_hash: str = ""
    corrections: List[ParameterCorrection] = field(default_factory=list)
    output_metadata: Dict[str, Any] = field(default_factory=dict)

    @property
    def duration_s(self) -> Optional[float]:
        if self.end_time is None:
            return None
        return (self.end_time - self.start_time).total_seconds()

    def compute_config_hash(self, config: Dict[str, Any]) -> str:
        """Hash the render parameters so identical inputs share a hash.

        Parameters
        ----------
        config : dict
            JSON-serializable parameters; keys are sorted before hashing.

        Returns
        -------
        str
            First 16 hex digits of the SHA-256 digest.
        """
        payload = json.dumps(config, sort_keys=True, default=str)
        self.config_hash = hashlib.sha256(payload.encode()).hexdigest()[:16]
        return self.config_hash

    def correction_counts(self) -> Dict[str, int]:
        counts: Dict[str, int] = {}
        for correction in self.corrections:
            counts[correction.reason] = counts.get(correction.reason, 0) + 1
        return counts


class AuditLogger:
    """Process-wide audit trail of render runs.

    Thread Safety
    -------------
    The run history is guarded by a lock. The active run is tracked per
    thread, so renders running concurrently on different threads record
    their corrections separately. Corrections logged outside any run are
    written to the log but not stored.

    Retention
    ---------
    Only the most recent `max_runs` runs are kept; older ones are dropped
    as new runs start.

    Examples
    --------
    >>> audit = AuditLogger()
    >>> with audit.run_context("frame_001") as run:
    ...     audit.log_parameter_correction(
    ...         parameter="edge_angle_deg",
    ...         original_value=200.0,
    ...         corrected_value=150.0,
    ...         reason="clamped",
    ...     )
    >>> audit.get_run_summary("frame_001")["total_corrections"]
    1
    """

    _instance: Optional['AuditLogger'] = None
    _instance_lock = threading.Lock()

    max_runs: int = 256

    def __new__(cls) -> 'AuditLogger':
        if cls._instance is None:
            with cls._instance_lock:
                if cls._instance is None:
                    instance = super().__new__(cls)
                    instance._ready = False
                    cls._instance = instance
        return cls._instance

    def __init__(self):
        if self._ready:
            return
        self._runs: 'OrderedDict[str, RunMetadata]' = OrderedDict()
        self._runs_lock = threading.Lock()
        self._active = threading.local()
        self._logger = get_logger("audit")
        self._ready = True

    @property
    def current_run_id(self) -> Optional[str]:
        """Run active on the calling thread, if any."""
        return getattr(self._active, "run_id", None)

    @contextmanager
    def run_context(self, run_id: str, config: Optional[Dict[str, Any]] = None):
        """Make `run_id` the active run for the duration of the block.

        Parameters
        ----------
        run_id : str
            Identifier of the run. Reusing an identifier replaces the
            earlier record.
        config : dict, optional
            Render parameters to hash.

        Yields
        ------
        RunMetadata
            The record being filled in; callers may add output metadata.
        """
        record = RunMetadata(run_id=run_id, start_time=datetime.now())
        if config:
            record.compute_config_hash(config)

        with self._runs_lock:
            self._runs.pop(run_id, None)
            self._runs[run_id] = record
            while len(self._runs) > self.max_runs:
                self._runs.popitem(last=False)

        outer_run_id = self.current_run_id
        self._active.run_id = run_id
        self._logger.debug(f"Run {run_id} started (config {record.config_hash or '-'})")

        try:
            yield record
        finally:
            record.end_time = datetime.now()
            self._active.run_id = outer_run_id
            self._logger.debug(
                f"Run {run_id} finished in {record.duration_s:.3f}s "
                f"with {len(record.corrections)} corrections"
            )

    def log_parameter_correction(
        self,
        parameter: str,
        original_value: Any,
        corrected_value: Any,
        reason: str,
        context: Optional[Dict[str, Any]] = None
    ) -> None:
        """Record that a parameter was replaced.

        Clamps are routine and logged at INFO; every other reason points
        at bad caller input and is logged as a warning.

        Raises
        ------
        ValueError
            If `reason` is not one of `CORRECTION_REASONS`.
        """
        if reason not in CORRECTION_REASONS:
            raise ValueError(f"Unknown correction reason {reason!r}")

        correction = ParameterCorrection(
            timestamp=datetime.now(),
            parameter=parameter,
            original_value=original_value,
            corrected_value=corrected_value,
            reason=reason,
            context=context or {}
        )

        run_id = self.current_run_id
        if run_id is not None:
            with self._runs_lock:
                record = self._runs.get(run_id)
                if record is not None:
                    record.corrections.append(correction)

        message = (
            f"{parameter} {reason}: {original_value!r} -> {corrected_value!r}"
            + (f" [run {run_id}]" if run_id else "")
        )
        if reason == 'clamped':
            self._logger.info(message)
        else:
            self._logger.warning(message)

    def get_run_summary(self, run_id: str) -> Dict[str, Any]:
        """Summarize a recorded run.

        Raises
        ------
        KeyError
            If the run is unknown or has been dropped from the history.
        """
        with self._runs_lock:
            record = self._runs.get(run_id)
            if record is None:
                raise KeyError(f"No audit record for run {run_id!r}")
            corrections = list(record.corrections)
            output_metadata = dict(record.output_metadata)

        return {
            "run_id": run_id,
            "config_hash": record.config_hash,
            "start_time": record.start_time.isoformat(),
            "end_time": record.end_time.isoformat() if record.end_time else None,
            "duration_s": record.duration_s,
            "total_corrections": len(corrections),
            "corrections_by_reason": record.correction_counts(),
            "corrected_parameters": [c.parameter for c in corrections],
            "output_metadata": output_metadata,
        }
