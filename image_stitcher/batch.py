# batch.py
"""Batch pairing and merging of sequentially numbered files.

:func:`find_matches` pairs files whose names follow a pattern with a single
``{n}`` placeholder (``img1`` with ``img2``, ``img3`` with ``img4`` ...).
:class:`BatchProcessor` then merges every pair into one two-slot image, one
match at a time.  A failing match is recorded and the batch moves on; only
starting a second batch while one is running is rejected outright.

Runs log through a :class:`logging.LoggerAdapter` carrying a correlation
identifier (``cid``) and outcomes are counted in ``batch_metrics``.
"""

from __future__ import annotations

import logging
import os
import re
import threading
import time
import uuid
from collections import Counter
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Callable, List, Optional, Sequence, Tuple, Union

from utils.validation import has_allowed_extension, validate_output_dir

from . import config
from .compositor import compose_pair
from .decoder import ImageDecoder
from .encoding import OutputFormat, encode_image, validate_quality

LOGGER = logging.getLogger(__name__)

FileRef = Union[str, os.PathLike]
ProgressCallback = Callable[[int, int], None]

_EXTENSION_RE = re.compile(r"\.[^/.]+$")


class BatchAlreadyRunningError(RuntimeError):
    """Raised when a batch is started while another one is active."""


class MergeMode(str, Enum):
    HORIZONTAL = "horizontal"
    VERTICAL = "vertical"


class _BatchMetrics:
    """Simple in-memory metrics collector."""

    def __init__(self) -> None:
        self.counters: Counter[str] = Counter()
        self.durations: list[float] = []

    def record(self, name: str, duration: float | None = None) -> None:
        self.counters[name] += 1
        if duration is not None:
            self.durations.append(duration)


batch_metrics = _BatchMetrics()


@dataclass(frozen=True, slots=True)
class BatchMatch:
    """Two files destined for a single merged output."""

    name: str
    files: Tuple[FileRef, FileRef]


@dataclass(slots=True)
class BatchOptions:
    """Settings for a batch run."""

    pattern: str
    output_dir: Union[str, Path]
    mode: MergeMode = MergeMode.HORIZONTAL
    target_width: int = config.BATCH_DEFAULT_TARGET_WIDTH
    target_height: int = config.BATCH_DEFAULT_TARGET_HEIGHT
    output_format: OutputFormat = OutputFormat.PNG
    quality: int = config.QUALITY_DEFAULT

    def __post_init__(self) -> None:
        self.mode = MergeMode(self.mode)
        self.output_format = OutputFormat.parse(self.output_format)
        if self.target_width <= 0 or self.target_height <= 0:
            raise ValueError("Target size must be positive")
        self.quality = validate_quality(self.quality)


@dataclass(slots=True)
class BatchResult:
    """Outcome of one match."""

    name: str
    filename: Optional[str] = None
    output_path: Optional[Path] = None
    error: Optional[str] = None

    @property
    def success(self) -> bool:
        return self.error is None


@dataclass(slots=True)
class _BatchContext:
    """Holds state shared across the matches of one run."""

    cid: str
    options: BatchOptions
    output_dir: Path
    log: logging.LoggerAdapter
    results: List[BatchResult] = field(default_factory=list)


def _file_name(file: FileRef) -> str:
    return Path(os.fspath(file)).name


def strip_extension(name: str) -> str:
    """Drop the last ``.ext`` from *name*."""
    return _EXTENSION_RE.sub("", name)


def find_matches(files: Sequence[FileRef], pattern: str) -> List[BatchMatch]:
    """
    Pair files named ``<prefix><n><suffix>`` with ``<prefix><n+1><suffix>``.

    Files are considered in input order.  Both halves of a pair are marked
    used so neither can take part in another pair; files without a free
    successor are skipped.

    Args:
        files: Candidate files (paths or names)
        pattern: Name pattern containing one ``{n}`` placeholder

    Returns:
        List[BatchMatch]: Matches in discovery order, named
        ``<prefix><n>-<n+1>``

    Raises:
        ValueError: If *pattern* contains more than one placeholder
    """
    placeholder = config.BATCH_PLACEHOLDER
    count = pattern.count(placeholder)
    if count == 0:
        return []
    if count > 1:
        raise ValueError(f"Pattern must contain a single {placeholder} placeholder: {pattern!r}")

    prefix, suffix = pattern.split(placeholder)
    stem_re = re.compile(rf"^{re.escape(prefix)}([0-9]+){re.escape(suffix)}$")
    stems = [(file, _file_name(file), strip_extension(_file_name(file))) for file in files]

    matches: List[BatchMatch] = []
    used: set[str] = set()
    for file, name, stem in stems:
        if name in used:
            continue
        found = stem_re.match(stem)
        if not found:
            continue
        index = int(found.group(1))
        successor_stem = f"{prefix}{index + 1}{suffix}"
        partner = next(
            (
                (other, other_name)
                for other, other_name, other_stem in stems
                if other_stem == successor_stem and other_name not in used
            ),
            None,
        )
        if partner is None:
            continue
        partner_file, partner_name = partner
        matches.append(BatchMatch(name=f"{prefix}{index}-{index + 1}", files=(file, partner_file)))
        used.add(name)
        used.add(partner_name)
    return matches


def collect_image_files(directory: Union[str, Path]) -> List[Path]:
    """Return supported image files directly inside *directory*, sorted by name."""
    root = Path(directory)
    if not root.is_dir():
        raise ValueError(f"Not a directory: {directory}")
    return sorted(
        (
            entry
            for entry in root.iterdir()
            if entry.is_file() and has_allowed_extension(entry, config.SUPPORTED_IMAGE_FORMATS)
        ),
        key=lambda p: p.name,
    )


def output_filename(match: BatchMatch, fmt: "str | OutputFormat") -> str:
    return f"{match.name}{config.BATCH_OUTPUT_SUFFIX}.{OutputFormat.parse(fmt).extension}"


class BatchProcessor:
    """Merge matched file pairs sequentially."""

    def __init__(self, decoder: Optional[ImageDecoder] = None):
        self._decoder = decoder or ImageDecoder()
        self._lock = threading.Lock()
        self._processing = False
        self._executor: Optional[ThreadPoolExecutor] = None

    @property
    def is_processing(self) -> bool:
        with self._lock:
            return self._processing

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------
    def _claim(self) -> None:
        with self._lock:
            if self._processing:
                raise BatchAlreadyRunningError("A batch is already being processed")
            self._processing = True

    def _release(self) -> None:
        with self._lock:
            self._processing = False

    def _process_match(self, match: BatchMatch, ctx: _BatchContext) -> BatchResult:
        options = ctx.options
        futures = [self._decoder.load_image(file) for file in match.files]
        images = [future.result() for future in futures]

        surface = compose_pair(
            images,
            options.target_width,
            options.target_height,
            horizontal=options.mode is MergeMode.HORIZONTAL,
        )
        data = encode_image(surface, options.output_format, options.quality)

        filename = output_filename(match, options.output_format)
        path = ctx.output_dir / filename
        path.write_bytes(data)
        return BatchResult(name=match.name, filename=filename, output_path=path)

    def _run(
        self,
        files: Sequence[FileRef],
        options: BatchOptions,
        progress: Optional[ProgressCallback],
    ) -> List[BatchResult]:
        cid = uuid.uuid4().hex
        log = logging.LoggerAdapter(LOGGER, {"cid": cid})
        matches = find_matches(files, options.pattern)
        output_dir = validate_output_dir(options.output_dir, create=True)
        ctx = _BatchContext(cid=cid, options=options, output_dir=output_dir, log=log)

        total = len(matches)
        log.info("batch start files=%d matches=%d", len(files), total)
        for completed, match in enumerate(matches, start=1):
            start = time.perf_counter()
            try:
                result = self._process_match(match, ctx)
            except Exception as exc:  # noqa: BLE001 - recorded per match
                duration = time.perf_counter() - start
                batch_metrics.record("failure", duration)
                log.error("batch item %s failed: %s", match.name, exc)
                result = BatchResult(name=match.name, error=str(exc))
            else:
                duration = time.perf_counter() - start
                batch_metrics.record("success", duration)
                log.info("batch item %s written to %s", match.name, result.output_path)
            ctx.results.append(result)
            if progress is not None:
                progress(completed, total)

        failures = sum(1 for r in ctx.results if not r.success)
        log.info("batch done ok=%d failed=%d", total - failures, failures)
        return ctx.results

    def _run_and_release(self, files, options, progress) -> List[BatchResult]:
        try:
            return self._run(files, options, progress)
        finally:
            self._release()

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------
    def process(
        self,
        files: Sequence[FileRef],
        options: BatchOptions,
        progress: Optional[ProgressCallback] = None,
    ) -> List[BatchResult]:
        """
        Match *files* and merge every pair in the calling thread.

        Returns:
            List[BatchResult]: One result per match, in match order

        Raises:
            BatchAlreadyRunningError: If another batch is active
        """
        self._claim()
        return self._run_and_release(list(files), options, progress)

    def submit(
        self,
        files: Sequence[FileRef],
        options: BatchOptions,
        progress: Optional[ProgressCallback] = None,
    ) -> Future:
        """Start a batch on a background worker and return its future.

        The running check happens before this returns, so a rejected batch
        raises :class:`BatchAlreadyRunningError` here rather than through
        the future.
        """
        self._claim()
        try:
            if self._executor is None:
                self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="batch")
            return self._executor.submit(self._run_and_release, list(files), options, progress)
        except BaseException:
            self._release()
            raise

    def shutdown(self, wait: bool = True) -> None:
        if self._executor is not None:
            self._executor.shutdown(wait=wait)
            self._executor = None


__all__ = [
    "BatchAlreadyRunningError",
    "BatchMatch",
    "BatchOptions",
    "BatchProcessor",
    "BatchResult",
    "MergeMode",
    "batch_metrics",
    "collect_image_files",
    "find_matches",
    "output_filename",
    "strip_extension",
]
