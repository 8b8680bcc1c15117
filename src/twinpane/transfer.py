"""Transfer progress arithmetic and phase transitions.

These functions are the orchestrator's state machine; the controller drives
them with actions and the reducer applies them. Files of a batch move one at a
time: ``file_index`` only advances after the previous file reported
``bytes_transferred == total_bytes``. Sequential transfer keeps the speed
figure meaningful as "current file speed" and keeps a failure confined to one
file; it is kept even though it does not saturate bandwidth for many small
files.
"""

from __future__ import annotations

import dataclasses
import logging
from typing import Optional, Sequence

from .fileops import format_eta, human_size
from .state import TransferDirection, TransferPhase, TransferState

logger = logging.getLogger(__name__)

DEFAULT_SMOOTHING = 0.3


def begin(direction: TransferDirection, file_paths: Sequence[str], at: float) -> TransferState:
    """A freshly queued transfer."""
    if not file_paths:
        raise ValueError("A transfer needs at least one file")
    return TransferState(
        direction=direction,
        file_paths=tuple(file_paths),
        started_at=at,
        last_sample_at=at,
    )


def sized(transfer: TransferState, total_bytes_all_files: int) -> TransferState:
    return dataclasses.replace(transfer, total_bytes_all_files=max(0, total_bytes_all_files))


def file_started(
    transfer: TransferState, index: int, file_name: str, total_bytes: int, at: float
) -> TransferState:
    """Move to file ``index`` (0-based) of the batch."""
    if index != transfer.files_completed:
        logger.warning(
            f"Ignoring start of file {index + 1}; {transfer.files_completed} files completed"
        )
        return transfer
    return dataclasses.replace(
        transfer,
        phase=TransferPhase.IN_PROGRESS,
        current_file_name=file_name,
        file_index=min(index + 1, transfer.file_count),
        bytes_transferred=0,
        total_bytes=max(0, total_bytes),
        started_at=at,
        last_sample_at=at,
        speed_bytes_per_second=0.0,
    )


def smooth_speed(previous: float, sample: float, smoothing: float) -> float:
    """Exponential moving average; the first sample is taken as is."""
    if previous <= 0:
        return sample
    return smoothing * sample + (1 - smoothing) * previous


def progressed(
    transfer: TransferState,
    bytes_transferred: int,
    total_bytes: int,
    at: float,
    smoothing: float = DEFAULT_SMOOTHING,
) -> TransferState:
    """Apply an absolute progress report for the current file.

    Reports lower than what is already known are stale and ignored, so
    reordered or coalesced events cannot move progress backwards.
    """
    if transfer.phase is not TransferPhase.IN_PROGRESS:
        return transfer
    total = max(0, total_bytes) or transfer.total_bytes
    current = min(max(0, bytes_transferred), total)
    delta = current - transfer.bytes_transferred
    if delta < 0:
        return transfer

    speed = transfer.speed_bytes_per_second
    sample_at = transfer.last_sample_at
    elapsed = at - transfer.last_sample_at
    if delta > 0 and elapsed > 0:
        speed = smooth_speed(speed, delta / elapsed, smoothing)
        sample_at = at

    return dataclasses.replace(
        transfer,
        bytes_transferred=current,
        total_bytes=total,
        bytes_transferred_all_files=transfer.bytes_transferred_all_files + delta,
        speed_bytes_per_second=speed,
        last_sample_at=sample_at,
    )


def file_completed(
    transfer: TransferState, at: float, smoothing: float = DEFAULT_SMOOTHING
) -> TransferState:
    """The current file is fully written; the last one completes the transfer."""
    if transfer.phase is not TransferPhase.IN_PROGRESS:
        return transfer
    transfer = progressed(transfer, transfer.total_bytes, transfer.total_bytes, at, smoothing)
    files_completed = transfer.files_completed + 1
    phase = (
        TransferPhase.COMPLETED
        if files_completed >= transfer.file_count
        else TransferPhase.IN_PROGRESS
    )
    return dataclasses.replace(transfer, files_completed=files_completed, phase=phase)


def describe(transfer: Optional[TransferState]) -> str:
    """One-line status such as ``Downloading a.txt (File 1 of 2) 40% 1.2 MB/s ETA 3s``."""
    if transfer is None:
        return "Idle"
    verb = "Uploading" if transfer.direction is TransferDirection.UPLOAD else "Downloading"
    if transfer.phase is TransferPhase.QUEUED:
        return f"{verb}: preparing {transfer.file_count} file(s)..."

    parts = [f"{verb} {transfer.current_file_name}"]
    if transfer.is_batch:
        parts.append(f"(File {transfer.file_index} of {transfer.file_count})")
    parts.append(f"{transfer.progress_percent}%")
    if transfer.total_bytes:
        parts.append(f"{human_size(transfer.bytes_transferred)}/{human_size(transfer.total_bytes)}")
    if transfer.speed_bytes_per_second > 0:
        parts.append(f"{human_size(transfer.speed_bytes_per_second)}/s")
    parts.append(f"ETA {format_eta(transfer.eta_millis)}")
    if transfer.cancel_requested:
        parts.append("(cancelling)")
    return " ".join(parts)
