"""StrideSync exception hierarchy."""

from __future__ import annotations


class StrideSyncError(Exception):
    """Base class for tracker faults."""


class SensorError(StrideSyncError):
    """Location source failure (no fix, lost connection, timeout)."""


class RemoteSyncError(StrideSyncError):
    """Remote store call failed."""

    def __init__(self, message: str, status: int | None = None) -> None:
        super().__init__(message)
        self.status = status
