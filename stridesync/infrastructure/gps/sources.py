"""
Location sources - cancellable position subscriptions.

A source is anything with ``subscribe(on_sample, on_error) -> Disposer``.
Calling the disposer stops delivery; it is safe to call more than once.
Subscriptions run as tasks on the caller's running event loop.
"""

from __future__ import annotations

import asyncio
import json
import logging
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any, Callable, Iterator, Optional, Protocol, TypeAlias

from ...domain.models import PositionSample
from ...errors import SensorError
from .distance import calculate_bearing, calculate_distance, offset_position

logger = logging.getLogger(__name__)

SampleHandler: TypeAlias = Callable[[PositionSample], None]
ErrorHandler: TypeAlias = Callable[[BaseException], None]
Disposer: TypeAlias = Callable[[], None]

# gpsd reports no error estimate without a decent fix; assume poor accuracy
DEFAULT_ACCURACY_M = 50.0


class LocationSource(Protocol):
    """Continuous position subscription (high accuracy, no cached fixes)."""

    def subscribe(self, on_sample: SampleHandler, on_error: ErrorHandler) -> Disposer:
        ...


def _task_disposer(task: asyncio.Task[None]) -> Disposer:
    def dispose() -> None:
        if not task.done():
            task.cancel()

    return dispose


def _deliver(handler: Callable[[Any], None], payload: Any) -> None:
    try:
        handler(payload)
    except Exception as e:
        logger.error("Location callback error: %s", e)


@dataclass
class GpsdConfig:
    """GPS daemon connection configuration."""

    host: str = "localhost"
    port: int = 2947
    reconnect_delay: float = 5.0
    timeout: float = 10.0


class GpsdLocationSource:
    """
    Streams TPV fixes from gpsd.

    Features:
    - Non-blocking async connection
    - Automatic reconnection on disconnect
    - Only live fixes are forwarded; no last-known position is replayed

    Usage:
        source = GpsdLocationSource(GpsdConfig(host="localhost"))
        dispose = source.subscribe(on_sample, on_error)
        ...
        dispose()
    """

    def __init__(self, config: GpsdConfig | None = None) -> None:
        self.config = config or GpsdConfig()
        self.fix_count = 0
        self.error_count = 0

    def subscribe(self, on_sample: SampleHandler, on_error: ErrorHandler) -> Disposer:
        task = asyncio.get_running_loop().create_task(self._run(on_sample, on_error))
        return _task_disposer(task)

    async def _connect(self) -> tuple[asyncio.StreamReader, asyncio.StreamWriter]:
        try:
            reader, writer = await asyncio.wait_for(
                asyncio.open_connection(self.config.host, self.config.port),
                timeout=self.config.timeout,
            )
        except asyncio.TimeoutError as e:
            raise SensorError(
                f"GPS connection timeout to {self.config.host}:{self.config.port}"
            ) from e
        except OSError as e:
            raise SensorError(f"GPS connection failed - is gpsd running? ({e})") from e

        # Enable JSON streaming mode
        writer.write(b'?WATCH={"enable":true,"json":true}\n')
        await writer.drain()
        logger.info("Connected to gpsd at %s:%d", self.config.host, self.config.port)
        return reader, writer

    async def _run(self, on_sample: SampleHandler, on_error: ErrorHandler) -> None:
        while True:
            writer: Optional[asyncio.StreamWriter] = None
            try:
                reader, writer = await self._connect()
                await self._read_loop(reader, on_sample, on_error)
            except SensorError as e:
                self.error_count += 1
                logger.warning("%s, reconnecting...", e)
                _deliver(on_error, e)
            except Exception as e:
                self.error_count += 1
                logger.warning("GPS stream error: %s, reconnecting...", e)
                _deliver(on_error, SensorError(str(e)))
            finally:
                if writer is not None:
                    await self._close(writer)

            await asyncio.sleep(self.config.reconnect_delay)

    async def _read_loop(
        self,
        reader: asyncio.StreamReader,
        on_sample: SampleHandler,
        on_error: ErrorHandler,
    ) -> None:
        while True:
            try:
                line = await asyncio.wait_for(reader.readline(), timeout=self.config.timeout)
            except asyncio.TimeoutError:
                self.error_count += 1
                _deliver(on_error, SensorError("GPS read timeout, no fix received"))
                continue
            except OSError as e:
                raise SensorError(f"GPS stream error: {e}") from e

            if not line:
                raise SensorError("GPS connection closed by server")

            try:
                data = json.loads(line.decode("utf-8"))
            except (UnicodeDecodeError, json.JSONDecodeError) as e:
                logger.warning("GPS JSON parse error: %s", e)
                continue

            if data.get("class") != "TPV":
                continue

            sample = parse_tpv(data)
            if sample is None:
                continue

            self.fix_count += 1
            _deliver(on_sample, sample)

    @staticmethod
    async def _close(writer: asyncio.StreamWriter) -> None:
        try:
            writer.write(b'?WATCH={"enable":false}\n')
            writer.close()
            await writer.wait_closed()
        except (OSError, RuntimeError) as e:
            logger.debug("gpsd close: %s", e)


def parse_tpv(data: dict[str, Any]) -> Optional[PositionSample]:
    """
    Parse a TPV (Time-Position-Velocity) report from gpsd.

    Args:
        data: JSON dict from gpsd TPV message

    Returns:
        PositionSample for a 2D/3D fix, None otherwise
    """
    try:
        if "lat" not in data or "lon" not in data:
            return None

        # Mode: 0=unknown, 1=no fix, 2=2D, 3=3D
        if data.get("mode", 0) < 2:
            return None

        if data.get("eph") is not None:
            accuracy = float(data["eph"])
        elif data.get("epx") is not None or data.get("epy") is not None:
            accuracy = max(float(data.get("epx") or 0), float(data.get("epy") or 0))
        else:
            accuracy = DEFAULT_ACCURACY_M

        if data.get("time"):
            ts = datetime.fromisoformat(str(data["time"]))
            if ts.tzinfo is None:
                ts = ts.replace(tzinfo=UTC)
        else:
            ts = datetime.now(UTC)

        return PositionSample(
            latitude=float(data["lat"]),
            longitude=float(data["lon"]),
            timestamp_ms=int(ts.timestamp() * 1000),
            accuracy_meters=accuracy,
        )

    except (KeyError, ValueError, TypeError) as e:
        logger.error("TPV parse error: %s - data: %s", e, data)
        return None


class SimulatedLocationSource:
    """
    Simulated walker for development and the CLI's ``--simulate`` mode.

    Walks a square loop around the start point at a constant speed.
    """

    def __init__(
        self,
        start_lat: float = 41.0082,
        start_lon: float = 28.9784,
        speed_mps: float = 1.4,
        interval_secs: float = 1.0,
        accuracy_meters: float = 8.0,
        loop_size_m: float = 200.0,
    ) -> None:
        self.start_lat = start_lat
        self.start_lon = start_lon
        self.speed_mps = speed_mps
        self.interval_secs = interval_secs
        self.accuracy_meters = accuracy_meters
        self.loop_size_m = loop_size_m

    def waypoints(self) -> list[tuple[float, float]]:
        corners = [(self.start_lat, self.start_lon)]
        for bearing in (0.0, 90.0, 180.0):
            lat, lon = corners[-1]
            corners.append(offset_position(lat, lon, bearing, self.loop_size_m))
        return corners

    def walk(self) -> Iterator[tuple[float, float]]:
        """Endless sequence of positions, one per interval."""
        corners = self.waypoints()
        lat, lon = corners[0]
        target = 1
        step = self.speed_mps * self.interval_secs

        while True:
            yield lat, lon
            remaining = step
            while remaining > 0:
                t_lat, t_lon = corners[target]
                to_target = calculate_distance(lat, lon, t_lat, t_lon)
                if to_target <= remaining:
                    lat, lon = t_lat, t_lon
                    remaining -= to_target
                    target = (target + 1) % len(corners)
                    if to_target == 0:
                        break
                else:
                    heading = calculate_bearing(lat, lon, t_lat, t_lon)
                    lat, lon = offset_position(lat, lon, heading, remaining)
                    remaining = 0

    def subscribe(self, on_sample: SampleHandler, on_error: ErrorHandler) -> Disposer:
        task = asyncio.get_running_loop().create_task(self._run(on_sample))
        logger.info("Simulated GPS started at %.5f,%.5f", self.start_lat, self.start_lon)
        return _task_disposer(task)

    async def _run(self, on_sample: SampleHandler) -> None:
        for lat, lon in self.walk():
            _deliver(on_sample, PositionSample.now(lat, lon, self.accuracy_meters))
            await asyncio.sleep(self.interval_secs)
