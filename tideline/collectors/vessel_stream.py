"""Tideline — Vessel Stream Controller (AISStream.io).

Owns the only long-lived transport in the system: the AISStream.io
WebSocket. Inbound ``PositionReport`` / ``ShipStaticData`` messages are
upserted by MMSI into a pending buffer; a flush loop merges the buffer into
the published snapshot every ``update_interval_ms`` and pushes the snapshot
to every subscriber queue.

Close handling mirrors what AISStream reports:
  - 1006 with a missing/placeholder key  → no_api_key (no reconnect)
  - 1006 otherwise                       → error (key rejected, no reconnect)
  - 1008                                 → error (subscription rejected)
  - any other non-1000 close             → disconnected, reconnect with
                                           exponential backoff

Without a key the controller can serve a simulated roster instead, so the
geofence has traffic to work with in development.
"""

import asyncio
import json
import logging
from typing import Callable, Optional

import websockets
from pydantic import ValidationError
from websockets.exceptions import ConnectionClosed, InvalidHandshake

from backend.config import settings
from backend.models import ConnectionStatus, Vessel, utcnow
from collectors.ais_types import ship_type_name
from collectors.vessel_fallback import drift_vessels, fallback_vessels

logger = logging.getLogger("tideline.stream")

GLOBAL_BBOX = [[[-90, -180], [90, 180]]]
MESSAGE_TYPES = ["PositionReport", "ShipStaticData"]
HEADING_NOT_AVAILABLE = 511

PLACEHOLDER_KEY = "your_aisstream_api_key"
MIN_KEY_LENGTH = 20

CLOSE_NORMAL = 1000
CLOSE_ABNORMAL = 1006
CLOSE_POLICY_VIOLATION = 1008

SUBSCRIBER_QUEUE_SIZE = 4


def _clean(text) -> Optional[str]:
    # AIS pads text fields with '@'
    if not text:
        return None
    cleaned = str(text).strip().rstrip("@").strip()
    return cleaned or None


def format_eta(eta: Optional[dict]) -> Optional[str]:
    """AIS ETA → ``MM-DD HH:MM``."""
    if not eta:
        return None
    return "{:02d}-{:02d} {:02d}:{:02d}".format(
        int(eta.get("Month", 0)), int(eta.get("Day", 0)),
        int(eta.get("Hour", 0)), int(eta.get("Minute", 0)),
    )


def is_placeholder_key(api_key: str) -> bool:
    return api_key == PLACEHOLDER_KEY or len(api_key) < MIN_KEY_LENGTH


class VesselStream:
    """Connection-owning vessel feed with pause/resume and a buffered snapshot."""

    def __init__(
        self,
        api_key: str = settings.aisstream_api_key,
        url: str = settings.aisstream_url,
        update_interval_ms: int = settings.vessel_update_interval_ms,
        max_vessels: int = settings.max_vessels,
        reconnect_delay_ms: int = settings.reconnect_delay_ms,
        max_reconnect_attempts: int = settings.max_reconnect_attempts,
        use_fallback: bool = settings.use_fallback_vessels,
        fallback_refresh_interval: float = settings.fallback_refresh_interval,
        connector: Optional[Callable] = None,
    ):
        self.api_key = api_key or ""
        self.url = url
        self.update_interval_ms = update_interval_ms
        self.max_vessels = max_vessels
        self.reconnect_delay_ms = reconnect_delay_ms
        self.max_reconnect_attempts = max_reconnect_attempts
        self.use_fallback = use_fallback
        self.fallback_refresh_interval = fallback_refresh_interval
        self._connector = connector or websockets.connect

        self._vessels: dict[str, Vessel] = {}
        self._pending: dict[str, Vessel] = {}
        self._subscribers: list[asyncio.Queue] = []

        self._status = ConnectionStatus.DISCONNECTED
        self._error: Optional[str] = None
        self._paused = False
        self._simulated = False
        self._stopping = False
        self._reconnect_attempts = 0
        self._messages_received = 0

        self._ws_task: Optional[asyncio.Task] = None
        self._flush_task: Optional[asyncio.Task] = None
        self._fallback_task: Optional[asyncio.Task] = None

    # ── Public state ────────────────────────────────────

    @property
    def status(self) -> ConnectionStatus:
        return self._status

    @property
    def error(self) -> Optional[str]:
        return self._error

    @property
    def paused(self) -> bool:
        return self._paused

    @property
    def simulated(self) -> bool:
        return self._simulated

    @property
    def reconnect_attempts(self) -> int:
        return self._reconnect_attempts

    def snapshot(self) -> list[Vessel]:
        return list(self._vessels.values())

    def stats(self) -> dict:
        return {
            "status": self._status.value,
            "error": self._error,
            "paused": self._paused,
            "simulated": self._simulated,
            "vessel_count": len(self._vessels),
            "pending": len(self._pending),
            "update_interval_ms": self.update_interval_ms,
            "reconnect_attempts": self._reconnect_attempts,
            "messages_received": self._messages_received,
        }

    # ── Subscribers ─────────────────────────────────────

    def subscribe(self) -> asyncio.Queue:
        """Queue receiving the full vessel snapshot on every change."""
        queue: asyncio.Queue = asyncio.Queue(maxsize=SUBSCRIBER_QUEUE_SIZE)
        self._subscribers.append(queue)
        return queue

    def unsubscribe(self, queue: asyncio.Queue):
        if queue in self._subscribers:
            self._subscribers.remove(queue)

    def _publish(self):
        snapshot = self.snapshot()
        for queue in self._subscribers:
            if queue.full():
                # Slow consumer: the newest snapshot supersedes the oldest
                queue.get_nowait()
            queue.put_nowait(snapshot)

    # ── Controls ────────────────────────────────────────

    async def connect(self):
        """Open the live feed, or the simulated roster when no key is configured."""
        if self._status in (ConnectionStatus.CONNECTING, ConnectionStatus.CONNECTED):
            return

        self._stopping = False
        self._error = None
        self._ensure_flush_loop()

        if not self.api_key:
            if self.use_fallback:
                self._start_fallback()
            else:
                self._set_status(
                    ConnectionStatus.NO_API_KEY,
                    "No AISStream API key configured. Get a free key at https://aisstream.io",
                )
            return

        self._reconnect_attempts = 0
        self._ws_task = asyncio.create_task(self._run())

    async def disconnect(self):
        """Close the transport, cancel any pending reconnect, and drop all vessels."""
        self._stopping = True
        for task in (self._ws_task, self._fallback_task, self._flush_task):
            if task and not task.done():
                task.cancel()
        for task in (self._ws_task, self._fallback_task, self._flush_task):
            if task:
                try:
                    await task
                except asyncio.CancelledError:
                    pass
        self._ws_task = self._fallback_task = self._flush_task = None
        self._simulated = False
        self._set_status(ConnectionStatus.DISCONNECTED)
        self.clear()
        logger.info("[stream] Disconnected")

    def pause(self):
        """Drop inbound updates; the connection stays up."""
        self._paused = True
        self._pending.clear()
        logger.info("[stream] Paused")

    def resume(self):
        self._paused = False
        logger.info("[stream] Resumed")

    def set_update_interval(self, interval_ms: int):
        """Change how often buffered updates are flushed to the snapshot."""
        if interval_ms <= 0:
            raise ValueError(f"update interval must be positive, got {interval_ms}")
        self.update_interval_ms = interval_ms
        logger.info("[stream] Update interval set to %dms", interval_ms)

    def clear(self):
        """Empty the vessel set immediately and publish the empty snapshot."""
        self._vessels.clear()
        self._pending.clear()
        self._publish()

    # ── Message handling ────────────────────────────────

    def handle_raw(self, raw) -> Optional[Vessel]:
        try:
            data = json.loads(raw)
        except (TypeError, ValueError) as e:
            logger.debug("[stream] Message parse error: %s", e)
            return None
        return self.process_message(data)

    def process_message(self, data: dict) -> Optional[Vessel]:
        """Upsert one AISStream message into the pending buffer."""
        if self._paused or not isinstance(data, dict):
            return None
        meta = data.get("MetaData")
        if not meta or meta.get("MMSI") is None:
            return None

        self._messages_received += 1
        mmsi = str(meta["MMSI"])
        current = self._pending.get(mmsi) or self._vessels.get(mmsi)
        update = {
            "mmsi": mmsi,
            "lat": meta.get("latitude"),
            "lon": meta.get("longitude"),
            "last_update": utcnow(),
        }
        name = _clean(meta.get("ShipName"))
        if name:
            update["name"] = name

        message = data.get("Message") or {}
        position = message.get("PositionReport")
        if position:
            if position.get("Cog") is not None:
                update["course"] = position["Cog"]
            if position.get("Sog") is not None:
                update["speed"] = position["Sog"]
            heading = position.get("TrueHeading")
            update["heading"] = None if heading in (None, HEADING_NOT_AVAILABLE) else heading

        static = message.get("ShipStaticData")
        if static:
            type_code = static.get("Type")
            update.update({
                "imo": str(static["ImoNumber"]) if static.get("ImoNumber") else None,
                "ship_type": type_code,
                "ship_type_name": ship_type_name(type_code),
                "callsign": _clean(static.get("CallSign")),
                "destination": _clean(static.get("Destination")),
                "eta": format_eta(static.get("Eta")),
                "draught": static.get("MaximumStaticDraught"),
            })
            static_name = _clean(static.get("Name"))
            if static_name and "name" not in update:
                update["name"] = static_name
            dim = static.get("Dimension")
            if dim:
                update["length"] = (dim.get("A") or 0) + (dim.get("B") or 0)
                update["width"] = (dim.get("C") or 0) + (dim.get("D") or 0)

        try:
            vessel = Vessel.model_validate({**(current.model_dump() if current else {}), **update})
        except ValidationError as e:
            logger.debug("[stream] Dropping malformed report for %s: %s", mmsi, e)
            return None
        self._pending[mmsi] = vessel
        return vessel

    def flush(self) -> bool:
        """Merge pending updates into the snapshot. Returns True when anything changed."""
        if not self._pending:
            return False
        self._vessels.update(self._pending)
        self._pending.clear()
        self._evict()
        self._publish()
        return True

    def _evict(self):
        excess = len(self._vessels) - self.max_vessels
        if excess <= 0:
            return
        oldest = sorted(self._vessels.values(), key=lambda v: v.last_update)[:excess]
        for v in oldest:
            del self._vessels[v.mmsi]
        logger.debug("[stream] Evicted %d oldest vessels", excess)

    # ── Close handling ──────────────────────────────────

    def handle_close(self, code: int, reason: str = "") -> Optional[float]:
        """Apply a close code; returns the reconnect delay in seconds, or None."""
        if self._stopping:
            return None
        logger.info("[stream] AISStream closed: %s %s", code, reason)

        if code == CLOSE_ABNORMAL:
            if is_placeholder_key(self.api_key):
                self._set_status(
                    ConnectionStatus.NO_API_KEY,
                    "Invalid API key. Get a free key at https://aisstream.io and set TIDELINE_AISSTREAM_API_KEY",
                )
            else:
                self._set_status(
                    ConnectionStatus.ERROR,
                    "Connection rejected - API key may be invalid or expired. Verify your key at https://aisstream.io",
                )
            return None

        if code == CLOSE_POLICY_VIOLATION:
            self._set_status(ConnectionStatus.ERROR, "Subscription rejected by server. Check API key permissions.")
            return None

        self._set_status(ConnectionStatus.DISCONNECTED)
        if code == CLOSE_NORMAL:
            return None
        return self._next_reconnect_delay()

    def _next_reconnect_delay(self) -> Optional[float]:
        if self._reconnect_attempts >= self.max_reconnect_attempts:
            self._error = f"Failed to connect after {self.max_reconnect_attempts} attempts"
            logger.error("[stream] %s", self._error)
            return None
        self._reconnect_attempts += 1
        delay_ms = self.reconnect_delay_ms * 2 ** (self._reconnect_attempts - 1)
        logger.info(
            "[stream] Reconnect %d/%d in %dms",
            self._reconnect_attempts, self.max_reconnect_attempts, delay_ms,
        )
        return delay_ms / 1000

    # ── Transport ───────────────────────────────────────

    def subscription_message(self) -> dict:
        return {
            "APIKey": self.api_key,
            "BoundingBoxes": GLOBAL_BBOX,
            "FilterMessageTypes": MESSAGE_TYPES,
        }

    async def _run(self):
        while True:
            code, reason = await self._connect_once()
            delay = self.handle_close(code, reason)
            if delay is None:
                return
            await asyncio.sleep(delay)

    async def _connect_once(self) -> tuple[int, str]:
        self._set_status(ConnectionStatus.CONNECTING)
        try:
            async with self._connector(self.url) as ws:
                # AISStream drops connections that do not subscribe within 3s
                await ws.send(json.dumps(self.subscription_message()))
                self._reconnect_attempts = 0
                self._set_status(ConnectionStatus.CONNECTED)
                logger.info("[stream] Connected to AISStream.io")

                async for raw in ws:
                    self.handle_raw(raw)
                return ws.close_code or CLOSE_NORMAL, ws.close_reason or ""
        except ConnectionClosed as e:
            if e.rcvd is None:
                return CLOSE_ABNORMAL, "no close frame received"
            return e.rcvd.code, e.rcvd.reason
        except InvalidHandshake as e:
            # A rejected upgrade surfaces to clients as an abnormal close
            logger.warning("[stream] Handshake rejected: %s", e)
            return CLOSE_ABNORMAL, str(e)
        except (OSError, asyncio.TimeoutError) as e:
            logger.warning("[stream] AISStream unreachable: %s", e)
            return 1011, str(e)

    def _ensure_flush_loop(self):
        if self._flush_task is None or self._flush_task.done():
            self._flush_task = asyncio.create_task(self._flush_loop())

    async def _flush_loop(self):
        while True:
            await asyncio.sleep(self.update_interval_ms / 1000)
            self.flush()

    # ── Simulated roster ────────────────────────────────

    def _start_fallback(self):
        anchors = fallback_vessels()
        self._vessels = {v.mmsi: v for v in anchors}
        self._simulated = True
        self._set_status(ConnectionStatus.CONNECTED)
        self._publish()
        self._fallback_task = asyncio.create_task(self._fallback_loop(anchors))
        logger.warning("[stream] No AISStream API key — serving %d simulated vessels", len(anchors))

    async def _fallback_loop(self, anchors: list[Vessel]):
        while True:
            await asyncio.sleep(self.fallback_refresh_interval)
            if self._paused:
                continue
            self._vessels = {v.mmsi: v for v in drift_vessels(anchors, self.fallback_refresh_interval)}
            self._publish()

    def _set_status(self, status: ConnectionStatus, error: Optional[str] = None):
        if status != self._status:
            logger.info("[stream] %s → %s", self._status.value, status.value)
        self._status = status
        if error is not None:
            self._error = error
            logger.error("[stream] %s", error)
        elif status in (ConnectionStatus.CONNECTING, ConnectionStatus.CONNECTED):
            self._error = None
