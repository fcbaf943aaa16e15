"""JSON query API over the wayfinding engine.

Serves the zone detection, routing and observation surfaces on a
configurable port (default 8780). Built on stdlib ``http.server``;
requests from different devices are handled on separate threads.

Endpoints
---------
GET  /api/zones/detect    Zone at a point (query: event_id, x, y)
GET  /api/zones/:eventId  Active zones of an event in evaluation order
GET  /api/route           Route to a POI (query: floorplan_id, x, y, poi_id)
POST /api/observe         Zone observation feeding dwell aggregation
POST /api/sessions/end    Close a device's open visit

Engine failures are reported in the body (``success: false`` and
``error`` set to the error kind). Malformed parameters get 400 and
unknown paths or ids get 404.
"""

from __future__ import annotations

import json
import logging
import threading
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from typing import Any, Callable
from urllib.parse import parse_qsl, urlsplit

from pydantic import BaseModel, ValidationError

from venue_nav.core.engine import WayfindingEngine
from venue_nav.core.errors import ZoneCatalogUnavailableError
from venue_nav.utils.config import DEFAULT_API_HOST, DEFAULT_API_PORT
from venue_nav.utils.logging import LogLevel, get_logger

logger = logging.getLogger(__name__)

Response = tuple[int, dict[str, Any]]


class ObservationRequest(BaseModel):
    """Body of POST /api/observe."""

    device_id: str
    event_id: str | None = None
    x: float
    y: float
    timestamp: float | None = None


class EndSessionRequest(BaseModel):
    """Body of POST /api/sessions/end."""

    device_id: str
    timestamp: float | None = None


def _error(status: int, message: str, error: str | None = None) -> Response:
    return status, {"success": False, "message": message, "error": error}


def _coordinates(query: dict[str, str]) -> tuple[float, float] | None:
    try:
        return float(query["x"]), float(query["y"])
    except (KeyError, ValueError):
        return None


# =====================================================================
# Request routing (transport independent)
# =====================================================================

class WayfindingAPI:
    """Maps API requests to engine calls.

    Every handler returns ``(status, body)`` so the routing can be
    exercised without a socket.
    """

    def __init__(self, engine: WayfindingEngine) -> None:
        self.engine = engine

    def handle_get(self, path: str, query: dict[str, str]) -> Response:
        if path == "/api/zones/detect":
            return self._detect(query)
        if path.startswith("/api/zones/"):
            return self._zones(path[len("/api/zones/"):])
        if path == "/api/route":
            return self._route(query)
        return _error(404, "Not found")

    def handle_post(self, path: str, body: bytes) -> Response:
        try:
            payload = json.loads(body or b"{}")
        except ValueError:
            # JSONDecodeError and UnicodeDecodeError
            return _error(400, "invalid JSON")

        try:
            if path == "/api/observe":
                return self._observe(ObservationRequest.model_validate(payload))
            if path == "/api/sessions/end":
                return self._end_session(EndSessionRequest.model_validate(payload))
        except ValidationError as e:
            return _error(400, f"invalid request: {e.error_count()} field error(s)")
        return _error(404, "Not found")

    # ------------------------------------------------------------------
    # Handlers
    # ------------------------------------------------------------------

    def _detect(self, query: dict[str, str]) -> Response:
        coords = _coordinates(query)
        if coords is None:
            return _error(400, "x and y are required numbers")
        detection = self.engine.detect(query.get("event_id") or None, *coords)
        return 200, detection.to_response()

    def _zones(self, event_id: str) -> Response:
        if not event_id:
            return _error(404, "Not found")
        try:
            catalog = self.engine.catalog(event_id)
        except ZoneCatalogUnavailableError as e:
            return _error(404, str(e), e.kind.value)
        zones = catalog.active_zones(event_id)
        return 200, {
            "success": True,
            "event_id": event_id,
            "zones": [z.model_dump(mode="json") for z in zones],
            "count": len(zones),
        }

    def _route(self, query: dict[str, str]) -> Response:
        coords = _coordinates(query)
        floorplan_id = query.get("floorplan_id")
        poi_id = query.get("poi_id")
        if coords is None or not floorplan_id or not poi_id:
            return _error(400, "floorplan_id, poi_id, x and y are required")
        try:
            result = self.engine.route(floorplan_id, *coords, poi_id)
        except KeyError:
            return _error(404, f"unknown POI {poi_id}")
        return 200, result.to_response()

    def _observe(self, request: ObservationRequest) -> Response:
        detection = self.engine.observe(
            request.device_id,
            request.event_id,
            request.x,
            request.y,
            request.timestamp,
        )
        body = detection.to_response()
        body["device_id"] = request.device_id
        return 200, body

    def _end_session(self, request: EndSessionRequest) -> Response:
        closed = self.engine.end_session(request.device_id, request.timestamp)
        return 200, {
            "success": True,
            "device_id": request.device_id,
            "closed_visit": closed.model_dump(mode="json") if closed else None,
        }


# =====================================================================
# HTTP Request Handler
# =====================================================================

class _APIHandler(BaseHTTPRequestHandler):
    """Handles HTTP requests for the wayfinding API."""

    # Injected by WayfindingAPIServer.start()
    _api: WayfindingAPI

    def log_message(self, format: str, *args: Any) -> None:
        pass  # Suppress default stderr

    def _send_json(self, data: Any, status: int = 200) -> None:
        body = json.dumps(data, default=str).encode()
        self.send_response(status)
        self.send_header("Content-Type", "application/json")
        self.send_header("Content-Length", str(len(body)))
        self.send_header("Access-Control-Allow-Origin", "*")
        self.send_header("Access-Control-Allow-Methods", "GET, POST, OPTIONS")
        self.send_header("Access-Control-Allow-Headers", "Content-Type")
        self.end_headers()
        self.wfile.write(body)

    def do_OPTIONS(self) -> None:
        """Handle CORS preflight."""
        self.send_response(204)
        self.send_header("Access-Control-Allow-Origin", "*")
        self.send_header("Access-Control-Allow-Methods", "GET, POST, OPTIONS")
        self.send_header("Access-Control-Allow-Headers", "Content-Type")
        self.end_headers()

    def do_GET(self) -> None:
        parts = urlsplit(self.path)
        status, body = self._api.handle_get(parts.path, dict(parse_qsl(parts.query)))
        self._log(status, parts.path)
        self._send_json(body, status)

    def do_POST(self) -> None:
        path = urlsplit(self.path).path
        length = int(self.headers.get("Content-Length") or 0)
        status, body = self._api.handle_post(path, self.rfile.read(length))
        self._log(status, path)
        self._send_json(body, status)

    def _log(self, status: int, path: str) -> None:
        get_logger().api(
            f"{self.command} {path} -> {status}",
            level=LogLevel.WARNING if status >= 400 else LogLevel.DEBUG,
        )


# =====================================================================
# Server wrapper
# =====================================================================

class WayfindingAPIServer:
    """Manages the HTTP API server, in a daemon thread or the foreground.

    Parameters
    ----------
    engine : WayfindingEngine
        Engine whose snapshots and devices the API serves.
    host : str
        Interface to bind (default 127.0.0.1).
    port : int
        Port to listen on (default 8780, 0 picks a free port).
    """

    def __init__(
        self,
        engine: WayfindingEngine,
        host: str = DEFAULT_API_HOST,
        port: int = DEFAULT_API_PORT,
    ) -> None:
        self.api = WayfindingAPI(engine)
        self.host = host
        self.port = port
        self._server: ThreadingHTTPServer | None = None
        self._thread: threading.Thread | None = None

    def _bind(self) -> ThreadingHTTPServer:
        handler = type("WayfindingAPIHandler", (_APIHandler,), {"_api": self.api})
        self._server = ThreadingHTTPServer((self.host, self.port), handler)
        self.port = self._server.server_address[1]
        return self._server

    def start(self) -> None:
        """Serve in a background daemon thread."""
        server = self._bind()
        self._thread = threading.Thread(
            target=server.serve_forever,
            daemon=True,
            name="wayfinding-api-server",
        )
        self._thread.start()
        logger.info(f"Wayfinding API server started on http://{self.host}:{self.port}")

    @property
    def url(self) -> str:
        return f"http://{self.host}:{self.port}"

    def serve_forever(self, on_ready: Callable[[str], None] | None = None) -> None:
        """Serve in the calling thread until interrupted.

        Args:
            on_ready: Called with the bound URL once the socket is listening.
        """
        server = self._bind()
        logger.info(f"Wayfinding API server listening on {self.url}")
        if on_ready is not None:
            on_ready(self.url)
        try:
            server.serve_forever()
        finally:
            server.server_close()

    def stop(self) -> None:
        if self._server:
            self._server.shutdown()
            self._server.server_close()
            self._server = None
        if self._thread:
            self._thread.join(timeout=5)
            self._thread = None
        logger.info("Wayfinding API server stopped")
