"""
mock_server.py
=================

Servidor Flask que simula la API de Dealers League Marine para desarrollo
local y pruebas del cliente (marine_client) sin tocar produccion.

Contratos soportados (todas las rutas exigen Authorization: Basic):
- GET  /settings/get                 -> {...ajustes de la cuenta...}
- GET  /settings/integrations        -> [{"name": str, "enabled": bool}, ...]
- POST /listing/get?page=N           -> {"page": int, "total": int, "items": [...]}
  Cuerpo opcional: filtros por igualdad, p. ej. {"manufacturer": "Beneteau"}
- GET  /listing/get?id=ID            -> {...listing...} o 404 not_found
- GET  /broker/get?page=N            -> {"page": int, "total": int, "items": [...]}
- GET  /location/get, /country/get, /colour_tag/get, /category/get, /manufacturer/get
- POST /analytics/listing [{"listing_id": int, "event": str}, ...] -> {"ok": true, "count": int}

Errores con el formato de la API real: {"code": str, "message": str}.

Sobrecarga simulada: las proximas N peticiones responden 503 (BUSY_RESPONSES
o STATE.busy desde los tests).

Configuracion por variables de entorno (opcionales):
- MOCK_USER_EMAIL (por defecto "demo@example.com")
- MOCK_API_KEY (por defecto "demo-key")
- PAGE_SIZE (por defecto 2)
- BUSY_RESPONSES (por defecto 0)
- PORT (por defecto 5001)

Ejecucion local:
  PORT=5001 python mock_server.py
  MARINE_API_URL=http://127.0.0.1:5001 MARINE_USER_EMAIL=demo@example.com MARINE_API_KEY=demo-key ...
"""

from __future__ import annotations

import base64
import logging
import os
from typing import Any, Dict, List, Optional

from flask import Flask, jsonify, request, Response


logger = logging.getLogger(__name__)

app = Flask(__name__)


def _env_int(name: str, default: int) -> int:
    try:
        v = int(os.environ.get(name, str(default)))
        return v
    except ValueError:
        return default


USER_EMAIL = os.environ.get("MOCK_USER_EMAIL", "demo@example.com")
API_KEY = os.environ.get("MOCK_API_KEY", "demo-key")
PAGE_SIZE = max(1, _env_int("PAGE_SIZE", 2))


# --------------------------
# Datos de referencia
# --------------------------

COUNTRIES = [
    {"code": "ES", "name": "Spain"},
    {"code": "FR", "name": "France"},
    {"code": "GB", "name": "United Kingdom"},
]

COLOUR_TAGS = [
    {"id": 1, "name": "featured", "colour": "#f59e0b"},
    {"id": 2, "name": "reduced", "colour": "#ef4444"},
]

CATEGORIES = [
    {"id": 1, "name": "Sail"},
    {"id": 2, "name": "Motor"},
]

MANUFACTURERS = [
    {"id": 1, "name": "Beneteau"},
    {"id": 2, "name": "Jeanneau"},
    {"id": 3, "name": "Princess"},
]

LOCATIONS = [
    {"id": 1, "name": "Palma de Mallorca", "country": "ES"},
    {"id": 2, "name": "Antibes", "country": "FR"},
]


def _seed_listings() -> Dict[int, Dict[str, Any]]:
    items = [
        {"id": 101, "title": "Oceanis 46.1", "manufacturer": "Beneteau", "category": "Sail", "price": 310000},
        {"id": 102, "title": "Sun Odyssey 410", "manufacturer": "Jeanneau", "category": "Sail", "price": 245000},
        {"id": 103, "title": "Princess V50", "manufacturer": "Princess", "category": "Motor", "price": 690000},
        {"id": 104, "title": "Antares 11", "manufacturer": "Beneteau", "category": "Motor", "price": 180000},
    ]
    return {it["id"]: it for it in items}


class MockState:
    """Estado en memoria del servidor simulado."""

    def __init__(self) -> None:
        self.reset()

    def reset(self) -> None:
        self.listings: Dict[int, Dict[str, Any]] = _seed_listings()
        self.brokers: List[Dict[str, Any]] = [
            {"id": 1, "name": "Ana Ruiz", "email": "ana@example.com"},
            {"id": 2, "name": "Tom Hale", "email": "tom@example.com"},
            {"id": 3, "name": "Lea Martin", "email": "lea@example.com"},
        ]
        self.analytics: List[Dict[str, Any]] = []
        self.busy: int = max(0, _env_int("BUSY_RESPONSES", 0))
        self.requests_seen: int = 0


STATE = MockState()


def api_error(code: str, message: str, status: int) -> tuple[Response, int]:
    return jsonify({"code": code, "message": message}), status


def _expected_auth() -> str:
    token = base64.b64encode(f"{USER_EMAIL}:{API_KEY}".encode("utf-8")).decode("ascii")
    return "Basic " + token


def _page_arg() -> Optional[int]:
    raw = request.args.get("page", "0")
    try:
        page = int(raw)
    except ValueError:
        return None
    return page if page >= 0 else None


def paginate(items: List[Dict[str, Any]], page: int) -> Dict[str, Any]:
    start = page * PAGE_SIZE
    return {"page": page, "page_size": PAGE_SIZE, "total": len(items), "items": items[start:start + PAGE_SIZE]}


@app.before_request
def simulate_and_authenticate() -> Optional[tuple[Response, int]]:
    STATE.requests_seen += 1
    if STATE.busy > 0:
        STATE.busy -= 1
        logger.info("simulating overload for %s %s (%d left)", request.method, request.path, STATE.busy)
        return api_error("too_busy", "Service temporarily overloaded", 503)
    if request.headers.get("Authorization") != _expected_auth():
        return api_error("unauthorized", "Invalid credentials", 401)
    return None


@app.get("/settings/get")
def settings_get() -> Response:
    return jsonify({"company": "Demo Yachts", "currency": "EUR", "language": "en", "listings_per_page": PAGE_SIZE})


@app.get("/settings/integrations")
def settings_integrations() -> Response:
    return jsonify([
        {"name": "yachtworld", "enabled": True},
        {"name": "boat24", "enabled": False},
    ])


@app.route("/listing/get", methods=["GET", "POST"])
def listing_get() -> Any:
    """GET con ?id= devuelve un listing; POST con ?page= devuelve una pagina filtrada."""
    if request.method == "GET":
        raw_id = request.args.get("id", "")
        try:
            lid = int(raw_id)
        except ValueError:
            return api_error("bad_value", f"invalid listing id '{raw_id}'", 400)
        listing = STATE.listings.get(lid)
        if listing is None:
            return api_error("not_found", f"listing {lid} not found", 404)
        return jsonify(listing)

    page = _page_arg()
    if page is None:
        return api_error("bad_value", "page must be a non-negative integer", 400)
    filters: Dict[str, Any] = {}
    if request.get_data():
        payload = request.get_json(silent=True)
        if not isinstance(payload, dict):
            return api_error("bad_json", "search options must be a JSON object", 400)
        filters = payload
    items = [it for it in STATE.listings.values()
             if all(it.get(k) == v for k, v in filters.items())]
    return jsonify(paginate(items, page))


@app.get("/broker/get")
def broker_get() -> Any:
    page = _page_arg()
    if page is None:
        return api_error("bad_value", "page must be a non-negative integer", 400)
    return jsonify(paginate(STATE.brokers, page))


@app.get("/location/get")
def location_get() -> Response:
    return jsonify(LOCATIONS)


@app.get("/country/get")
def country_get() -> Response:
    return jsonify(COUNTRIES)


@app.get("/colour_tag/get")
def colour_tag_get() -> Response:
    return jsonify(COLOUR_TAGS)


@app.get("/category/get")
def category_get() -> Response:
    return jsonify(CATEGORIES)


@app.get("/manufacturer/get")
def manufacturer_get() -> Response:
    return jsonify(MANUFACTURERS)


@app.post("/analytics/listing")
def analytics_listing() -> Any:
    payload = request.get_json(silent=True)
    if payload is None:
        return api_error("bad_json", "body must be a JSON array", 400)
    if not isinstance(payload, list):
        return api_error("bad_value", "events must be an array", 400)
    for ev in payload:
        if not isinstance(ev, dict) or "listing_id" not in ev or not ev.get("event"):
            return api_error("bad_value", "each event needs listing_id and event", 400)
        if ev["listing_id"] not in STATE.listings:
            return api_error("not_found", f"listing {ev['listing_id']} not found", 404)
    STATE.analytics.extend(payload)
    return jsonify({"ok": True, "count": len(payload)})


def main() -> None:
    """Punto de entrada para ejecutar el servidor simulado en local."""
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    port = _env_int("PORT", 5001)
    app.run(host="127.0.0.1", port=port, debug=False)


if __name__ == "__main__":
    main()
