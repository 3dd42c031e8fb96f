from __future__ import annotations

from dataclasses import replace
from typing import Any, Callable, Dict, List, Optional
from urllib.parse import urlencode

from marine_client.config import MarineConfig
from marine_client.core.dispatcher import RequestDispatcher, Transport
from marine_client.core.errors import ConfigurationError, ValidationError
from marine_client.core.models import CancelToken, Credentials
from marine_client.transport.http_client import HttpTransportClient


class MarineClient:
    """Fachada de la API: un metodo por recurso/accion remota.

    Cada metodo arma (verbo, ruta, opciones) y delega en RequestDispatcher;
    el resultado se devuelve sin tocar.
    """

    def __init__(
        self,
        user_email: str,
        api_key: str,
        config: MarineConfig | None = None,
        transport: Transport | None = None,
        sleep: Callable[[float], None] | None = None,
    ) -> None:
        if not user_email:
            raise ConfigurationError('Please provide "User email"')
        if not api_key:
            raise ConfigurationError('Please provide "API Key"')
        self._cfg = replace(config) if config is not None else MarineConfig()
        self._credentials = Credentials(user_email=user_email, api_key=api_key)
        self._transport = transport or HttpTransportClient(self._cfg)
        self._dispatcher = RequestDispatcher(self._credentials, self._cfg, self._transport, sleep=sleep)

    @classmethod
    def from_env(
        cls,
        transport: Transport | None = None,
        sleep: Callable[[float], None] | None = None,
    ) -> "MarineClient":
        cfg = MarineConfig.from_env()
        return cls(cfg.user_email, cfg.api_key, config=cfg, transport=transport, sleep=sleep)

    @property
    def api_url(self) -> str:
        return self._cfg.base_url

    def set_api_url(self, url: str) -> None:
        if not isinstance(url, str) or not url:
            raise ValidationError("url requerido")
        self._cfg.base_url = url

    def request(
        self,
        method: str,
        path: str,
        options: Optional[Dict[str, Any]] = None,
        decode_json: bool = True,
        return_raw: bool = True,
        cancel: CancelToken | None = None,
    ) -> Any:
        return self._dispatcher.send(method, path, options, decode_json, return_raw, cancel)

    @staticmethod
    def _page(current_page: int) -> int:
        if isinstance(current_page, bool) or not isinstance(current_page, int) or current_page < 0:
            raise ValidationError("current_page must be a non-negative integer")
        return current_page

    def get_settings(self) -> Any:
        return self.request("GET", "/settings/get")

    def get_integrations(self) -> Any:
        return self.request("GET", "/settings/integrations")

    def get_listings_page(self, current_page: int = 0, search_options: Dict[str, Any] | None = None) -> Any:
        """Pagina de listings; `search_options` viaja como cuerpo JSON si no esta vacio."""
        page = self._page(current_page)
        if search_options is not None and not isinstance(search_options, dict):
            raise ValidationError("search_options must be a dict")
        options = {"body": search_options} if search_options else {}
        return self.request("POST", "/listing/get?" + urlencode({"page": page}), options)

    def get_single_listing(self, listing_id: int | str) -> Any:
        if listing_id is None or str(listing_id).strip() == "":
            raise ValidationError("listing_id requerido")
        return self.request("GET", "/listing/get?" + urlencode({"id": str(listing_id).strip()}))

    def get_brokers_page(self, current_page: int = 0) -> Any:
        page = self._page(current_page)
        return self.request("GET", "/broker/get?" + urlencode({"page": page}))

    def get_locations(self) -> Any:
        return self.request("GET", "/location/get")

    def get_countries(self) -> Any:
        return self.request("GET", "/country/get")

    def get_colour_tags(self) -> Any:
        return self.request("GET", "/colour_tag/get")

    def get_categories(self) -> Any:
        return self.request("GET", "/category/get")

    def get_manufacturers(self) -> Any:
        return self.request("GET", "/manufacturer/get")

    def send_listing_analytics(self, events: List[Dict[str, Any]]) -> Any:
        """Envia un lote de eventos de analitica de listings (array JSON)."""
        if not isinstance(events, list):
            raise ValidationError("events must be a list")
        for ev in events:
            if not isinstance(ev, dict):
                raise ValidationError("each analytics event must be a dict")
        return self.request("POST", "/analytics/listing", {"body": events})
