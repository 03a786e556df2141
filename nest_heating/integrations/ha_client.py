"""Home Assistant REST client for the context oracles.

Only two calls are needed: reading one entity's state, and calling a service
(``weather.get_forecasts``) with ``return_response``. Presence, holiday and
indoor sensor entities are interpreted by :class:`EntityState`.
"""

from __future__ import annotations

import logging
from contextlib import suppress
from dataclasses import dataclass, field
from typing import Any

import httpx

logger = logging.getLogger(__name__)


class HAClientError(Exception):
    """Base class for Home Assistant failures; oracles treat it as "unknown"."""


class HAUnavailableError(HAClientError):
    """Home Assistant could not be reached or did not answer in time."""


class HAAuthError(HAClientError):
    """The long-lived access token was rejected."""


class HAEntityNotFoundError(HAClientError):
    """The entity or service does not exist."""


class HARequestError(HAClientError):
    """Any other non-success status."""


_ON_STATES = frozenset({"on", "home", "true", "yes", "open"})
_OFF_STATES = frozenset({"off", "not_home", "away", "false", "no", "closed"})


@dataclass(frozen=True, slots=True)
class EntityState:
    entity_id: str
    state: str
    attributes: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> EntityState:
        return cls(
            entity_id=str(payload.get("entity_id", "")),
            state=str(payload.get("state", "")),
            attributes=dict(payload.get("attributes") or {}),
        )

    @property
    def friendly_name(self) -> str:
        return str(self.attributes.get("friendly_name") or self.entity_id)

    def as_bool(self) -> bool | None:
        """``True``/``False`` for recognised states, ``None`` for e.g. ``unavailable``."""
        normalised = self.state.strip().lower()
        if normalised in _ON_STATES:
            return True
        if normalised in _OFF_STATES:
            return False
        return None

    def as_float(self) -> float | None:
        try:
            return float(self.state)
        except ValueError:
            return None


_ERROR_BY_STATUS: dict[int, type[HAClientError]] = {
    401: HAAuthError,
    403: HAAuthError,
    404: HAEntityNotFoundError,
}


class HAClient:
    """Thin async wrapper over the Home Assistant REST API.

    The underlying ``httpx.AsyncClient`` is created on first use, so a client
    whose startup ping failed keeps working once Home Assistant comes back.
    """

    def __init__(
        self,
        url: str,
        token: str,
        *,
        timeout: float = 15.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._base_url = url.rstrip("/")
        self._token = token
        self._timeout = timeout
        self._transport = transport
        self._http: httpx.AsyncClient | None = None

    async def __aenter__(self) -> HAClient:
        await self.connect()
        return self

    async def __aexit__(self, *exc: object) -> None:
        await self.disconnect()

    def _client(self) -> httpx.AsyncClient:
        if not self._token:
            raise HAUnavailableError("Home Assistant access token is not configured")
        if self._http is None:
            self._http = httpx.AsyncClient(
                base_url=self._base_url,
                headers={"Authorization": f"Bearer {self._token}"},
                timeout=self._timeout,
                transport=self._transport,
            )
        return self._http

    async def connect(self) -> None:
        """Ping ``/api/`` so configuration problems show up at startup."""
        await self._send("GET", "/api/")
        logger.info("Home Assistant reachable at %s", self._base_url)

    async def disconnect(self) -> None:
        if self._http is None:
            return
        with suppress(httpx.HTTPError):
            await self._http.aclose()
        self._http = None

    async def _send(self, method: str, path: str, json: Any = None) -> httpx.Response:
        client = self._client()
        try:
            response = await client.request(method, path, json=json)
        except httpx.TimeoutException as exc:
            raise HAUnavailableError(f"{method} {path} timed out after {self._timeout}s") from exc
        except httpx.HTTPError as exc:
            raise HAUnavailableError(f"{method} {path} failed: {exc}") from exc

        if response.is_error:
            error_cls = _ERROR_BY_STATUS.get(response.status_code, HARequestError)
            raise error_cls(
                f"{method} {path} returned {response.status_code}: {response.text[:200]}"
            )
        return response

    async def get_state(self, entity_id: str) -> EntityState:
        response = await self._send("GET", f"/api/states/{entity_id}")
        entity = EntityState.from_payload(response.json())
        logger.debug("%s is %r", entity_id, entity.state)
        return entity

    async def call_service(
        self,
        domain: str,
        service: str,
        data: dict[str, Any] | None = None,
        *,
        return_response: bool = False,
    ) -> Any:
        """Call ``domain.service``; returns the JSON body or ``None``."""
        path = f"/api/services/{domain}/{service}"
        if return_response:
            path += "?return_response"
        response = await self._send("POST", path, json=data or {})
        if "json" not in response.headers.get("content-type", ""):
            return None
        return response.json()

    def __repr__(self) -> str:
        return f"<HAClient url={self._base_url!r}>"


__all__ = [
    "EntityState",
    "HAAuthError",
    "HAClient",
    "HAClientError",
    "HAEntityNotFoundError",
    "HARequestError",
    "HAUnavailableError",
]
