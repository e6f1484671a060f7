from __future__ import annotations

import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

import httpx
import structlog

from mgnrega_api.config import Settings, settings

log = structlog.get_logger(__name__)

FILTER_KEYS = ("state_name", "district_code", "fin_year")


class FetchStatus(str, Enum):
    OK = "ok"
    NO_DATA = "no_data"
    UNAVAILABLE = "unavailable"


@dataclass
class FetchResult:
    status: FetchStatus
    records: List[Dict[str, Any]] = field(default_factory=list)
    error: Optional[str] = None
    duration_ms: int = 0

    @property
    def ok(self) -> bool:
        return self.status is FetchStatus.OK


class GovDataClient:
    """
    Thin client for the data.gov.in resource API. One GET per call, no
    retries; every outcome is reported through FetchResult.
    """

    def __init__(
        self,
        url: str,
        api_key: str,
        timeout: float = 20.0,
        default_limit: int = 5000,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.url = url
        self._api_key = api_key
        self._timeout = timeout
        self._default_limit = default_limit
        self._client = client or httpx.AsyncClient(
            limits=httpx.Limits(max_connections=10, max_keepalive_connections=5),
        )

    @classmethod
    def from_settings(cls, cfg: Settings = settings) -> "GovDataClient":
        return cls(
            url=cfg.DATA_GOV_URL,
            api_key=cfg.DATA_GOV_API_KEY,
            timeout=cfg.HTTP_TIMEOUT,
            default_limit=cfg.FETCH_LIMIT,
        )

    async def aclose(self) -> None:
        await self._client.aclose()

    def build_params(self, filters: Dict[str, Optional[str]], limit: int) -> Dict[str, Any]:
        params: Dict[str, Any] = {
            "api-key": self._api_key,
            "format": "json",
            "limit": limit,
        }
        for key in FILTER_KEYS:
            value = filters.get(key)
            if value:
                params[f"filters[{key}]"] = value
        return params

    async def fetch(
        self, filters: Dict[str, Optional[str]], limit: Optional[int] = None
    ) -> FetchResult:
        params = self.build_params(filters, limit or self._default_limit)
        scope = {k: v for k, v in filters.items() if v}
        t0 = time.monotonic()
        try:
            resp = await self._client.get(self.url, params=params, timeout=self._timeout)
            resp.raise_for_status()
            data = resp.json()
        except httpx.TimeoutException:
            log.error("fetch.timeout", timeout=self._timeout, **scope)
            return FetchResult(FetchStatus.UNAVAILABLE, error=f"Timed out after {self._timeout}s")
        except httpx.HTTPStatusError as exc:
            log.error("fetch.failed", status=exc.response.status_code, **scope)
            return FetchResult(
                FetchStatus.UNAVAILABLE,
                error=f"Upstream returned HTTP {exc.response.status_code}",
            )
        except (httpx.HTTPError, ValueError) as exc:
            log.error("fetch.failed", error=str(exc), **scope)
            return FetchResult(FetchStatus.UNAVAILABLE, error=str(exc) or type(exc).__name__)

        ms = int((time.monotonic() - t0) * 1000)
        records = data.get("records") if isinstance(data, dict) else data
        if not isinstance(records, list):
            records = []

        if not records:
            log.info("fetch.empty", ms=ms, **scope)
            return FetchResult(FetchStatus.NO_DATA, duration_ms=ms)

        log.info("fetch.ok", records=len(records), ms=ms, **scope)
        return FetchResult(FetchStatus.OK, records=records, duration_ms=ms)
