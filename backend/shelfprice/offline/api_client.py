"""HTTP client for the price API, used by the sync coordinator"""
import json
import uuid
from typing import Any, Dict, List, Optional

import httpx
from pydantic import ValidationError as SchemaValidationError

from shelfprice.core.logging import get_logger
from shelfprice.offline.config import client_settings
from shelfprice.schemas.price import PriceAggregationResponse, PriceResponse, PriceSubmissionResponse
from shelfprice.schemas.store import StoreListResponse

logger = get_logger("shelfprice.offline.api")

REQUEST_ID_HEADER = "x-request-id"


class ApiClientError(Exception):
    def __init__(self, message: str, url: str, method: str, request_id: Optional[str] = None):
        super().__init__(message)
        self.url = url
        self.method = method
        self.request_id = request_id


class ApiTimeoutError(ApiClientError):
    def __init__(self, url: str, method: str, timeout: float, request_id: Optional[str] = None):
        super().__init__(f"API request timed out after {timeout}s ({method} {url})", url, method, request_id)
        self.timeout = timeout


class ApiNetworkError(ApiClientError):
    def __init__(self, url: str, method: str, reason: str, request_id: Optional[str] = None):
        super().__init__(f"Network request failed ({method} {url}): {reason}", url, method, request_id)


class ApiHttpError(ApiClientError):
    def __init__(
        self,
        status: int,
        url: str,
        method: str,
        response_body: Optional[str] = None,
        request_id: Optional[str] = None,
    ):
        message = f"API request failed ({status}) for {method} {url}"
        if response_body:
            message = f"{message}: {response_body}"
        super().__init__(message, url, method, request_id)
        self.status = status
        self.response_body = response_body


class ApiParseError(ApiClientError):
    def __init__(self, url: str, method: str, response_body: str, request_id: Optional[str] = None):
        super().__init__(f"Failed to parse API JSON response for {method} {url}", url, method, request_id)
        self.response_body = response_body


class PriceApiClient:
    """
    Thin async wrapper over the price API.

    Every failure surfaces as an ApiClientError subclass so callers can
    tell a server rejection (ApiHttpError) from a transport problem.
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = (base_url or client_settings.API_BASE_URL).strip().rstrip("/")
        self.timeout = client_settings.REQUEST_TIMEOUT_SECONDS if timeout is None else timeout
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=self.timeout,
            transport=transport,
            headers={"Accept": "application/json"},
        )

    async def aclose(self):
        await self._client.aclose()

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc_info):
        await self.aclose()

    async def request_json(self, method: str, path: str, body: Optional[Dict[str, Any]] = None) -> Any:
        url = f"{self.base_url}{path}"
        request_id = str(uuid.uuid4())
        headers = {REQUEST_ID_HEADER: request_id}

        logger.debug("%s %s [%s]", method, url, request_id)
        try:
            response = await self._client.request(method, path, json=body, headers=headers)
        except httpx.TimeoutException as exc:
            raise ApiTimeoutError(url, method, self.timeout, request_id) from exc
        except httpx.TransportError as exc:
            raise ApiNetworkError(url, method, str(exc) or exc.__class__.__name__, request_id) from exc

        raw = response.text
        if response.is_error:
            logger.warning("%s %s -> %d [%s]", method, url, response.status_code, request_id)
            raise ApiHttpError(response.status_code, url, method, raw, request_id)

        if not raw:
            return None

        try:
            return json.loads(raw)
        except ValueError as exc:
            raise ApiParseError(url, method, raw, request_id) from exc

    def _parse(self, schema, payload: Any, method: str, path: str):
        try:
            return schema.model_validate(payload)
        except SchemaValidationError as exc:
            raise ApiParseError(f"{self.base_url}{path}", method, json.dumps(payload, default=str)) from exc

    async def submit_price(self, payload: Dict[str, Any]) -> PriceSubmissionResponse:
        data = await self.request_json("POST", "/prices", payload)
        return self._parse(PriceSubmissionResponse, data, "POST", "/prices")

    async def get_best_price(self, product_id: str) -> PriceAggregationResponse:
        path = f"/prices/best/{product_id}"
        data = await self.request_json("GET", path)
        return self._parse(PriceAggregationResponse, data, "GET", path)

    async def get_price_history(self, product_id: str) -> List[PriceResponse]:
        path = f"/prices/history/{product_id}"
        data = await self.request_json("GET", path)
        if not isinstance(data, list):
            raise ApiParseError(f"{self.base_url}{path}", "GET", json.dumps(data, default=str))
        return [self._parse(PriceResponse, item, "GET", path) for item in data]

    async def list_stores(self) -> StoreListResponse:
        data = await self.request_json("GET", "/stores")
        return self._parse(StoreListResponse, data, "GET", "/stores")
