"""
Selling Partner API clients.

``LWAAuthClient`` exchanges the refresh token for an access token at the
Login-with-Amazon endpoint; ``VendorOrdersClient`` pages through the
vendor purchase-order feed. Rate-limit and server errors are retried here
with tenacity; everything above this layer fails fast.
"""

import json
from typing import Any, Dict, List, Optional

import httpx
from tenacity import (
    RetryError,
    Retrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)
from tenacity.wait import wait_base

from avcimporter import __version__
from avcimporter.config import APISettings
from avcimporter.models import OrderRecord
from avcimporter.utils.errors import APIRequestError, AuthenticationError
from avcimporter.utils.logging import get_logger

logger = get_logger(__name__)

RETRYABLE_STATUS = {429, 500, 502, 503, 504}
USER_AGENT = f"avcimporter/{__version__}"


class _RetryableResponse(Exception):
    """A response worth retrying (rate limit or server error)."""

    def __init__(self, response: httpx.Response) -> None:
        super().__init__(f"HTTP {response.status_code}")
        self.response = response


class LWAAuthClient:
    """Fetch and cache an OAuth2 access token from Login with Amazon."""

    def __init__(
        self,
        token_url: str,
        client_id: str,
        client_secret: str,
        refresh_token: str,
        http_client: Optional[httpx.Client] = None,
        verbose: bool = False,
    ) -> None:
        self.token_url = token_url
        self.client_id = client_id
        self.client_secret = client_secret
        self.refresh_token = refresh_token
        self.verbose = verbose

        self._http = http_client or httpx.Client(timeout=30.0)
        self._access_token: Optional[str] = None

    def get_access_token(self) -> str:
        """
        Return the access token, requesting it on first use.

        Raises:
            AuthenticationError: If the token request fails or has no access_token
        """
        if self._access_token:
            return self._access_token

        try:
            response = self._http.post(
                self.token_url,
                data={
                    "grant_type": "refresh_token",
                    "refresh_token": self.refresh_token,
                    "client_id": self.client_id,
                    "client_secret": self.client_secret,
                },
                headers={"User-Agent": USER_AGENT},
            )
        except httpx.HTTPError as e:
            raise AuthenticationError(f"Failed to fetch token: {e}", {"token_url": self.token_url})

        if response.status_code != 200:
            raise AuthenticationError(
                f"Failed to fetch token: {response.text}",
                {"token_url": self.token_url, "status_code": response.status_code},
            )

        try:
            result = response.json()
        except ValueError as e:
            raise AuthenticationError(f"Token response is not JSON: {e}")

        token = result.get("access_token") if isinstance(result, dict) else None
        if not isinstance(token, str) or not token:
            raise AuthenticationError("Token response has no access_token")

        if self.verbose:
            shown = {k: ("********" if "token" in k else v) for k, v in result.items()}
            logger.info(f"OAuth2 Token Response: {shown}")

        self._access_token = token
        return token


class VendorOrdersClient:
    """Fetch purchase orders from the vendor orders endpoint."""

    def __init__(
        self,
        base_url: str,
        endpoint_url: str,
        auth: LWAAuthClient,
        order_id_field: str = "purchaseOrderNumber",
        page_limit: Optional[int] = None,
        http_client: Optional[httpx.Client] = None,
        timeout: float = 30.0,
        max_attempts: int = 3,
        retry_wait: Optional[wait_base] = None,
        verbose: bool = False,
    ) -> None:
        """
        Initialize the order feed client.

        Args:
            base_url: SP-API regional endpoint
            endpoint_url: Path of the purchase-order listing
            auth: Token provider
            order_id_field: Order field used as the record identifier
            page_limit: Optional page size sent as ``limit``
            http_client: Preconfigured httpx client (one is created otherwise)
            timeout: Request timeout for the created client
            max_attempts: Attempts per page on 429/5xx/network errors
            retry_wait: tenacity wait strategy between attempts
            verbose: Log full response payloads
        """
        self.url = base_url.rstrip("/") + "/" + endpoint_url.lstrip("/")
        self.auth = auth
        self.order_id_field = order_id_field
        self.page_limit = page_limit
        self.verbose = verbose

        self._http = http_client or httpx.Client(timeout=timeout)
        self._retrying = Retrying(
            retry=retry_if_exception_type((_RetryableResponse, httpx.TransportError)),
            stop=stop_after_attempt(max_attempts),
            wait=retry_wait or wait_exponential(multiplier=1, min=2, max=10),
        )

    @classmethod
    def from_settings(
        cls,
        api: APISettings,
        verbose: bool = False,
        http_client: Optional[httpx.Client] = None,
    ) -> "VendorOrdersClient":
        """Create an authenticated client from the API config section."""
        http_client = http_client or httpx.Client(timeout=api.timeout)
        auth = LWAAuthClient(
            token_url=api.token_url,
            client_id=api.auth.client_id,
            client_secret=api.auth.client_secret,
            refresh_token=api.auth.refresh_token,
            http_client=http_client,
            verbose=verbose,
        )
        return cls(
            base_url=api.base_url,
            endpoint_url=api.endpoint_url,
            auth=auth,
            order_id_field=api.order_id_field,
            page_limit=api.page_limit,
            http_client=http_client,
            verbose=verbose,
        )

    def close(self) -> None:
        self._http.close()

    def __enter__(self) -> "VendorOrdersClient":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    def _request_page(self, params: Dict[str, Any]) -> httpx.Response:
        headers = {
            "x-amz-access-token": self.auth.get_access_token(),
            "Accept": "application/json",
            "User-Agent": USER_AGENT,
        }
        response = self._http.get(self.url, params=params, headers=headers)
        if response.status_code in RETRYABLE_STATUS:
            logger.warning(f"Order feed returned {response.status_code}, retrying")
            raise _RetryableResponse(response)
        return response

    def _get_page(self, params: Dict[str, Any]) -> Dict[str, Any]:
        try:
            response = self._retrying(self._request_page, params)
        except RetryError as e:
            last = e.last_attempt.exception()
            if isinstance(last, _RetryableResponse):
                response = last.response
            else:
                raise APIRequestError(f"Failed to fetch data from API: {last}")

        if response.status_code != 200:
            raise APIRequestError(
                "Failed to fetch data from API",
                status_code=response.status_code,
                body=response.text,
            )

        if self.verbose:
            logger.info(f"API Response: {response.text}")

        try:
            body = response.json()
        except ValueError as e:
            raise APIRequestError(f"API response is not JSON: {e}", status_code=200, body=response.text)

        if not isinstance(body, dict) or not isinstance(body.get("payload"), dict):
            raise APIRequestError("API response has no payload object", status_code=200, body=response.text)
        return body["payload"]

    def _to_record(self, order: Any) -> OrderRecord:
        order_id = order.get(self.order_id_field) if isinstance(order, dict) else None
        if not isinstance(order_id, str) or not order_id:
            raise APIRequestError(
                f"Order without '{self.order_id_field}' in API response",
                body=json.dumps(order, default=str),
            )
        return OrderRecord(order_id=order_id, payload=order)

    def fetch_order_batch(self) -> List[OrderRecord]:
        """
        Fetch the current order batch, following pagination tokens.

        Returns:
            Orders in the order the API lists them

        Raises:
            AuthenticationError: If the token exchange fails
            APIRequestError: If a page cannot be fetched or parsed
        """
        logger.info(f"Fetching data from: {self.url}")

        records: List[OrderRecord] = []
        params: Dict[str, Any] = {}
        if self.page_limit:
            params["limit"] = self.page_limit

        while True:
            payload = self._get_page(params)
            orders = payload.get("orders") or []
            records.extend(self._to_record(order) for order in orders)

            next_token = (payload.get("pagination") or {}).get("nextToken")
            if not next_token:
                break
            params = {**params, "nextToken": next_token}

        logger.info(f"Fetched {len(records)} orders")
        return records
