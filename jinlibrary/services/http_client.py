import logging
import time
from functools import lru_cache
from typing import Any, Optional

import httpx
from pydantic import BaseModel, TypeAdapter, ValidationError

from jinlibrary.config import settings
from jinlibrary.errors import AuthRequired, DecodeFailure, NetworkFailure, ServerFailure, UnknownApiError
from jinlibrary.services.credential_store import CredentialStore
from jinlibrary.services.endpoints import Endpoint

logger = logging.getLogger(__name__)

JSON_HEADERS = {
    "Content-Type": "application/json",
    "Accept": "application/json",
}


@lru_cache(maxsize=64)
def _adapter_for(response_type: Any) -> TypeAdapter:
    return TypeAdapter(response_type)


class LibraryHTTPClient:
    """The single request pipeline to the library backend.

    Builds each request from an ``Endpoint`` descriptor, attaches the bearer
    credential for authenticated endpoints, classifies failures into the
    ``ApiError`` taxonomy and decodes successful bodies into pydantic models.
    A call makes at most one network attempt; nothing is retried.
    """

    def __init__(
        self,
        credentials: CredentialStore,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.credentials = credentials
        self.base_url = (base_url or settings.api_base_url).rstrip("/")

        limits = httpx.Limits(
            max_keepalive_connections=10,
            max_connections=20,
            keepalive_expiry=30.0
        )

        read_timeout = timeout if timeout is not None else settings.request_timeout
        request_timeout = httpx.Timeout(
            timeout=read_timeout,
            connect=min(settings.connect_timeout, read_timeout),
        )

        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            limits=limits,
            timeout=request_timeout,
            transport=transport,
        )

    async def perform(self, endpoint: Endpoint, response_type: Any = None, body: Optional[BaseModel] = None) -> Any:
        """Send one request and return the decoded response.

        Args:
            endpoint: route, method, query parameters and access capability
            response_type: pydantic model or typing shape to decode into;
                ``None`` skips decoding
            body: request model, sent as camelCase JSON

        Raises:
            AuthRequired: endpoint needs a credential and none is stored
            NetworkFailure: transport-level failure
            ServerFailure: status outside 200-299
            DecodeFailure: body does not match ``response_type``
            UnknownApiError: any other HTTP-layer failure
        """
        headers = dict(JSON_HEADERS)
        if endpoint.requires_auth:
            token = self.credentials.get()
            if not token:
                logger.info(f"{endpoint} skipped: no stored credential")
                raise AuthRequired()
            headers["Authorization"] = f"Bearer {token}"

        payload = body.model_dump(mode="json", by_alias=True, exclude_none=True) if body is not None else None

        start_time = time.time()
        try:
            response = await self._client.request(
                endpoint.method,
                endpoint.path,
                params=endpoint.params or None,
                json=payload,
                headers=headers,
            )
        except httpx.RequestError as e:
            logger.warning(f"{endpoint} failed before a response arrived: {e!r}")
            raise NetworkFailure(f"{endpoint} failed: {e}", cause=e) from e
        except httpx.HTTPError as e:
            logger.error(f"{endpoint} failed: {e!r}")
            raise UnknownApiError(f"{endpoint} failed: {e}", cause=e) from e

        response_time_ms = int((time.time() - start_time) * 1000)

        if not 200 <= response.status_code <= 299:
            message = response.text or None
            logger.warning(f"{endpoint} -> HTTP {response.status_code} in {response_time_ms}ms: {message}")
            raise ServerFailure(response.status_code, message)

        logger.debug(f"{endpoint} -> HTTP {response.status_code} in {response_time_ms}ms")

        if response_type is None:
            return None

        try:
            return _adapter_for(response_type).validate_json(response.content)
        except ValidationError as e:
            logger.warning(f"{endpoint} returned an undecodable body: {e}")
            raise DecodeFailure(f"Could not decode {endpoint} response", cause=e) from e

    async def aclose(self):
        """Close the underlying HTTP client"""
        await self._client.aclose()

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.aclose()
