"""
Parse Server REST client.

Wraps a single aiohttp session authenticated with the application id and
master key, and fetches the observed schema: classes, cloud function
webhooks and trigger webhooks.
"""

import asyncio
import logging
from typing import Any, Dict, Optional

import aiohttp

from ..config import ParseServerConfig
from ..exceptions import ConfigurationError, ParseAPIError, RemoteFetchError
from ..schema.models import Schema

logger = logging.getLogger(__name__)


class ParseClient:
    """
    Async client for the Parse Server schema and hooks endpoints.

    Read-only requests are retried with exponential backoff up to
    ``config.max_retries``; mutating requests are sent exactly once.
    """

    def __init__(self, config: ParseServerConfig):
        self.config = config
        self.base_url = config.url.rstrip("/")

        # Session for connection reuse
        self._session: Optional[aiohttp.ClientSession] = None

    async def _get_session(self) -> aiohttp.ClientSession:
        """Get or create aiohttp session."""
        if self._session is None or self._session.closed:
            timeout = aiohttp.ClientTimeout(total=self.config.timeout)
            self._session = aiohttp.ClientSession(
                timeout=timeout,
                headers={
                    "X-Parse-Application-Id": self.config.application_id,
                    "X-Parse-Master-Key": self.config.master_key,
                    "Content-Type": "application/json",
                    "User-Agent": "schema-sync/0.1",
                },
            )
        return self._session

    def url_for(self, path: str) -> str:
        return f"{self.base_url}/{path.lstrip('/')}"

    async def request(
        self,
        method: str,
        path: str,
        payload: Optional[Dict[str, Any]] = None,
    ) -> Any:
        """
        Send one request and return the decoded JSON body.

        Raises:
            ParseAPIError: On HTTP errors, network errors and timeouts
        """
        session = await self._get_session()
        url = self.url_for(path)
        kwargs: Dict[str, Any] = {}
        if payload is not None:
            kwargs["json"] = payload

        logger.debug(f"{method} {url}")
        try:
            async with session.request(method, url, **kwargs) as response:
                if response.status >= 400:
                    raise await self._api_error(method, path, response)
                return await response.json(content_type=None)
        except aiohttp.ClientError as e:
            raise ParseAPIError(f"Network error during {method} {path}: {e}", cause=e)
        except asyncio.TimeoutError as e:
            raise ParseAPIError(
                f"Timeout during {method} {path} (timeout: {self.config.timeout}s)", cause=e
            )

    async def _api_error(
        self, method: str, path: str, response: aiohttp.ClientResponse
    ) -> ParseAPIError:
        body = await response.text()
        error_code = None
        error_msg = f"HTTP {response.status}"
        try:
            data = await response.json(content_type=None)
        except ValueError:
            data = None
        if isinstance(data, dict):
            error_code = data.get("code")
            error_msg = data.get("error", error_msg)

        return ParseAPIError(
            f"Parse Server error during {method} {path}: {error_msg}",
            status_code=response.status,
            error_code=error_code,
            response_body=body,
        )

    async def get(self, path: str) -> Any:
        """GET with retries and exponential backoff."""
        attempt = 0
        while True:
            try:
                return await self.request("GET", path)
            except ParseAPIError as e:
                retryable = e.status_code is None or e.status_code >= 500
                if not retryable or attempt >= self.config.max_retries:
                    raise
                delay = self.config.retry_delay * (2 ** attempt)
                logger.warning(
                    f"GET {path} failed, retrying in {delay}s (attempt {attempt + 1}): {e}"
                )
                await asyncio.sleep(delay)
                attempt += 1

    async def post(self, path: str, payload: Dict[str, Any]) -> Any:
        return await self.request("POST", path, payload)

    async def put(self, path: str, payload: Dict[str, Any]) -> Any:
        return await self.request("PUT", path, payload)

    async def delete(self, path: str) -> Any:
        return await self.request("DELETE", path)

    async def fetch_schema(self) -> Schema:
        """
        Fetch the live schema.

        Collections, functions and triggers are retrieved independently; a
        failure on any of them fails the whole fetch.

        Returns:
            The observed Schema

        Raises:
            RemoteFetchError: If any of the three lists cannot be retrieved
        """
        logger.info(f"Fetching live schema from {self.base_url}")

        collections = await self._fetch_list("/schemas", "collections", key="results")
        functions = await self._fetch_list("/hooks/functions", "functions")
        triggers = await self._fetch_list("/hooks/triggers", "triggers")

        try:
            return Schema.from_dict(
                {"collections": collections, "functions": functions, "triggers": triggers}
            )
        except ConfigurationError as e:
            raise RemoteFetchError("Parse Server returned a malformed schema", cause=e)

    async def _fetch_list(self, path: str, what: str, key: Optional[str] = None) -> Any:
        try:
            data = await self.get(path)
        except ParseAPIError as e:
            logger.error(f"Unable to retrieve {what} from Parse Server")
            raise RemoteFetchError(f"Unable to retrieve {what} from Parse Server", cause=e)

        if key is not None:
            data = data.get(key) if isinstance(data, dict) else None
        if not isinstance(data, list):
            logger.error(f"Unexpected {what} response from Parse Server")
            raise RemoteFetchError(f"Unexpected {what} response from Parse Server")
        return data

    async def __aenter__(self):
        """Async context manager entry."""
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit."""
        await self.close()

    async def close(self) -> None:
        """Close the aiohttp session."""
        if self._session and not self._session.closed:
            await self._session.close()
            self._session = None

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(url={self.base_url})"
