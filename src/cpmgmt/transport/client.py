"""HTTP transport for the Check Point web APIs.

Every command is a POST of a JSON body to {base_url}{command}; the response
is a JSON object. Non-2xx responses carry an error body:

    {"code": "generic_err_object_not_found", "message": "...",
     "warnings": [...], "errors": [...], "blocking-errors": [...]}

which is mapped to an APIError subclass by its code.

Key Design Patterns:
-------------------
1. Lazy Client Initialization - HTTP clients created on first use
2. Auth Lock - Serialises login so concurrent callers share one session id
3. Retry Decorators - tenacity retries network errors and timeouts only
4. Semaphore - Bounds concurrent requests to max_connections
"""

import asyncio
import logging
import time
from typing import Any

import httpx
import structlog
from pydantic import ValidationError
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from ..config import ManagementConfig
from ..constants import SESSION_ID_HEADER
from ..observability.logger import TRACE, redact
from ..observability.metrics import MetricsCollector, get_global_collector
from ..utils.exceptions import (
    APIError,
    LoginFailedError,
    TransportError,
    api_error_class,
    check_cancelled,
)
from .response_models import ErrorResponse, LoginResponse

logger = structlog.get_logger(__name__)
# Payload dumps use a custom level only the stdlib logger knows
payload_logger = logging.getLogger(__name__)

_RETRY = dict(
    retry=retry_if_exception_type((httpx.NetworkError, httpx.TimeoutException)),
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=1, min=2, max=10),
    reraise=True,
)


def create_api_error(body: Any, status_code: int | None) -> APIError:
    """
    Build the exception for an error response.

    Args:
        body: Decoded JSON body (anything else counts as unparsable).
        status_code: HTTP status code.

    Returns:
        The APIError subclass matching the server error code, or a generic
        APIError("Server Error: <status>") when the body cannot be parsed.
    """
    if isinstance(body, dict):
        try:
            error = ErrorResponse.model_validate(body)
        except ValidationError:
            error = None
        if error is not None and (error.code or error.message):
            cls = api_error_class(error.code)
            return cls(
                error.get_message(),
                status_code=status_code,
                code=error.code,
                warnings=ErrorResponse.messages(error.warnings),
                errors=ErrorResponse.messages(error.errors),
                blocking_errors=ErrorResponse.messages(error.blocking_errors),
            )
    return APIError(f"Server Error: {status_code}", status_code=status_code)


class HttpTransport:
    """
    JSON-over-POST transport with async and blocking variants.

    Features:
    - Connection pooling via httpx.AsyncClient (and httpx.Client for post_sync)
    - Automatic retries with exponential backoff on network errors
    - Typed API errors
    - Request counting and latency metrics
    """

    def __init__(
        self,
        base_url: str,
        verify_ssl: bool = True,
        timeout: float = 100.0,
        max_connections: int = 5,
        collector: MetricsCollector | None = None,
    ):
        """
        Initialize transport.

        Args:
            base_url: URL every command name is appended to.
            verify_ssl: Verify the server certificate.
            timeout: Request timeout in seconds.
            max_connections: Concurrent requests and pooled connections.
            collector: Metrics collector (the global one when None).
        """
        self.base_url = base_url.rstrip("/") + "/"
        self.verify_ssl = verify_ssl
        self.timeout = timeout
        self.max_connections = max_connections
        self.headers: dict[str, str] = {}

        self._client: httpx.AsyncClient | None = None
        self._sync_client: httpx.Client | None = None
        self._semaphore = asyncio.Semaphore(max_connections)
        self._in_flight = 0

        self.collector = collector or get_global_collector()

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    async def close(self) -> None:
        """Close the HTTP clients."""
        if self._client:
            await self._client.aclose()
            self._client = None
        if self._sync_client:
            self._sync_client.close()
            self._sync_client = None

    @property
    def client(self) -> httpx.AsyncClient:
        """HTTP client with lazy initialization."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                verify=self.verify_ssl,
                timeout=self.timeout,
                limits=httpx.Limits(
                    max_connections=self.max_connections,
                    max_keepalive_connections=self.max_connections,
                ),
            )
        return self._client

    @property
    def sync_client(self) -> httpx.Client:
        """Blocking HTTP client, created on the first post_sync()."""
        if self._sync_client is None:
            self._sync_client = httpx.Client(
                verify=self.verify_ssl,
                timeout=self.timeout,
                limits=httpx.Limits(max_connections=1, max_keepalive_connections=1),
            )
        return self._sync_client

    # ------------------------------------------------------------------
    # Sending
    # ------------------------------------------------------------------

    @retry(**_RETRY)
    async def _send(
        self, url: str, payload: dict[str, Any], headers: dict[str, str]
    ) -> httpx.Response:
        return await self.client.post(url, json=payload, headers=headers)

    @retry(**_RETRY)
    def _send_sync(
        self, url: str, payload: dict[str, Any], headers: dict[str, str]
    ) -> httpx.Response:
        return self.sync_client.post(url, json=payload, headers=headers)

    async def post(
        self,
        command: str,
        payload: dict[str, Any] | None = None,
        cancel: asyncio.Event | None = None,
    ) -> Any:
        """
        Send one command.

        Args:
            command: Command name (e.g. "show-hosts").
            payload: JSON body ({} when None).
            cancel: Event checked before the request is sent.

        Returns:
            Decoded JSON response.

        Raises:
            OperationCancelledError: cancel was set.
            APIError: The server rejected the command (subclass by code).
            TransportError: No HTTP response after retries.
        """
        check_cancelled(cancel, command)
        body = payload or {}
        logger.debug("Posting command", command=command)
        if payload_logger.isEnabledFor(TRACE):
            payload_logger.log(TRACE, "Request payload %s: %s", command, redact(body))

        start = time.perf_counter()
        async with self._semaphore:
            self._in_flight += 1
            self.collector.update_in_flight(self._in_flight)
            try:
                response = await self._send(self.base_url + command, body, dict(self.headers))
            except httpx.HTTPError as e:
                self.collector.count_command(command, "transport_error")
                logger.error("HTTP request failed", command=command, error=str(e))
                raise TransportError(f"HTTP request for '{command}' failed: {e}", command) from e
            finally:
                self._in_flight -= 1
                self.collector.update_in_flight(self._in_flight)

        return self._handle_response(command, response, start)

    def post_sync(self, command: str, payload: dict[str, Any] | None = None) -> Any:
        """Blocking variant of post(), used by property reads that auto reload."""
        body = payload or {}
        logger.debug("Posting command (blocking)", command=command)
        start = time.perf_counter()
        try:
            response = self._send_sync(self.base_url + command, body, dict(self.headers))
        except httpx.HTTPError as e:
            self.collector.count_command(command, "transport_error")
            logger.error("HTTP request failed", command=command, error=str(e))
            raise TransportError(f"HTTP request for '{command}' failed: {e}", command) from e
        return self._handle_response(command, response, start)

    def _handle_response(self, command: str, response: httpx.Response, start: float) -> Any:
        duration = (time.perf_counter() - start) * 1000
        self.collector.record_latency(command, duration)

        if response.is_error:
            self.collector.count_command(command, "api_error")
            try:
                body = response.json()
            except ValueError:
                body = None
            error = create_api_error(body, response.status_code)
            logger.debug(
                "Command rejected",
                command=command,
                status=response.status_code,
                code=error.code,
                error=str(error),
            )
            raise error

        self.collector.count_command(command, "ok")
        if not response.content:
            return {}
        try:
            data = response.json()
        except ValueError as e:
            raise APIError(
                f"Invalid JSON in response to '{command}'", status_code=response.status_code
            ) from e
        if payload_logger.isEnabledFor(TRACE):
            payload_logger.log(TRACE, "Response payload %s: %s", command, redact(data))
        return data


class ManagementClient(HttpTransport):
    """
    Transport bound to a management server session.

    login() stores the session id, which is then sent as X-chkp-sid on every
    request until logout().
    """

    def __init__(self, config: ManagementConfig, collector: MetricsCollector | None = None):
        super().__init__(
            config.base_url,
            verify_ssl=config.verify_ssl,
            timeout=config.timeout,
            max_connections=config.max_connections,
            collector=collector,
        )
        self.config = config
        self.sid: str | None = None
        self.login_response: LoginResponse | None = None
        self._auth_lock = asyncio.Lock()

    def _login_payload(self) -> dict[str, Any]:
        config = self.config
        if config.api_key:
            payload: dict[str, Any] = {"api-key": config.api_key}
        else:
            payload = {"user": config.user, "password": config.password}
        if config.domain:
            payload["domain"] = config.domain
        if config.read_only:
            payload["read-only"] = True
        if config.continue_last_session:
            payload["continue-last-session"] = True
        if config.session_name:
            payload["session-name"] = config.session_name
        if config.session_timeout:
            payload["session-timeout"] = config.session_timeout
        return payload

    async def login(self, force: bool = False) -> LoginResponse:
        """
        Log in and store the session id.

        Args:
            force: Log in again even when a session id is held.

        Raises:
            LoginFailedError: Credentials rejected or no sid in the response.
        """
        async with self._auth_lock:
            if self.login_response is not None and not force:
                logger.debug("Already logged in, skipping")
                return self.login_response

            self.headers.pop(SESSION_ID_HEADER, None)
            logger.info(
                "Logging in",
                server=self.config.server,
                user=self.config.user,
                domain=self.config.domain,
            )
            data = await self.post("login", self._login_payload())
            try:
                login = LoginResponse.model_validate(data)
            except ValidationError as e:
                raise LoginFailedError("Login response did not contain a session id") from e

            self.sid = login.sid
            self.login_response = login
            self.headers[SESSION_ID_HEADER] = login.sid
            logger.info(
                "Login successful",
                api_server_version=login.api_server_version,
                session_timeout=login.session_timeout,
            )
            return login

    async def logout(self) -> None:
        """End the session; unpublished changes are discarded by the server."""
        if self.sid is None:
            return
        try:
            await self.post("logout", {})
            logger.info("Logged out", server=self.config.server)
        finally:
            self.sid = None
            self.login_response = None
            self.headers.pop(SESSION_ID_HEADER, None)
