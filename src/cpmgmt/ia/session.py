"""Identity Awareness web API session.

Identities are added, queried and revoked on a gateway with the
add-identity, show-identity and delete-identity commands. Each request is
authenticated by the gateway's shared secret.

Batching:
---------
After start_add_batch() (or the show/delete variants), matching requests are
buffered instead of sent. The buffer is sent as one request

    {"shared-secret": "...", "requests": [...]}

when it reaches max_batch_size, and on flush(). Responses arrive as
{"responses": [...]} and are passed one by one to the output callback.

Only one batch can be active per session. The buffer is guarded by an
asyncio.Lock: a full buffer is captured and cleared under the lock and sent
after releasing it, so other callers keep appending while it is in flight.
"""

import asyncio
from collections.abc import Callable, Iterable
from typing import Any

import structlog
from pydantic import BaseModel

from ..config import IdentityAwarenessConfig
from ..models.identity import (
    AddIdentityResponse,
    ClientType,
    DeleteIdentityResponse,
    ShowIdentityResponse,
)
from ..transport.client import HttpTransport
from ..utils.exceptions import BatchInProgressError

logger = structlog.get_logger(__name__)

ADD_IDENTITY = "add-identity"
SHOW_IDENTITY = "show-identity"
DELETE_IDENTITY = "delete-identity"

RESPONSE_MODELS: dict[str, type[BaseModel]] = {
    ADD_IDENTITY: AddIdentityResponse,
    SHOW_IDENTITY: ShowIdentityResponse,
    DELETE_IDENTITY: DeleteIdentityResponse,
}

Output = Callable[[Any], None]


def _add_if_not_none(request: dict[str, Any], key: str, value: Any) -> None:
    if value is None:
        return
    if isinstance(value, bool):
        # The gateway expects flags as 0/1
        value = int(value)
    elif isinstance(value, (list, tuple, set)):
        value = list(value)
    request[key] = value


class IdentityAwarenessSession:
    """Client of one gateway's Identity Awareness API."""

    def __init__(
        self,
        config: IdentityAwarenessConfig,
        transport: HttpTransport | None = None,
    ):
        """
        Initialize the session.

        Args:
            config: Gateway address, shared secret and limits.
            transport: Transport to use (built from config when None).
        """
        self.config = config
        self.transport = transport or HttpTransport(
            config.base_url,
            verify_ssl=config.verify_ssl,
            timeout=config.timeout,
            max_connections=config.max_connections,
        )

        self._lock = asyncio.Lock()
        self._requests: list[dict[str, Any]] = []
        self._output: Output | None = None
        self.batch_command: str | None = None
        self.max_batch_size = config.max_batch_size

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    async def close(self) -> None:
        """Close the transport. Buffered requests are not sent."""
        if self._requests:
            logger.warning(
                "Closing with unsent identity requests",
                command=self.batch_command,
                pending=len(self._requests),
            )
        await self.transport.close()

    @property
    def is_batching(self) -> bool:
        return self.batch_command is not None

    @property
    def pending_count(self) -> int:
        """Number of buffered requests not yet sent."""
        return len(self._requests)

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    async def add_identity(
        self,
        ip_address: str,
        user: str | None = None,
        machine: str | None = None,
        domain: str | None = None,
        session_timeout: int | None = None,
        fetch_user_groups: bool | None = None,
        fetch_machine_groups: bool | None = None,
        calculate_roles: bool | None = None,
        user_groups: Iterable[str] | None = None,
        machine_groups: Iterable[str] | None = None,
        roles: Iterable[str] | None = None,
        machine_os: str | None = None,
        host_type: str | None = None,
        cancel: asyncio.Event | None = None,
    ) -> AddIdentityResponse | None:
        """
        Associate a user and/or machine with an IP address.

        Args:
            ip_address: Address the identity is bound to.
            session_timeout: Seconds the identity stays valid (config default
                when None).
            cancel: Event checked before any request.

        Returns:
            The gateway response, or None when the request was buffered.
        """
        request: dict[str, Any] = {"ip-address": ip_address}
        _add_if_not_none(request, "user", user)
        _add_if_not_none(request, "machine", machine)
        _add_if_not_none(request, "domain", domain)
        _add_if_not_none(
            request,
            "session-timeout",
            session_timeout if session_timeout is not None else self.config.session_timeout,
        )
        _add_if_not_none(request, "fetch-user-groups", fetch_user_groups)
        _add_if_not_none(request, "fetch-machine-groups", fetch_machine_groups)
        _add_if_not_none(request, "user-groups", user_groups)
        _add_if_not_none(request, "machine-groups", machine_groups)
        _add_if_not_none(request, "calculate-roles", calculate_roles)
        _add_if_not_none(request, "roles", roles)
        _add_if_not_none(request, "machine-os", machine_os)
        _add_if_not_none(request, "host-type", host_type)
        return await self._submit(ADD_IDENTITY, request, cancel)

    async def show_identity(
        self, ip_address: str, cancel: asyncio.Event | None = None
    ) -> ShowIdentityResponse | None:
        """Query the identities bound to an IP address."""
        return await self._submit(SHOW_IDENTITY, {"ip-address": ip_address}, cancel)

    async def delete_identity(
        self,
        ip_address: str,
        client_type: ClientType = ClientType.ANY,
        cancel: asyncio.Event | None = None,
    ) -> DeleteIdentityResponse | None:
        """Revoke the identities of one IP address."""
        request = {"client-type": ClientType(client_type).value, "ip-address": ip_address}
        return await self._submit(DELETE_IDENTITY, request, cancel)

    async def delete_identity_mask(
        self,
        subnet: str,
        subnet_mask: str,
        client_type: ClientType = ClientType.ANY,
        cancel: asyncio.Event | None = None,
    ) -> DeleteIdentityResponse | None:
        """Revoke the identities of every address in a subnet."""
        request = {
            "revoke-method": "mask",
            "client-type": ClientType(client_type).value,
            "subnet": subnet,
            "subnet-mask": subnet_mask,
        }
        return await self._submit(DELETE_IDENTITY, request, cancel)

    async def delete_identity_range(
        self,
        first_ip: str,
        last_ip: str,
        client_type: ClientType = ClientType.ANY,
        cancel: asyncio.Event | None = None,
    ) -> DeleteIdentityResponse | None:
        """Revoke the identities of every address in a range."""
        request = {
            "revoke-method": "range",
            "client-type": ClientType(client_type).value,
            "ip-address-first": first_ip,
            "ip-address-last": last_ip,
        }
        return await self._submit(DELETE_IDENTITY, request, cancel)

    async def _submit(
        self, command: str, request: dict[str, Any], cancel: asyncio.Event | None
    ) -> Any:
        if self.batch_command == command:
            await self._add_to_batch(request, cancel)
            return None

        body = {**request, "shared-secret": self.config.shared_secret}
        data = await self.transport.post(command, body, cancel=cancel)
        return RESPONSE_MODELS[command].model_validate(data)

    # ------------------------------------------------------------------
    # Batching
    # ------------------------------------------------------------------

    def start_add_batch(
        self, output: Output | None = None, max_batch_size: int | None = None
    ) -> None:
        """Buffer add-identity requests until flush() or the buffer is full."""
        self._start_batch(ADD_IDENTITY, output, max_batch_size)

    def start_show_batch(
        self, output: Output | None = None, max_batch_size: int | None = None
    ) -> None:
        self._start_batch(SHOW_IDENTITY, output, max_batch_size)

    def start_delete_batch(
        self, output: Output | None = None, max_batch_size: int | None = None
    ) -> None:
        self._start_batch(DELETE_IDENTITY, output, max_batch_size)

    def _start_batch(self, command: str, output: Output | None, max_batch_size: int | None) -> None:
        if self.batch_command is not None:
            raise BatchInProgressError(self.batch_command)
        size = max_batch_size if max_batch_size is not None else self.config.max_batch_size
        if size < 1:
            raise ValueError(f"max_batch_size must be at least 1, got {size}")

        self.batch_command = command
        self._output = output
        self.max_batch_size = size
        logger.debug("Identity batch started", command=command, max_batch_size=size)

    async def _add_to_batch(self, request: dict[str, Any], cancel: asyncio.Event | None) -> None:
        async with self._lock:
            command = self.batch_command
            output = self._output
            self._requests.append(request)
            batch = self._take_batch() if len(self._requests) >= self.max_batch_size else []

        if batch and command:
            await self._send_batch(command, batch, output, cancel)

    def _take_batch(self) -> list[dict[str, Any]]:
        # Caller holds self._lock
        requests, self._requests = self._requests, []
        return requests

    async def flush(
        self, stop_batch: bool = False, cancel: asyncio.Event | None = None
    ) -> list[BaseModel]:
        """
        Send the buffered requests now.

        Args:
            stop_batch: End the batch; later requests are sent one by one.
            cancel: Event checked before the request.

        Returns:
            The parsed responses (also passed to the output callback).
        """
        async with self._lock:
            command = self.batch_command
            output = self._output
            batch = self._take_batch()
            if stop_batch:
                self._stop_batch()

        if not batch or command is None:
            return []
        return await self._send_batch(command, batch, output, cancel)

    async def reset_batch(self, stop_batch: bool = False) -> None:
        """Drop the buffered requests without sending them."""
        async with self._lock:
            dropped = self._take_batch()
            if stop_batch:
                self._stop_batch()
        if dropped:
            logger.info("Identity batch discarded", dropped=len(dropped))

    def _stop_batch(self) -> None:
        self.batch_command = None
        self._output = None
        self.max_batch_size = self.config.max_batch_size

    async def _send_batch(
        self,
        command: str,
        requests: list[dict[str, Any]],
        output: Output | None,
        cancel: asyncio.Event | None,
    ) -> list[BaseModel]:
        logger.debug("Sending identity batch", command=command, size=len(requests))
        self.transport.collector.count_batch(command, len(requests))

        body = {"shared-secret": self.config.shared_secret, "requests": requests}
        data = await self.transport.post(command, body, cancel=cancel)

        model = RESPONSE_MODELS[command]
        responses = [model.model_validate(r) for r in (data or {}).get("responses", [])]
        if output is not None:
            for response in responses:
                output(response)
        return responses
