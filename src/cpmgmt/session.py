"""Management API session.

The public entry point of the client:

    async with Session(ManagementConfig(server="mgmt", user="admin", password="...")) as s:
        hosts = await s.find_all_hosts()
        web = Host(s, name="web01")
        web.ipv4_address = "10.0.0.10"
        await web.save()
        await s.publish()

Lookups classify identifiers as uid or name automatically. Every call
converts its response in its own conversion pass; objects returned by
different calls are distinct instances even when they share a uid.
"""

import asyncio
from typing import Any, TypeVar

import structlog

from .config import ManagementConfig
from .constants import DEFAULT_PAGE_LIMIT
from .core.finder import Finder
from .core.pager import Pager
from .models.base import Ignore, ObjectSummary
from .models.detail_level import DetailLevel, DetailLevelAction
from .models.objects import AccessRule, Group, Host, Network
from .models.paging import PagingResult
from .models.registry import TypeRegistry, default_registry
from .transport.client import ManagementClient
from .transport.response_models import LoginResponse
from .utils.identifiers import lookup_field

logger = structlog.get_logger(__name__)

T = TypeVar("T", bound=ObjectSummary)


class Session:
    """Logged-in connection to a management server."""

    def __init__(
        self,
        config: ManagementConfig,
        transport: ManagementClient | None = None,
        registry: TypeRegistry | None = None,
    ):
        """
        Initialize the session (no request is sent until login()).

        Args:
            config: Server, credentials and options.
            transport: Transport to use (built from config when None).
            registry: Discriminator table (default_registry when None).
        """
        self.config = config
        self.transport = transport or ManagementClient(config)
        self.registry = registry or default_registry
        self.detail_level_action: DetailLevelAction = config.detail_level_action

        self.pager = Pager(self, self.registry)
        self.finder = Finder(self, self.registry)

    async def __aenter__(self):
        await self.login()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        try:
            await self.logout()
        finally:
            await self.close()

    async def close(self) -> None:
        await self.transport.close()

    # ------------------------------------------------------------------
    # Session commands
    # ------------------------------------------------------------------

    async def login(self, force: bool = False) -> LoginResponse:
        return await self.transport.login(force=force)

    async def logout(self) -> None:
        await self.transport.logout()

    async def publish(self, cancel: asyncio.Event | None = None) -> str | None:
        """
        Publish the changes of this session.

        Returns:
            Id of the publish task started by the server.
        """
        response = await self.post("publish", {}, cancel=cancel)
        task_id = response.get("task-id")
        logger.info("Publish started", task_id=task_id)
        return task_id

    async def discard(self, cancel: asyncio.Event | None = None) -> None:
        """Discard the unpublished changes of this session."""
        response = await self.post("discard", {}, cancel=cancel)
        logger.info("Changes discarded", discarded=response.get("number-of-discarded-changes"))

    async def keepalive(self, cancel: asyncio.Event | None = None) -> None:
        """Reset the server's idle timer for this session."""
        await self.post("keepalive", {}, cancel=cancel)

    async def continue_session_in_smartconsole(self) -> None:
        """Hand the session over to SmartConsole; it can no longer be used here."""
        await self.post("continue-session-in-smartconsole", {})
        logger.info("Session handed over to SmartConsole")

    # ------------------------------------------------------------------
    # Plumbing used by objects, the pager and the finder
    # ------------------------------------------------------------------

    async def post(
        self,
        command: str,
        payload: dict[str, Any] | None = None,
        cancel: asyncio.Event | None = None,
    ) -> Any:
        return await self.transport.post(command, payload, cancel=cancel)

    def post_sync(self, command: str, payload: dict[str, Any] | None = None) -> Any:
        return self.transport.post_sync(command, payload)

    def populate(
        self,
        obj: ObjectSummary,
        raw: dict[str, Any],
        detail_level: DetailLevel = DetailLevel.FULL,
    ) -> ObjectSummary:
        """Refill obj from a response in a fresh conversion pass."""
        return self.finder.populate(obj, raw, detail_level)

    async def fetch_by_uid(self, uid: str, detail_level: DetailLevel = DetailLevel.FULL) -> Any:
        """Fetcher injected into GenericReference placeholders."""
        return await self.finder.find_object(uid, detail_level)

    # ------------------------------------------------------------------
    # Generic lookups
    # ------------------------------------------------------------------

    async def find(
        self,
        cls: type[T],
        identifier: str,
        detail_level: DetailLevel = DetailLevel.FULL,
        cancel: asyncio.Event | None = None,
    ) -> T:
        """Find one object of a known type by uid or name ("show-<type>")."""
        return await self.finder.find(
            f"show-{cls.type_name}",
            identifier,
            detail_level=detail_level,
            declared_type=cls,
            cancel=cancel,
        )

    async def find_page(
        self,
        cls: type[T],
        limit: int = DEFAULT_PAGE_LIMIT,
        offset: int = 0,
        detail_level: DetailLevel = DetailLevel.STANDARD,
        order: dict[str, str] | None = None,
        filter: str | None = None,
        cancel: asyncio.Event | None = None,
    ) -> PagingResult[T]:
        """Fetch one page of the list command of cls (e.g. "show-hosts")."""
        return await self.pager.fetch_page(
            self._list_command(cls),
            offset=offset,
            limit=limit,
            params=self._filter(filter),
            detail_level=detail_level,
            order=order,
            declared_type=cls,
            items_field="objects",
            cancel=cancel,
        )

    async def find_all(
        self,
        cls: type[T],
        limit: int = DEFAULT_PAGE_LIMIT,
        detail_level: DetailLevel = DetailLevel.STANDARD,
        order: dict[str, str] | None = None,
        filter: str | None = None,
        cancel: asyncio.Event | None = None,
    ) -> list[T]:
        """Fetch every object of the list command of cls."""
        return await self.pager.fetch_all(
            self._list_command(cls),
            limit=limit,
            params=self._filter(filter),
            detail_level=detail_level,
            order=order,
            declared_type=cls,
            items_field="objects",
            cancel=cancel,
        )

    async def delete(
        self,
        cls: type[ObjectSummary],
        identifier: str,
        ignore: Ignore = Ignore.NO,
        cancel: asyncio.Event | None = None,
    ) -> None:
        """Delete an object of a known type by uid or name."""
        await self.finder.delete(f"delete-{cls.type_name}", identifier, ignore, cancel=cancel)

    async def save(self, obj: ObjectSummary, ignore: Ignore = Ignore.NO) -> ObjectSummary:
        """Create or update obj (see ObjectSummary.save)."""
        if obj.session is None:
            obj.session = self
        return await obj.save(ignore)

    @staticmethod
    def _list_command(cls: type[ObjectSummary]) -> str:
        if not cls.list_command:
            raise ValueError(f"{cls.__name__} has no list command")
        return cls.list_command

    @staticmethod
    def _filter(filter: str | None) -> dict[str, Any] | None:
        return {"filter": filter} if filter else None

    # ------------------------------------------------------------------
    # Typed helpers
    # ------------------------------------------------------------------

    async def find_host(
        self, identifier: str, detail_level: DetailLevel = DetailLevel.FULL
    ) -> Host:
        return await self.find(Host, identifier, detail_level)

    async def find_hosts(self, **kwargs: Any) -> PagingResult[Host]:
        return await self.find_page(Host, **kwargs)

    async def find_all_hosts(self, **kwargs: Any) -> list[Host]:
        return await self.find_all(Host, **kwargs)

    async def delete_host(self, identifier: str, ignore: Ignore = Ignore.NO) -> None:
        await self.delete(Host, identifier, ignore)

    async def find_network(
        self, identifier: str, detail_level: DetailLevel = DetailLevel.FULL
    ) -> Network:
        return await self.find(Network, identifier, detail_level)

    async def find_networks(self, **kwargs: Any) -> PagingResult[Network]:
        return await self.find_page(Network, **kwargs)

    async def find_all_networks(self, **kwargs: Any) -> list[Network]:
        return await self.find_all(Network, **kwargs)

    async def delete_network(self, identifier: str, ignore: Ignore = Ignore.NO) -> None:
        await self.delete(Network, identifier, ignore)

    async def find_group(
        self, identifier: str, detail_level: DetailLevel = DetailLevel.FULL
    ) -> Group:
        return await self.find(Group, identifier, detail_level)

    async def find_groups(self, **kwargs: Any) -> PagingResult[Group]:
        return await self.find_page(Group, **kwargs)

    async def find_all_groups(self, **kwargs: Any) -> list[Group]:
        return await self.find_all(Group, **kwargs)

    async def delete_group(self, identifier: str, ignore: Ignore = Ignore.NO) -> None:
        await self.delete(Group, identifier, ignore)

    # ------------------------------------------------------------------
    # Objects of any type
    # ------------------------------------------------------------------

    async def find_object(
        self,
        uid: str,
        detail_level: DetailLevel = DetailLevel.FULL,
        cancel: asyncio.Event | None = None,
    ) -> Any:
        """Find an object of any type by uid ("show-object")."""
        return await self.finder.find_object(uid, detail_level, cancel=cancel)

    @staticmethod
    def _objects_params(
        filter: str | None, type: str | None, ip_only: bool
    ) -> dict[str, Any] | None:
        params: dict[str, Any] = {}
        if filter:
            params["filter"] = filter
        if type:
            params["type"] = type
        if ip_only:
            params["ip-only"] = True
        return params or None

    async def find_objects(
        self,
        filter: str | None = None,
        type: str | None = None,
        ip_only: bool = False,
        limit: int = DEFAULT_PAGE_LIMIT,
        offset: int = 0,
        detail_level: DetailLevel = DetailLevel.STANDARD,
        order: dict[str, str] | None = None,
        cancel: asyncio.Event | None = None,
    ) -> PagingResult[Any]:
        """
        Search objects of every type ("show-objects").

        Args:
            filter: Free-text search (names, addresses, comments).
            type: Restrict to one type discriminator (e.g. "host").
            ip_only: Match the filter against IP addresses only.
        """
        return await self.pager.fetch_page(
            "show-objects",
            offset=offset,
            limit=limit,
            params=self._objects_params(filter, type, ip_only),
            detail_level=detail_level,
            order=order,
            items_field="objects",
            cancel=cancel,
        )

    async def find_all_objects(
        self,
        filter: str | None = None,
        type: str | None = None,
        ip_only: bool = False,
        limit: int = DEFAULT_PAGE_LIMIT,
        detail_level: DetailLevel = DetailLevel.STANDARD,
        order: dict[str, str] | None = None,
        cancel: asyncio.Event | None = None,
    ) -> list[Any]:
        return await self.pager.fetch_all(
            "show-objects",
            limit=limit,
            params=self._objects_params(filter, type, ip_only),
            detail_level=detail_level,
            order=order,
            items_field="objects",
            cancel=cancel,
        )

    async def find_unused_objects(
        self,
        limit: int = DEFAULT_PAGE_LIMIT,
        offset: int = 0,
        detail_level: DetailLevel = DetailLevel.STANDARD,
        order: dict[str, str] | None = None,
        cancel: asyncio.Event | None = None,
    ) -> PagingResult[Any]:
        """Objects not referenced anywhere ("show-unused-objects")."""
        return await self.pager.fetch_page(
            "show-unused-objects",
            offset=offset,
            limit=limit,
            detail_level=detail_level,
            order=order,
            items_field="objects",
            cancel=cancel,
        )

    async def find_all_unused_objects(
        self,
        limit: int = DEFAULT_PAGE_LIMIT,
        detail_level: DetailLevel = DetailLevel.STANDARD,
        order: dict[str, str] | None = None,
        cancel: asyncio.Event | None = None,
    ) -> list[Any]:
        return await self.pager.fetch_all(
            "show-unused-objects",
            limit=limit,
            detail_level=detail_level,
            order=order,
            items_field="objects",
            cancel=cancel,
        )

    # ------------------------------------------------------------------
    # Access rulebase
    # ------------------------------------------------------------------

    @staticmethod
    def _rulebase_params(layer: str, filter: str | None) -> dict[str, Any]:
        params: dict[str, Any] = {**lookup_field(layer), "use-object-dictionary": True}
        if filter:
            params["filter"] = filter
        return params

    async def find_access_rulebase(
        self,
        layer: str,
        filter: str | None = None,
        limit: int = DEFAULT_PAGE_LIMIT,
        offset: int = 0,
        detail_level: DetailLevel = DetailLevel.STANDARD,
        order: dict[str, str] | None = None,
        cancel: asyncio.Event | None = None,
    ) -> PagingResult[Any]:
        """
        Fetch one page of an access layer's rulebase.

        Items are AccessRule and AccessSection objects. Objects the rules
        reference come from the response's "objects-dictionary" and are
        shared with the rule cells that name them.

        Args:
            layer: Layer uid or name.
            filter: Rule search expression.
        """
        return await self.pager.fetch_page(
            "show-access-rulebase",
            offset=offset,
            limit=limit,
            params=self._rulebase_params(layer, filter),
            detail_level=detail_level,
            order=order,
            declared_type=AccessRule,
            items_field="rulebase",
            dictionary_field="objects-dictionary",
            cancel=cancel,
        )

    async def find_all_access_rulebase(
        self,
        layer: str,
        filter: str | None = None,
        limit: int = DEFAULT_PAGE_LIMIT,
        detail_level: DetailLevel = DetailLevel.STANDARD,
        order: dict[str, str] | None = None,
        cancel: asyncio.Event | None = None,
    ) -> list[Any]:
        return await self.pager.fetch_all(
            "show-access-rulebase",
            limit=limit,
            params=self._rulebase_params(layer, filter),
            detail_level=detail_level,
            order=order,
            declared_type=AccessRule,
            items_field="rulebase",
            dictionary_field="objects-dictionary",
            cancel=cancel,
        )
