"""Centralized crates.io data store for depbound.

Provides an async-safe cache of crates.io metadata so that every lookup of
the same crate (or of the same crate version's dependencies) costs at most
one HTTP request per run, and, with a :class:`ResponseCache` attached, at
most one per cache TTL across runs.

Typical usage::

    from depbound.utils.http import HTTPClient
    from depbound.core.data_store import CratesIoDataStore

    async with HTTPClient() as client:
        store = CratesIoDataStore(client)
        versions = await store.get_versions("serde")
        deps = await store.get_dependencies("serde_json", "1.0.108")
"""

from __future__ import annotations

import asyncio
from typing import Any, Dict, List, Optional, Tuple

from semantic_version import Version

from depbound.constants import CRATES_IO_CRATE_API, CRATES_IO_DEPENDENCIES_API
from depbound.core.cache import ResponseCache
from depbound.exceptions import NetworkError, ProviderError
from depbound.models.dependent import DeclaredDependency, PublishedVersion
from depbound.utils.http import HTTPClient
from depbound.utils.logger import get_logger

logger = get_logger("data_store")

# Public API
__all__ = ["CratesIoDataStore"]


class CratesIoDataStore:
    """Async-safe, per-process cache for crates.io metadata.

    Each unique crate (and each unique crate version, for dependency
    lookups) triggers **at most one** HTTP request. A
    :class:`asyncio.Semaphore` limits concurrent outbound fetches, and a
    second cache check inside the semaphore prevents duplicate requests
    when several coroutines ask for the same crate simultaneously.

    Args:
        http_client: A pre-configured :class:`HTTPClient` instance.
        cache: Optional on-disk cache consulted before the network.
        concurrent_limit: Maximum number of in-flight fetches.
    """

    def __init__(
        self,
        http_client: HTTPClient,
        cache: Optional[ResponseCache] = None,
        concurrent_limit: int = 10,
    ) -> None:
        self.http_client = http_client
        self.cache = cache
        self._semaphore = asyncio.Semaphore(concurrent_limit)

        self._versions: Dict[str, List[PublishedVersion]] = {}
        self._dependencies: Dict[Tuple[str, str], List[DeclaredDependency]] = {}

    # ------------------------------------------------------------------
    # Provider interface
    # ------------------------------------------------------------------

    async def get_dependencies(self, name: str, version: str) -> List[DeclaredDependency]:
        """Return the normal and build dependencies declared by one release.

        Dev-dependencies never constrain a dependent's consumers and are
        dropped.

        Raises:
            ProviderError: The lookup failed for any reason.
        """
        key = (name, version)

        if key in self._dependencies:
            return self._dependencies[key]

        async with self._semaphore:
            if key in self._dependencies:
                return self._dependencies[key]

            raw = self.cache.get_dependencies(name, version) if self.cache else None
            if raw is None:
                raw = await self._fetch_dependencies(name, version)
                if self.cache:
                    self.cache.put_dependencies(name, version, raw)

            dependencies = _parse_dependencies(raw, name, version)
            self._dependencies[key] = dependencies
            return dependencies

    async def get_versions(self, name: str) -> List[PublishedVersion]:
        """Return every published release of *name*, in registry order.

        Raises:
            ProviderError: The lookup failed for any reason.
        """
        if name in self._versions:
            return self._versions[name]

        async with self._semaphore:
            if name in self._versions:
                return self._versions[name]

            raw = self.cache.get_versions(name) if self.cache else None
            if raw is None:
                raw = await self._fetch_versions(name)
                if self.cache:
                    self.cache.put_versions(name, raw)

            versions = _parse_versions(raw, name)
            self._versions[name] = versions
            return versions

    # ------------------------------------------------------------------
    # Network helpers (private)
    # ------------------------------------------------------------------

    async def _fetch_dependencies(self, name: str, version: str) -> List[Dict[str, Any]]:
        url = CRATES_IO_DEPENDENCIES_API.format(crate=name, version=version)
        logger.debug("Fetching dependencies of %s %s", name, version)

        try:
            body = await self.http_client.get_json(url)
        except NetworkError as exc:
            raise ProviderError(
                f"Could not fetch the dependencies of {name} {version}: {exc.message}",
                package_name=name,
                package_version=version,
                original_error=exc,
            ) from exc

        entries = body.get("dependencies")
        if not isinstance(entries, list):
            raise ProviderError(
                f"Unexpected dependencies response for {name} {version}",
                package_name=name,
                package_version=version,
            )

        return [
            {
                "crate_id": entry.get("crate_id"),
                "req": entry.get("req"),
                "kind": entry.get("kind", "normal"),
                "optional": bool(entry.get("optional", False)),
            }
            for entry in entries
            if isinstance(entry, dict)
        ]

    async def _fetch_versions(self, name: str) -> List[Dict[str, Any]]:
        url = CRATES_IO_CRATE_API.format(crate=name)
        logger.debug("Fetching versions of %s", name)

        try:
            body = await self.http_client.get_json(url)
        except NetworkError as exc:
            raise ProviderError(
                f"Could not fetch the versions of {name}: {exc.message}",
                package_name=name,
                original_error=exc,
            ) from exc

        entries = body.get("versions")
        if not isinstance(entries, list):
            raise ProviderError(
                f"Unexpected crate response for {name}",
                package_name=name,
            )

        return [
            {
                "num": entry.get("num"),
                "yanked": bool(entry.get("yanked", False)),
                "rust_version": entry.get("rust_version"),
            }
            for entry in entries
            if isinstance(entry, dict)
        ]


# ---------------------------------------------------------------------------
# Parsing helpers
# ---------------------------------------------------------------------------


def _parse_dependencies(
    raw: List[Dict[str, Any]],
    name: str,
    version: str,
) -> List[DeclaredDependency]:
    result: List[DeclaredDependency] = []

    for entry in raw:
        crate_id, req = entry.get("crate_id"), entry.get("req")
        if not isinstance(crate_id, str) or not isinstance(req, str):
            raise ProviderError(
                f"Malformed dependency entry for {name} {version}: {entry!r}",
                package_name=name,
                package_version=version,
            )

        kind = entry.get("kind") or "normal"
        if kind == "dev":
            continue

        result.append(
            DeclaredDependency(
                crate_id=crate_id,
                req=req,
                kind=kind,
                optional=bool(entry.get("optional", False)),
            )
        )

    return result


def _parse_versions(raw: List[Dict[str, Any]], name: str) -> List[PublishedVersion]:
    result: List[PublishedVersion] = []

    for entry in raw:
        number = entry.get("num")
        try:
            parsed = Version(number)
        except (TypeError, ValueError):
            logger.debug("Skipping unparseable version %r of %s", number, name)
            continue

        rust_version = entry.get("rust_version")
        result.append(
            PublishedVersion(
                number=parsed,
                yanked=bool(entry.get("yanked", False)),
                rust_version=rust_version if isinstance(rust_version, str) else None,
            )
        )

    return result
