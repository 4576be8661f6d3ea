"""On-disk cache of registry responses.

crates.io asks clients to keep request volume low, so the responses that
:class:`~depbound.core.data_store.CratesIoDataStore` fetches are kept on
disk between runs. Each entry is a small JSON document::

    {"fetched_at": 1700000000, "data": ...}

laid out as::

    <root>/dependencies/<crate>/<version>.json
    <root>/versions/<crate>.json

An entry older than the TTL, or one that cannot be read or decoded, is
treated as a miss. Failing to write an entry is logged and otherwise
ignored: the run still succeeds, it just hits the network again next time.
"""

from __future__ import annotations

import json
import time
from pathlib import Path
from typing import Any, Optional, Union

from depbound.constants import DEFAULT_CACHE_TTL
from depbound.exceptions import FileOperationError
from depbound.utils.filesystem import get_data_dir, safe_read_file, safe_write_file
from depbound.utils.logger import get_logger

logger = get_logger("cache")

# Public API
__all__ = ["ResponseCache"]

_RATE_LIMIT_HINT = "repeated requests without caching increase the chance of rate limiting"


class ResponseCache:
    """JSON file cache for registry responses.

    Args:
        root: Cache directory. Defaults to :func:`get_data_dir`.
        ttl: Maximum entry age in seconds. ``0`` makes every entry stale.

    Example::

        >>> cache = ResponseCache()
        >>> cache.put_versions("serde", [{"num": "1.0.0", "yanked": False}])
        >>> cache.get_versions("serde")
        [{'num': '1.0.0', 'yanked': False}]
    """

    def __init__(
        self,
        root: Optional[Union[str, Path]] = None,
        ttl: int = DEFAULT_CACHE_TTL,
    ) -> None:
        self.root = Path(root) if root is not None else get_data_dir()
        self.ttl = ttl

    # ------------------------------------------------------------------
    # Paths
    # ------------------------------------------------------------------

    def dependencies_path(self, name: str, version: str) -> Path:
        return self.root / "dependencies" / name / f"{version}.json"

    def versions_path(self, name: str) -> Path:
        return self.root / "versions" / f"{name}.json"

    # ------------------------------------------------------------------
    # Typed accessors
    # ------------------------------------------------------------------

    def get_dependencies(self, name: str, version: str) -> Optional[Any]:
        return self._read(self.dependencies_path(name, version))

    def put_dependencies(self, name: str, version: str, data: Any) -> None:
        self._write(self.dependencies_path(name, version), data)

    def get_versions(self, name: str) -> Optional[Any]:
        return self._read(self.versions_path(name))

    def put_versions(self, name: str, data: Any) -> None:
        self._write(self.versions_path(name), data)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _read(self, path: Path) -> Optional[Any]:
        if not path.is_file():
            return None

        try:
            entry = json.loads(safe_read_file(path))
        except (FileOperationError, ValueError) as exc:
            logger.debug("Ignoring unreadable cache entry %s: %s", path, exc)
            return None

        if not isinstance(entry, dict) or "data" not in entry:
            logger.debug("Ignoring malformed cache entry %s", path)
            return None

        fetched_at = entry.get("fetched_at")
        if not isinstance(fetched_at, (int, float)) or isinstance(fetched_at, bool):
            logger.debug("Ignoring cache entry without timestamp %s", path)
            return None

        if fetched_at <= time.time() - self.ttl:
            logger.debug("Cache entry %s is stale", path)
            return None

        logger.debug("Cache hit: %s", path)
        return entry["data"]

    def _write(self, path: Path, data: Any) -> None:
        payload = json.dumps({"fetched_at": int(time.time()), "data": data})

        try:
            safe_write_file(path, payload)
        except FileOperationError as exc:
            logger.warning("Could not create cache at %s (%s); %s", path, exc, _RATE_LIMIT_HINT)
            return

        logger.debug("Cache created at %s", path)
