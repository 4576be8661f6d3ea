from __future__ import annotations

import json
import time
from pathlib import Path
from unittest.mock import patch

import pytest

from depbound.core.cache import ResponseCache
from depbound.exceptions import FileOperationError


@pytest.fixture
def cache(tmp_path: Path) -> ResponseCache:
    return ResponseCache(root=tmp_path, ttl=3600)


@pytest.mark.unit
class TestResponseCacheLayout:
    """Tests for where entries are stored."""

    def test_default_root(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path))

        root = ResponseCache().root

        assert root.parent == tmp_path
        assert root.name.startswith("depbound-")

    def test_paths(self, cache: ResponseCache, tmp_path: Path) -> None:
        assert cache.dependencies_path("serde", "1.0.0") == (
            tmp_path / "dependencies" / "serde" / "1.0.0.json"
        )
        assert cache.versions_path("serde") == tmp_path / "versions" / "serde.json"

    def test_entry_format(self, cache: ResponseCache) -> None:
        cache.put_versions("serde", [{"num": "1.0.0"}])

        entry = json.loads(cache.versions_path("serde").read_text(encoding="utf-8"))

        assert entry["data"] == [{"num": "1.0.0"}]
        assert isinstance(entry["fetched_at"], int)


@pytest.mark.unit
class TestResponseCacheRoundTrip:
    """Tests for reading back fresh and stale entries."""

    def test_dependencies(self, cache: ResponseCache) -> None:
        data = [{"crate_id": "serde", "req": "^1", "kind": "normal", "optional": False}]
        cache.put_dependencies("toml", "0.8.8", data)

        assert cache.get_dependencies("toml", "0.8.8") == data

    def test_versions(self, cache: ResponseCache) -> None:
        cache.put_versions("serde", [{"num": "1.0.0", "yanked": False}])

        assert cache.get_versions("serde") == [{"num": "1.0.0", "yanked": False}]

    def test_miss(self, cache: ResponseCache) -> None:
        assert cache.get_versions("unknown") is None
        assert cache.get_dependencies("unknown", "1.0.0") is None

    def test_stale_entry_is_a_miss(self, cache: ResponseCache) -> None:
        path = cache.versions_path("serde")
        path.parent.mkdir(parents=True)
        path.write_text(
            json.dumps({"fetched_at": int(time.time()) - 7200, "data": []}),
            encoding="utf-8",
        )

        assert cache.get_versions("serde") is None

    def test_zero_ttl_disables_reads(self, tmp_path: Path) -> None:
        cache = ResponseCache(root=tmp_path, ttl=0)
        cache.put_versions("serde", [])

        assert cache.get_versions("serde") is None

    @pytest.mark.parametrize(
        "content",
        [
            "not json",
            json.dumps([1, 2, 3]),
            json.dumps({"data": []}),
            json.dumps({"fetched_at": "yesterday", "data": []}),
        ],
        ids=["garbage", "not-an-object", "no-timestamp", "bad-timestamp"],
    )
    def test_unreadable_entry_is_a_miss(self, cache: ResponseCache, content: str) -> None:
        path = cache.versions_path("serde")
        path.parent.mkdir(parents=True)
        path.write_text(content, encoding="utf-8")

        assert cache.get_versions("serde") is None


@pytest.mark.unit
class TestResponseCacheWriteFailure:
    def test_write_failure_is_logged_not_raised(self, cache: ResponseCache) -> None:
        """Test a failed write warns about rate limiting and carries on."""
        error = FileOperationError("disk full", operation="write")

        with patch("depbound.core.cache.safe_write_file", side_effect=error), patch(
            "depbound.core.cache.logger"
        ) as mock_logger:
            cache.put_versions("serde", [])

        mock_logger.warning.assert_called_once()
        message = mock_logger.warning.call_args[0][0] % mock_logger.warning.call_args[0][1:]
        assert "rate limiting" in message
