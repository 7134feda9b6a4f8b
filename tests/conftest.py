import time
import zipfile
from pathlib import Path

import platformdirs
import pytest
import requests

_NETWORK_BLOCK_MSG = (
    "Network access is blocked during tests. Mock requests.* or Session.request."
)


def _block_network(*_args, **_kwargs):
    """
    Prevent network calls in tests by raising a RuntimeError.

    Raises:
        RuntimeError: with `_NETWORK_BLOCK_MSG` indicating that network access is blocked during tests.
    """
    raise RuntimeError(_NETWORK_BLOCK_MSG)


@pytest.fixture(autouse=True)
def _isolate_test_environment(tmp_path_factory, monkeypatch):
    """
    Create an isolated temporary XDG and application directory layout and patch environment and configuration to use it for tests.

    This fixture creates temp directories for cache, state, config, data, downloads, and logs, sets XDG_* environment variables, clears the refpack environment switches, patches platformdirs user_* functions to return the temp paths, and points refpack.setup_config CONFIG_DIR/CONFIG_FILE into the isolated structure.
    """
    base = tmp_path_factory.mktemp("refpack")
    cache_dir = base / "cache"
    state_dir = base / "state"
    config_dir = base / "config"
    data_dir = base / "data"
    downloads_dir = base / "downloads"
    log_dir = state_dir / "log"

    for path in (cache_dir, state_dir, config_dir, data_dir, downloads_dir, log_dir):
        path.mkdir(parents=True, exist_ok=True)

    monkeypatch.setenv("XDG_CACHE_HOME", str(cache_dir))
    monkeypatch.setenv("XDG_STATE_HOME", str(state_dir))
    monkeypatch.setenv("XDG_CONFIG_HOME", str(config_dir))
    monkeypatch.setenv("XDG_DATA_HOME", str(data_dir))
    for name in ("MAX_LIST", "DEV_PREFIX", "SKIP_DOWNLOAD", "SILENT", "GITHUB_TOKEN"):
        monkeypatch.delenv(name, raising=False)

    monkeypatch.setattr(
        platformdirs, "user_cache_dir", lambda *_args, **_kwargs: str(cache_dir)
    )
    monkeypatch.setattr(
        platformdirs, "user_state_dir", lambda *_args, **_kwargs: str(state_dir)
    )
    monkeypatch.setattr(
        platformdirs, "user_config_dir", lambda *_args, **_kwargs: str(config_dir)
    )
    monkeypatch.setattr(
        platformdirs, "user_data_dir", lambda *_args, **_kwargs: str(data_dir)
    )
    monkeypatch.setattr(
        platformdirs, "user_log_dir", lambda *_args, **_kwargs: str(log_dir)
    )
    monkeypatch.setattr(
        platformdirs, "user_downloads_dir", lambda *_args, **_kwargs: str(downloads_dir)
    )

    import refpack.setup_config as setup_config

    monkeypatch.setattr(setup_config, "CONFIG_DIR", str(config_dir))
    monkeypatch.setattr(
        setup_config,
        "CONFIG_FILE",
        str(Path(config_dir) / setup_config.CONFIG_FILE_NAME),
    )


def pytest_runtest_setup():
    """
    Prevent real network requests during tests by replacing HTTP entry points with blocking callables.
    """
    requests.get = _block_network
    requests.post = _block_network
    requests.put = _block_network
    requests.delete = _block_network
    requests.head = _block_network
    requests.patch = _block_network
    requests.options = _block_network
    requests.Session.request = _block_network


@pytest.fixture(autouse=True)
def _mock_time_sleep(monkeypatch):
    """
    Make time.sleep instant for all tests to prevent delays.

    This fixture is intentionally global because retry/backoff paths use
    time.sleep(). Tests that require real timing behavior should explicitly
    monkeypatch sleep back to the real implementation within the test.
    """
    monkeypatch.setattr(time, "sleep", lambda *_args, **_kwargs: None)


# =============================================================================
# Archive Fixtures
# =============================================================================


@pytest.fixture
def make_zip(tmp_path):
    """
    Provide a factory that writes a zip archive into tmp_path.

    The factory takes a name and a list of (entry_name, data) pairs; a `data`
    of None writes a directory entry. Entries are stored in the given order
    with a fixed 2024-01-03 12:30:00 timestamp.

    Returns:
        factory (callable): `make_zip(name, entries) -> Path`.
    """

    def _make_zip(name, entries):
        path = tmp_path / name
        with zipfile.ZipFile(path, "w", compression=zipfile.ZIP_STORED) as zf:
            for entry_name, data in entries:
                info = zipfile.ZipInfo(entry_name, date_time=(2024, 1, 3, 12, 30, 0))
                if data is None:
                    info.external_attr = (0o40755 << 16) | 0x10
                    zf.writestr(info, b"")
                else:
                    info.external_attr = 0o100644 << 16
                    zf.writestr(info, data)
        return path

    return _make_zip


@pytest.fixture
def sample_release_data():
    """Fixture providing sample GitHub release data for testing."""
    return [
        {
            "tag_name": "nightly-1050-def456abcdef",
            "published_at": "2024-01-03T10:00:00Z",
            "name": "nightly 1050",
        },
        {
            "tag_name": "nightly-1050-abc123abc123",
            "published_at": "2024-01-02T10:00:00Z",
            "name": "nightly 1050 (older)",
        },
        {
            "tag_name": "nightly-1049-aaa111bbb222",
            "published_at": "2024-01-01T10:00:00Z",
            "name": "nightly 1049",
        },
        {
            "tag_name": "v1.0",
            "published_at": "2023-12-01T10:00:00Z",
            "name": "stable",
        },
    ]


@pytest.fixture
def mock_response(mocker):
    """
    Provide a factory for mocked requests.Response objects.

    Returns:
        factory (callable): `mock_response(status_code=200, content=b"", headers=None)`.
    """

    def _create_response(status_code=200, content=b"", headers=None):
        response = mocker.MagicMock(spec=requests.Response)
        response.status_code = status_code
        response.content = content
        response.headers = headers or {}
        return response

    return _create_response
