"""Versioned external binary: staleness check and checksum-verified download.

The binary is replaced atomically (``os.replace`` from a staging directory
next to the target), so a scan never observes a half-written file.
"""

from __future__ import annotations

import asyncio
import hashlib
import logging
import os
import platform
import shutil
import stat
import sys
import time
from contextlib import asynccontextmanager
from pathlib import Path

import httpx

from scanbridge import defaults
from scanbridge.config import Settings
from scanbridge.errors import ResourceUpdateError
from scanbridge.ports import ConnectionDetails
from scanbridge.resilience import retry

log = logging.getLogger("scanbridge.resource")

_CHUNK_SIZE = 1024 * 1024

_ARCHITECTURES = {
    ("linux", "x86_64"): "linux-amd64",
    ("linux", "amd64"): "linux-amd64",
    ("linux", "aarch64"): "linux-arm64",
    ("linux", "arm64"): "linux-arm64",
    ("linux", "i386"): "linux-386",
    ("linux", "i686"): "linux-386",
    ("linux", "s390x"): "linux-s390x",
    ("linux", "ppc64le"): "linux-ppc64le",
    ("darwin", "x86_64"): "mac-amd64",
    ("darwin", "arm64"): "mac-arm64",
    ("windows", "amd64"): "windows-amd64",
    ("windows", "x86_64"): "windows-amd64",
}


def get_architecture(system: str | None = None, machine: str | None = None) -> str:
    """Return the download architecture segment for this host."""
    system = (system or platform.system()).lower()
    machine = (machine or platform.machine()).lower()
    try:
        return _ARCHITECTURES[(system, machine)]
    except KeyError:
        raise ResourceUpdateError(f"Unsupported platform {system}/{machine}") from None


def binary_file_name(name: str = defaults.ANALYZER_BINARY_NAME) -> str:
    return name + ".exe" if sys.platform == "win32" else name


def sha256_file(path: Path) -> str:
    digest = hashlib.sha256()
    with open(path, "rb") as f:
        for chunk in iter(lambda: f.read(_CHUNK_SIZE), b""):
            digest.update(chunk)
    return digest.hexdigest()


def releases_base_url(settings: Settings, connection: ConnectionDetails | None) -> str:
    """Resolve the download base, routing through the platform when air-gapped."""
    if not settings.releases_repo:
        return settings.releases_url
    if connection is None or not connection.has_credentials:
        raise ResourceUpdateError(
            f"Cannot use releases repository '{settings.releases_repo}': "
            "no platform URL and credentials are configured"
        )
    log.info("Air-gapped mode: downloading the analyzer through repository '%s'", settings.releases_repo)
    return f"{connection.url}/artifactory/api/remote/{settings.releases_repo}/artifactory"


class Resource:
    """An external binary with a remote source and a local path.

    Parameters
    ----------
    remote_url:
        Absolute URL of the versioned artifact.
    local_path:
        Where the binary lives on disk.
    executable:
        Grant execute permission after download.
    auth:
        Optional ``httpx`` auth used for every request.
    client:
        Optional shared ``httpx.AsyncClient``; a temporary one is created
        per call otherwise.
    """

    def __init__(
        self,
        remote_url: str,
        local_path: Path,
        *,
        executable: bool = True,
        auth: httpx.Auth | tuple[str, str] | None = None,
        headers: dict[str, str] | None = None,
        client: httpx.AsyncClient | None = None,
        guard_seconds: float = defaults.DOWNLOAD_GUARD_SECONDS,
    ) -> None:
        self.remote_url = remote_url
        self.local_path = Path(local_path)
        self.executable = executable
        self._auth = auth
        self._headers = headers or {}
        self._client = client
        self._guard_seconds = guard_seconds

    @property
    def name(self) -> str:
        return self.local_path.name

    @property
    def home_directory(self) -> Path:
        return self.local_path.parent

    @property
    def staging_directory(self) -> Path:
        return self.home_directory / defaults.STAGING_DIR_NAME

    def exists(self) -> bool:
        return self.local_path.is_file()

    @asynccontextmanager
    async def _ensure_client(self):
        """Yield the shared client, or a temporary ``AsyncClient``."""
        if self._client is not None:
            yield self._client
        else:
            async with httpx.AsyncClient(
                auth=self._auth,
                headers=self._headers,
                timeout=defaults.DOWNLOAD_TIMEOUT_SECONDS,
                follow_redirects=True,
            ) as c:
                yield c

    # -- staleness --------------------------------------------------------

    async def is_update_available(self) -> bool:
        """True when the local binary is absent or differs from the remote checksum."""
        if not self.exists():
            return True
        try:
            remote = await self.remote_checksum()
        except httpx.HTTPError as exc:
            log.warning("Could not fetch checksum for %s: %s", self.name, exc)
            return False
        if not remote:
            log.warning("No checksum published for %s", self.remote_url)
            return False
        try:
            local = sha256_file(self.local_path)
        except OSError as exc:
            raise ResourceUpdateError(f"Cannot read {self.local_path}: {exc}") from exc
        return remote.lower() != local

    @retry(max_attempts=3, base_delay=0.5, exceptions=(httpx.TransportError,))
    async def remote_checksum(self) -> str:
        """Fetch the SHA-256 published for the remote artifact."""
        async with self._ensure_client() as client:
            resp = await client.head(self.remote_url)
            resp.raise_for_status()
            checksum = resp.headers.get(defaults.CHECKSUM_HEADER, "")
            if checksum:
                return checksum.strip()
            resp = await client.get(self.remote_url + ".sha256")
            if resp.status_code == httpx.codes.NOT_FOUND:
                return ""
            resp.raise_for_status()
            return resp.text.split()[0] if resp.text.strip() else ""

    # -- download ---------------------------------------------------------

    async def update(self) -> bool:
        """Download the remote artifact and atomically replace the local binary.

        Returns False when another process is already downloading (a staging
        directory younger than the guard window exists).
        """
        staging = self.staging_directory
        try:
            if staging.exists():
                age = time.time() - staging.stat().st_mtime
                if age <= self._guard_seconds:
                    log.info("Download of %s already in progress (%.0fs old), skipping", self.name, age)
                    return False
                log.info("Removing stale download directory %s", staging)
                _remove_path(staging)
            staging.mkdir(parents=True, exist_ok=False)
        except FileExistsError:
            log.info("Download of %s was started by another process, skipping", self.name)
            return False
        except OSError as exc:
            raise ResourceUpdateError(f"Cannot prepare download directory {staging}: {exc}") from exc
        try:
            staged = staging / self.name
            await self._download(staged)
            if self.executable:
                mode = staged.stat().st_mode
                staged.chmod(mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
            os.replace(staged, self.local_path)
            log.info("Updated %s from %s", self.local_path, self.remote_url)
            return True
        except (httpx.HTTPError, OSError) as exc:
            raise ResourceUpdateError(f"Failed to update {self.name}: {exc}") from exc
        finally:
            shutil.rmtree(staging, ignore_errors=True)

    async def _download(self, target: Path) -> None:
        async with self._ensure_client() as client:
            async with client.stream("GET", self.remote_url) as resp:
                resp.raise_for_status()
                f = await asyncio.to_thread(open, target, "wb")
                try:
                    async for chunk in resp.aiter_bytes(_CHUNK_SIZE):
                        await asyncio.to_thread(f.write, chunk)
                finally:
                    await asyncio.to_thread(f.close)


def _remove_path(path: Path) -> None:
    if path.is_dir() and not path.is_symlink():
        shutil.rmtree(path, ignore_errors=True)
    else:
        path.unlink(missing_ok=True)


def analyzer_resource(
    settings: Settings,
    connection: ConnectionDetails | None = None,
    *,
    client: httpx.AsyncClient | None = None,
) -> Resource:
    """Build the Resource for the analyzer binary from settings."""
    name = binary_file_name()
    local = settings.issues_dir / defaults.ANALYZER_BINARY_NAME / defaults.ANALYZER_VERSION / name
    auth: tuple[str, str] | None = None
    headers: dict[str, str] = {}
    if settings.releases_repo and connection is not None:
        if connection.access_token:
            headers["Authorization"] = f"Bearer {connection.access_token}"
        elif connection.username:
            auth = (connection.username, connection.password)
    try:
        base = releases_base_url(settings, connection)
        remote = "/".join([
            base, defaults.ANALYZER_DOWNLOAD_PATH, defaults.ANALYZER_VERSION,
            get_architecture(), name,
        ])
    except ResourceUpdateError as exc:
        log.error("Analyzer download is not configured: %s", exc)
        remote = ""
    return Resource(remote, local, auth=auth, headers=headers, client=client)
