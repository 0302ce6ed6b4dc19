"""
Release lookup and download for self-update.

The Versioner interface is what the update command depends on; the GitHub
implementation reads the latest release and extracts the binary for the
running platform from the matching archive asset.
"""
import os
import platform
import shutil
import stat
import sys
import tarfile
import tempfile
import zipfile
from abc import ABC, abstractmethod
from typing import Optional, Tuple

import requests
import semver

from ..logging_config import get_logger

logger = get_logger(__name__)

GITHUB_API_BASE = "https://api.github.com"
DOWNLOAD_CHUNK_SIZE = 65536
DOWNLOAD_TIMEOUT = 300


class Versioner(ABC):
    """Resolves and fetches CLI releases."""

    @abstractmethod
    def latest_version(self) -> str:
        """Return the newest released version identifier."""

    @abstractmethod
    def download(self, version: str) -> str:
        """Download `version` and return the path of the staged binary."""


def parse_version(value: str) -> semver.Version:
    """Parse a version string, tolerating a leading 'v'."""
    return semver.Version.parse(value.strip().lstrip("v"))


def is_newer(latest: str, current: str) -> bool:
    """Semantic-version comparison of two release strings."""
    return parse_version(latest) > parse_version(current)


def check(current: str, versioner: Versioner) -> Tuple[str, str, bool]:
    """
    Compare the running version against the latest release.

    Returns:
        (current, latest, should_update)
    """
    latest = versioner.latest_version()
    return current, latest, is_newer(latest, current)


def _platform_tag() -> Tuple[str, str]:
    """Map the running interpreter to the release asset naming scheme."""
    system = sys.platform
    if system.startswith("linux"):
        os_name = "linux"
    elif system == "darwin":
        os_name = "darwin"
    elif system == "win32":
        os_name = "windows"
    else:
        os_name = system

    machine = platform.machine().lower()
    arch = {
        "x86_64": "amd64",
        "amd64": "amd64",
        "aarch64": "arm64",
        "arm64": "arm64",
        "i386": "386",
        "i686": "386",
    }.get(machine, machine)
    return os_name, arch


class GitHubVersioner(Versioner):
    """
    Versioner backed by GitHub Releases.

    Usage:
        versioner = GitHubVersioner("edgecli", "edgecli", "edgecli")
        latest = versioner.latest_version()
        staged = versioner.download(latest)
    """

    def __init__(self, org: str, repo: str, binary: str,
                 session: Optional[requests.Session] = None, token: Optional[str] = None):
        self.org = org
        self.repo = repo
        self.binary = binary
        self.session = session or requests.Session()
        self.token = token or os.environ.get("GITHUB_TOKEN")
        self._release = None

    def _headers(self):
        headers = {"Accept": "application/vnd.github+json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    def _get_release(self, tag: Optional[str] = None) -> dict:
        if tag:
            url = f"{GITHUB_API_BASE}/repos/{self.org}/{self.repo}/releases/tags/{tag}"
        else:
            url = f"{GITHUB_API_BASE}/repos/{self.org}/{self.repo}/releases/latest"
        resp = self.session.get(url, headers=self._headers(), timeout=30)
        resp.raise_for_status()
        return resp.json()

    def latest_version(self) -> str:
        self._release = self._get_release()
        return self._release["tag_name"].lstrip("v")

    def asset_name(self, version: str) -> str:
        os_name, arch = _platform_tag()
        ext = "zip" if os_name == "windows" else "tar.gz"
        return f"{self.binary}_v{version}_{os_name}-{arch}.{ext}"

    def _binary_name(self) -> str:
        return f"{self.binary}.exe" if sys.platform == "win32" else self.binary

    def download(self, version: str) -> str:
        release = self._release
        if release is None or release.get("tag_name", "").lstrip("v") != version:
            release = self._get_release(f"v{version}")

        wanted = self.asset_name(version)
        asset = next((a for a in release.get("assets", []) if a.get("name") == wanted), None)
        if asset is None:
            raise FileNotFoundError(f"no release asset named {wanted} for version {version}")

        workdir = tempfile.mkdtemp(prefix="edgecli-update-")
        try:
            archive_path = os.path.join(workdir, wanted)
            with self.session.get(asset["browser_download_url"], stream=True,
                                  timeout=DOWNLOAD_TIMEOUT) as resp:
                resp.raise_for_status()
                with open(archive_path, "wb") as f:
                    for chunk in resp.iter_content(chunk_size=DOWNLOAD_CHUNK_SIZE):
                        f.write(chunk)

            fd, staged = tempfile.mkstemp(prefix=f"{self.binary}-{version}-")
            try:
                with os.fdopen(fd, "wb") as out:
                    self._extract_binary(archive_path, out)
                mode = os.stat(staged).st_mode
                os.chmod(staged, mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
            except Exception:
                os.remove(staged)
                raise
        finally:
            shutil.rmtree(workdir, ignore_errors=True)

        logger.info(f"Downloaded {wanted}", extra={"version": version})
        return staged

    def _extract_binary(self, archive_path: str, out):
        name = self._binary_name()
        if archive_path.endswith(".zip"):
            with zipfile.ZipFile(archive_path) as zf:
                member = next((m for m in zf.namelist() if os.path.basename(m) == name), None)
                if member is None:
                    raise FileNotFoundError(f"{name} not found in {os.path.basename(archive_path)}")
                with zf.open(member) as src:
                    shutil.copyfileobj(src, out)
            return

        with tarfile.open(archive_path, "r:gz") as tf:
            member = next(
                (m for m in tf.getmembers() if m.isfile() and os.path.basename(m.name) == name),
                None,
            )
            if member is None:
                raise FileNotFoundError(f"{name} not found in {os.path.basename(archive_path)}")
            src = tf.extractfile(member)
            shutil.copyfileobj(src, out)
