"""Repository descriptor parsed from an origin URL.

A descriptor is computed from whatever URL form the manifest holds:

    https://github.com/org/name(.git)
    ssh://git@github.com/org/name(.git)
    git@github.com:org/name(.git)

All three yield the same identifier ("org/name"), which is also the
repository's directory relative to the repositories root.
URLs with an explicit port are rejected.
"""

import re
from dataclasses import dataclass, field
from pathlib import Path

from metarepo.errors import MetarepoError

DEFAULT_BRANCH = "master"
BRANCH_SEPARATOR = "#"

_SCHEME_URL = re.compile(
    r"^(?:https?|ssh|git)://(?:[^@/]+@)?(?P<host>[^/:]+)(?::(?P<port>\d+))?/(?P<path>.+)$"
)
_SCP_URL = re.compile(r"^(?:[^@/]+@)?(?P<host>[^:/]+):(?P<path>[^/].*)$")
_SEGMENT = re.compile(r"^[A-Za-z0-9._-]+$")


class UnsupportedUrlError(MetarepoError, ValueError):
    """URL cannot be turned into a repository identifier."""
    pass


def _split_url(url: str) -> tuple:
    """Return (host, identifier) for an https/ssh/scp-style URL."""
    match = _SCHEME_URL.match(url) or _SCP_URL.match(url)
    if not match:
        raise UnsupportedUrlError(f"Unsupported repository URL: {url!r}")
    if match.groupdict().get("port"):
        raise UnsupportedUrlError(f"Explicit ports are not supported: {url!r}")

    path = match.group("path").strip("/")
    if path.endswith(".git"):
        path = path[:-len(".git")]

    segments = path.split("/")
    if len(segments) < 2:
        raise UnsupportedUrlError(f"URL has no owner/name path: {url!r}")
    for segment in segments:
        if segment in (".", "..") or not _SEGMENT.match(segment):
            raise UnsupportedUrlError(f"Unsafe path segment {segment!r} in {url!r}")

    return match.group("host").lower(), "/".join(segments)


@dataclass(frozen=True)
class Repository:
    """A repository listed in the manifest."""
    host: str
    identifier: str
    branch: str = DEFAULT_BRANCH
    raw_url: str = field(default="", compare=False)

    @classmethod
    def from_url(cls, url: str, branch: str = DEFAULT_BRANCH) -> "Repository":
        """Parse a descriptor from any supported URL form."""
        url = url.strip()
        host, identifier = _split_url(url)
        return cls(host=host, identifier=identifier, branch=branch or DEFAULT_BRANCH, raw_url=url)

    @classmethod
    def from_entry(cls, entry: str) -> "Repository":
        """Parse a manifest entry of the form ``url[#branch]``."""
        url, sep, branch = entry.strip().partition(BRANCH_SEPARATOR)
        if sep and not branch.strip():
            raise UnsupportedUrlError(f"Empty branch in entry: {entry!r}")
        return cls.from_url(url, branch.strip() or DEFAULT_BRANCH)

    @property
    def https_url(self) -> str:
        return f"https://{self.host}/{self.identifier}"

    @property
    def ssh_url(self) -> str:
        return f"git@{self.host}:{self.identifier}.git"

    def origin_url(self, use_https: bool) -> str:
        """URL used for the local `origin` remote."""
        return self.https_url if use_https else self.ssh_url

    def to_entry(self) -> str:
        """Serialize as the manifest stores it (HTTPS form, explicit branch)."""
        return f"{self.https_url}{BRANCH_SEPARATOR}{self.branch}"

    def local_path(self, repositories_dir: Path) -> Path:
        return Path(repositories_dir).joinpath(*self.identifier.split("/"))
