# src/identity/source.py — v1
"""Identity source strings: local paths vs git URLs, and cache keys."""

from __future__ import annotations

import hashlib
import re
from dataclasses import dataclass
from pathlib import Path

_SCP_LIKE = re.compile(r"^[\w.-]+@[\w.-]+:")


@dataclass(frozen=True)
class LocalSource:
    """An identity directory on the local filesystem."""

    path: Path

    def __str__(self) -> str:
        return str(self.path)


@dataclass(frozen=True)
class GitSource:
    """A git repository, optionally narrowed to a sub-directory."""

    url: str
    subpath: str | None = None

    def __str__(self) -> str:
        return f"{self.url}#{self.subpath}" if self.subpath else self.url


IdentitySource = LocalSource | GitSource


def is_git_url(source: str) -> bool:
    return source.startswith("git@") or "://" in source or bool(_SCP_LIKE.match(source))


def parse_source(source: str, base_dir: str | Path | None = None) -> IdentitySource:
    """Classify an identity reference.

    `./pm`, `/abs/pm` and `~/pm` are local; `git@host:org/repo`,
    `user@host:repo` and `https://host/repo` are git. A `#sub/dir`
    suffix selects a directory inside the repository. Anything else is
    treated as a local path, resolved against `base_dir` when relative.
    """
    if not source.startswith((".", "/", "~")) and is_git_url(source):
        url, _, subpath = source.partition("#")
        return GitSource(url=url, subpath=subpath.strip("/") or None)

    path = Path(source).expanduser()
    if not path.is_absolute() and base_dir is not None:
        path = Path(base_dir) / path
    return LocalSource(path=path.resolve())


def normalize_url(url: str) -> str:
    url = url.rstrip("/")
    if url.endswith(".git"):
        url = url[: -len(".git")]
    return url


def cache_key(url: str, revision: str | None = None) -> str:
    """Stable 16-hex-char directory name for a repository (and pinned revision)."""
    material = normalize_url(url)
    if revision:
        material = f"{material}@{revision}"
    return hashlib.sha256(material.encode("utf-8")).hexdigest()[:16]
