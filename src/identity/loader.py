# src/identity/loader.py — v1
"""Identity fetching: locate the directory, parse and validate the manifest,
collect workspace files.
"""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import Sequence
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from clawup.config.constants import IDENTITY_MANIFEST_FILES
from clawup.core.errors import (
    FieldIssue,
    IdentityNotFound,
    ManifestParseError,
    ManifestValidationError,
)
from clawup.core.models import IdentityManifest, IdentityResult
from clawup.identity.git_cache import GitIdentityCache
from clawup.identity.source import LocalSource, parse_source

logger = logging.getLogger(__name__)


def _issues_from_validation_error(exc: ValidationError) -> list[FieldIssue]:
    issues: list[FieldIssue] = []
    seen: set[str] = set()
    for error in exc.errors():
        loc = ".".join(str(part) for part in error["loc"]) or "<root>"
        if loc in seen:
            continue
        seen.add(loc)
        problem = "missing" if error["type"] == "missing" else error["msg"]
        issues.append(FieldIssue(field=loc, problem=problem))
    return issues


def parse_manifest(text: str, path: str, fmt: str = "yaml") -> IdentityManifest:
    """Parse and validate identity manifest text.

    Raises:
        ManifestParseError: Not well-formed YAML/JSON.
        ManifestValidationError: Missing or mistyped fields, all listed.
    """
    try:
        data: Any = json.loads(text) if fmt == "json" else yaml.safe_load(text)
    except (json.JSONDecodeError, yaml.YAMLError) as e:
        raise ManifestParseError(path, str(e)) from e

    if not isinstance(data, dict):
        raise ManifestValidationError(
            path, [FieldIssue(field="<root>", problem="expected a mapping")]
        )

    try:
        return IdentityManifest.model_validate(data)
    except ValidationError as e:
        raise ManifestValidationError(path, _issues_from_validation_error(e)) from e


def serialize_manifest(manifest: IdentityManifest) -> str:
    """YAML text using camelCase field names; parse_manifest reads it back unchanged."""
    data = manifest.model_dump(by_alias=True, exclude_none=True)
    return yaml.safe_dump(data, sort_keys=False, allow_unicode=True)


def find_manifest(directory: Path) -> Path | None:
    for name in IDENTITY_MANIFEST_FILES:
        candidate = directory / name
        if candidate.is_file():
            return candidate
    return None


def load_manifest(directory: Path) -> tuple[Path, IdentityManifest]:
    """Locate identity.yaml (or identity.json) in directory and parse it."""
    manifest_path = find_manifest(directory)
    if manifest_path is None:
        raise IdentityNotFound(
            str(directory), f"no {' or '.join(IDENTITY_MANIFEST_FILES)} found"
        )
    try:
        text = manifest_path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise ManifestParseError(str(manifest_path), str(e)) from e
    fmt = "json" if manifest_path.suffix == ".json" else "yaml"
    return manifest_path, parse_manifest(text, str(manifest_path), fmt)


def read_workspace_files(directory: Path, exclude: Path | None = None) -> dict[str, str]:
    """Every non-hidden text file below directory, keyed by POSIX relative path.

    Hidden files and directories are skipped; so are files that cannot be
    read or decoded as UTF-8.
    """
    files: dict[str, str] = {}
    for path in sorted(directory.rglob("*")):
        rel = path.relative_to(directory)
        if any(part.startswith(".") for part in rel.parts):
            continue
        if exclude is not None and path == exclude:
            continue
        if not path.is_file():
            continue
        try:
            files[rel.as_posix()] = path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError):
            logger.debug("Skipping unreadable identity file %s", rel)
    return files


def load_identity_dir(directory: Path, source: str) -> IdentityResult:
    if not directory.is_dir():
        raise IdentityNotFound(str(directory), "not a directory")
    manifest_path, manifest = load_manifest(directory)
    files = read_workspace_files(directory, exclude=manifest_path)
    logger.info(
        "Loaded identity %s (%s) with %d files", manifest.name, source, len(files)
    )
    return IdentityResult(
        source=source,
        directory=str(directory),
        manifest=manifest,
        files=files,
    )


async def fetch_identity(
    source: str,
    cache: GitIdentityCache,
    revision: str | None = None,
    base_dir: str | Path | None = None,
) -> IdentityResult:
    """Fetch one identity from a local path or a git URL.

    Raises:
        IdentityNotFound: Directory or manifest absent.
        ManifestParseError: Manifest is not well-formed.
        ManifestValidationError: Manifest fields missing or mistyped.
        FetchError: Git source could not be updated nor cloned.
    """
    parsed = parse_source(source, base_dir=base_dir)
    if isinstance(parsed, LocalSource):
        if revision:
            logger.warning("Ignoring identityVersion %s for local source %s", revision, source)
        return load_identity_dir(parsed.path, source)

    repo_dir = await cache.ensure_repo(parsed.url, revision)
    if not parsed.subpath:
        return load_identity_dir(repo_dir, source)

    directory = (repo_dir / parsed.subpath).resolve()
    if not directory.is_relative_to(repo_dir.resolve()):
        raise IdentityNotFound(source, f"subpath {parsed.subpath!r} is outside the repository")
    return load_identity_dir(directory, source)


async def fetch_identities(
    sources: Sequence[tuple[str, str | None]],
    cache: GitIdentityCache,
    base_dir: str | Path | None = None,
) -> list[IdentityResult]:
    """Fetch several (source, revision) pairs concurrently, preserving order.

    The first failure propagates; repositories shared by several sources
    are cloned once thanks to the cache's per-key lock.
    """
    return list(
        await asyncio.gather(
            *(
                fetch_identity(source, cache, revision=revision, base_dir=base_dir)
                for source, revision in sources
            )
        )
    )
