"""
Package files being pushed to (or removed from) a feed.

A PackageInput is loaded once, before the feed lock is taken, and then
decorated by the services as they run (nupkg uri, catalog details,
registration uri).
"""
from __future__ import annotations

import asyncio
import base64
import hashlib
import logging
import os
import zipfile
from datetime import datetime, timezone
from functools import total_ordering
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

from sleet.core.errors import DataIntegrityError
from sleet.domain.nuspec import NuspecMetadata, parse_nuspec
from sleet.domain.versioning import PackageIdentity

logger = logging.getLogger(__name__)

SYMBOLS_EXTENSION = ".symbols.nupkg"
NUPKG_EXTENSION = ".nupkg"


class PackageEntry:
    """A file inside the nupkg zip."""

    __slots__ = ("full_name", "length", "last_write_time")

    def __init__(self, full_name: str, length: int, last_write_time: datetime):
        self.full_name = full_name
        self.length = length
        self.last_write_time = last_write_time


@total_ordering
class PackageInput:
    """
    One package file and the output fields the services fill in.

    Inputs order by identity with symbols packages after normal packages,
    equality is identity plus the symbols flag.
    """

    def __init__(
        self,
        identity: PackageIdentity,
        is_symbols_package: bool = False,
        package_path: Optional[Path] = None,
        nuspec: Optional[NuspecMetadata] = None,
        nuspec_bytes: Optional[bytes] = None,
        entries: Optional[List[PackageEntry]] = None,
    ):
        self.identity = identity
        self.is_symbols_package = is_symbols_package
        self.package_path = package_path
        self.nuspec = nuspec
        self.nuspec_bytes = nuspec_bytes
        self.entries = entries or []

        self.remove_reason: Optional[str] = None

        # Populated by the services
        self.nupkg_uri: Optional[str] = None
        self.package_details: Optional[Dict[str, Any]] = None
        self.registration_uri: Optional[str] = None

    @classmethod
    def create_for_delete(cls, identity: PackageIdentity, is_symbols_package: bool = False, reason: Optional[str] = None) -> "PackageInput":
        """Synthetic input used by delete/prune, there is no file behind it."""
        package = cls(identity, is_symbols_package=is_symbols_package)
        package.remove_reason = reason
        return package

    @property
    def has_file(self) -> bool:
        return self.package_path is not None

    def read_bytes(self) -> bytes:
        if self.package_path is None:
            raise DataIntegrityError(f"{self} has no package file")
        return self.package_path.read_bytes()

    def get_hash(self) -> str:
        """SHA512 of the nupkg, base64 encoded."""
        digest = hashlib.sha512(self.read_bytes()).digest()
        return base64.b64encode(digest).decode("ascii")

    def get_size(self) -> int:
        return self.package_path.stat().st_size if self.package_path else 0

    def _key(self) -> tuple:
        return (self.identity, 1 if self.is_symbols_package else 0)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, PackageInput):
            return NotImplemented
        return self._key() == other._key()

    def __lt__(self, other: "PackageInput") -> bool:
        if not isinstance(other, PackageInput):
            return NotImplemented
        return self._key() < other._key()

    def __hash__(self) -> int:
        return hash(self._key())

    def __str__(self) -> str:
        text = f"{self.identity.id} {self.identity.version.to_full_string()}"
        if self.is_symbols_package:
            text += " (Symbols)"
        return text

    def __repr__(self) -> str:
        return f"PackageInput({self})"


def is_symbols_file(path: Path) -> bool:
    return path.name.lower().endswith(SYMBOLS_EXTENSION)


def _zip_time(info: zipfile.ZipInfo) -> datetime:
    try:
        return datetime(*info.date_time, tzinfo=timezone.utc)
    except ValueError:
        return datetime(1980, 1, 1, tzinfo=timezone.utc)


def load_package(path: Path) -> PackageInput:
    """
    Read the identity and nuspec of a nupkg.

    The zip root must contain exactly one nuspec, named `{id}.nuspec`.
    """
    logger.debug(f"Reading {path}")
    try:
        with zipfile.ZipFile(path) as zf:
            infos = zf.infolist()
            nuspecs = [i for i in infos if "/" not in i.filename and i.filename.lower().endswith(".nuspec")]
            if not nuspecs:
                raise DataIntegrityError(f"Missing nuspec in {path}")
            if len(nuspecs) > 1:
                raise DataIntegrityError(f"Multiple nuspecs found in {path}")

            nuspec_bytes = zf.read(nuspecs[0])
            entries = [
                PackageEntry(i.filename, i.file_size, _zip_time(i))
                for i in infos
                if not i.is_dir()
            ]
    except zipfile.BadZipFile as e:
        raise DataIntegrityError(f"Invalid package {path}: {e}") from e

    nuspec = parse_nuspec(nuspec_bytes)
    if nuspecs[0].filename.lower() != f"{nuspec.id.lower()}.nuspec":
        raise DataIntegrityError(f"Missing {nuspec.id}.nuspec in {path}")

    return PackageInput(
        nuspec.identity,
        is_symbols_package=is_symbols_file(path),
        package_path=path,
        nuspec=nuspec,
        nuspec_bytes=nuspec_bytes,
        entries=entries,
    )


def get_package_files(inputs: Iterable[str | Path]) -> List[Path]:
    """Expand files and directories into a sorted list of nupkg paths."""
    files: List[Path] = []
    for item in inputs:
        path = Path(item).expanduser().resolve()
        if path.is_dir():
            files.extend(sorted(p for p in path.rglob("*") if p.is_file() and p.name.lower().endswith(NUPKG_EXTENSION)))
        elif path.is_file():
            files.append(path)
        else:
            raise FileNotFoundError(f"Unable to find '{item}'.")
    return files


def default_max_workers() -> int:
    return max(1, (os.cpu_count() or 1) * 2)


async def load_packages(paths: Iterable[Path], max_workers: Optional[int] = None) -> List[PackageInput]:
    """Read all packages on a bounded pool of worker threads, sorted."""
    semaphore = asyncio.Semaphore(max_workers or default_max_workers())

    async def load(path: Path) -> PackageInput:
        async with semaphore:
            return await asyncio.to_thread(load_package, path)

    results = await asyncio.gather(*(load(p) for p in paths))
    return sorted(results)
