"""
Version badges under `badges/`.

`badges/v/{id}.svg` shows the latest stable version, or the latest
prerelease when the id has no stable versions. `badges/vpre/{id}.svg`
shows the latest version including prereleases. Each svg has a shields.io
endpoint document (`{id}.json`) beside it.
"""
from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, Optional, Set

from jinja2 import Environment, PackageLoader, select_autoescape

from sleet.core.context import SleetContext
from sleet.domain import feed_paths
from sleet.domain.versioning import NuGetVersion, PackageIdentity

logger = logging.getLogger(__name__)

LABEL = "nuget"
COLOR_STABLE = "#007ec6"
COLOR_PRERELEASE = "#dfb317"

# SVG badge templates
templates = Environment(loader=PackageLoader("sleet", "templates"), autoescape=select_autoescape(["svg"]))


def get_max_version(packages: Iterable[PackageIdentity], package_id: str, include_prerelease: bool) -> Optional[NuGetVersion]:
    versions = [p.version for p in packages if p.id.lower() == package_id.lower()]
    candidates = [v for v in versions if include_prerelease or not v.is_prerelease]
    if candidates:
        return max(candidates)
    return max(versions) if versions else None


def get_changes(
    before: Set[PackageIdentity], after: Set[PackageIdentity], prerelease: bool
) -> Dict[str, Optional[NuGetVersion]]:
    """
    Ids whose badge version differs between the two sets.

    Maps each id to its new badge version, None when the id is gone.
    """
    ids: Dict[str, str] = {}
    for identity in sorted(before ^ after):
        ids.setdefault(identity.id.lower(), identity.id)

    changes: Dict[str, Optional[NuGetVersion]] = {}
    for key in sorted(ids):
        package_id = ids[key]
        version = get_max_version(after, package_id, prerelease)
        if version != get_max_version(before, package_id, prerelease):
            changes[package_id] = version
    return changes


def get_json_badge(version: NuGetVersion, prerelease: bool) -> Dict[str, Any]:
    return {
        "schemaVersion": 1,
        "label": LABEL,
        "message": version.to_normalized_string(),
        "color": COLOR_PRERELEASE if prerelease else COLOR_STABLE,
    }


def _text_width(text: str) -> int:
    return 7 * len(text) + 10


def get_svg_badge(version: NuGetVersion, prerelease: bool) -> str:
    message = version.to_normalized_string()
    label_width = _text_width(LABEL)
    message_width = _text_width(message)
    return templates.get_template("badge.svg").render(
        label=LABEL,
        message=message,
        color=COLOR_PRERELEASE if prerelease else COLOR_STABLE,
        width=label_width + message_width,
        label_width=label_width,
        message_width=message_width,
        label_x=label_width // 2,
        message_x=label_width + message_width // 2,
    )


class Badges:
    name = "Badges"

    def __init__(self, context: SleetContext):
        self.context = context
        self.file_system = context.file_system

    async def apply_operations(self, operations) -> None:
        before = operations.original_index.packages.get_packages()
        after = operations.updated_index.packages.get_packages()
        for prerelease in (False, True):
            for package_id, version in get_changes(before, after, prerelease).items():
                await self.update_or_remove(package_id, version, prerelease)

    async def update_or_remove(self, package_id: str, version: Optional[NuGetVersion], prerelease: bool) -> None:
        svg_file = self.file_system.get(feed_paths.badge_svg(package_id, prerelease))
        json_file = self.file_system.get(feed_paths.badge_json(package_id, prerelease))

        if version is None:
            logger.debug(f"Removing badge for {package_id}")
            await svg_file.delete()
            await json_file.delete()
            return

        logger.debug(f"Updating badge for {package_id} to {version.to_normalized_string()}")
        await svg_file.write_bytes(get_svg_badge(version, prerelease).encode("utf-8"))
        await json_file.write_json(get_json_badge(version, prerelease))

    async def get_badge_version(self, package_id: str, prerelease: bool = False) -> Optional[str]:
        json = await self.file_system.get(feed_paths.badge_json(package_id, prerelease)).get_json_or_none()
        return json.get("message") if json else None
