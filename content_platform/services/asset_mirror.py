"""
Mirror legacy /system/ assets and protocol-relative CDN assets into the
content directory and point the HTML at the local copies.
"""

from __future__ import annotations

import asyncio
import os
import re
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional
from urllib.parse import urlsplit

import requests

from content_platform.config import ContentConfig
from content_platform.utils.logger import get_logger

logger = get_logger(__name__)

_USER_AGENT = "ContentPlatformAssetMirror/1.0"
_SAFE_HOST_RE = re.compile(r"^[A-Za-z0-9.\-]+(?::\d+)?$")
_SAFE_CDN_PATH_RE = re.compile(r"^/[A-Za-z0-9/_.\-%~+]*$")

Fetcher = Callable[[str, str, int, int], bool]


@dataclass
class MirroredAsset:
    reference: str
    download_url: str
    local_path: str
    new_url: str


@dataclass
class MirrorResult:
    html: str
    downloaded: List[str] = field(default_factory=list)
    failed: List[str] = field(default_factory=list)
    rejected: List[str] = field(default_factory=list)


def fetch_asset(url: str, destination: str, timeout_seconds: int, tries: int) -> bool:
    """Download url to destination with a per-try timeout. Returns False on failure."""
    for attempt in range(1, max(1, tries) + 1):
        try:
            with requests.get(
                url,
                timeout=timeout_seconds,
                headers={"User-Agent": _USER_AGENT},
                stream=True,
            ) as response:
                response.raise_for_status()
                with open(destination, "wb") as handle:
                    for block in response.iter_content(chunk_size=65536):
                        if block:
                            handle.write(block)
            return True
        except (requests.RequestException, OSError) as exc:
            logger.warning("Asset fetch attempt %s/%s failed for %s: %s", attempt, tries, url, exc)
    if os.path.exists(destination):
        try:
            os.remove(destination)
        except OSError:
            logger.warning("Could not remove partial download %s", destination)
    return False


def _within_root(path: str, root: str) -> bool:
    real_root = os.path.realpath(root)
    candidate = path
    # Walk up to the nearest existing ancestor; only that can be resolved.
    while not os.path.exists(candidate):
        parent = os.path.dirname(candidate)
        if parent == candidate:
            return False
        candidate = parent
    resolved = os.path.realpath(candidate)
    return resolved == real_root or resolved.startswith(real_root + os.sep)


class AssetMirror:
    def __init__(self, config: ContentConfig, fetcher: Optional[Fetcher] = None) -> None:
        self.config = config
        self.fetcher = fetcher or fetch_asset
        prefix = re.escape(config.legacy_asset_prefix)
        self._legacy_patterns = (
            re.compile(r"\ssrc\s*=\s*[\"']?(" + prefix + r"[^\"'\s>]+)", re.IGNORECASE),
            re.compile(r"\shref\s*=\s*[\"']?(" + prefix + r"[^\"'\s>]+)", re.IGNORECASE),
            re.compile(r"url\(\s*[\"']?(" + prefix + r"[^\"')\s]+)", re.IGNORECASE),
        )
        self._cdn_patterns = (
            re.compile(r"\ssrc\s*=\s*[\"'](//[^\"'\s>]+)", re.IGNORECASE),
            re.compile(r"\shref\s*=\s*[\"'](//[^\"'\s>]+)", re.IGNORECASE),
            re.compile(r"url\(\s*[\"']?(//[^\"')\s]+)", re.IGNORECASE),
        )

    def is_valid_system_path(self, path: str, content_dir: str) -> bool:
        """
        Accept a legacy path only if it starts with the legacy prefix, has no
        parent segments, uses safe characters and resolves inside content_dir.
        """
        prefix = self.config.legacy_asset_prefix
        if not path.startswith(prefix):
            return False
        relative = path.lstrip("/")
        if ".." in relative:
            return False
        if not re.match(r"^" + re.escape(prefix) + r"[a-zA-Z0-9/_.\-]+$", path):
            return False
        return _within_root(os.path.join(content_dir, relative), content_dir)

    def discover(self, html: str, content_dir: str, content_id: str, base_path: str = "") -> Dict[str, MirroredAsset]:
        assets: Dict[str, MirroredAsset] = {}
        for pattern in self._legacy_patterns:
            for reference in pattern.findall(html):
                if reference in assets:
                    continue
                path_only = reference.split("?", 1)[0]
                if not self.is_valid_system_path(path_only, content_dir):
                    logger.warning("Rejected invalid system path: %s", path_only)
                    continue
                assets[reference] = MirroredAsset(
                    reference=reference,
                    download_url=self.config.legacy_asset_origin + reference,
                    local_path=os.path.join(content_dir, path_only.lstrip("/")),
                    new_url=f"{base_path}/content/{content_id}{path_only}",
                )

        for pattern in self._cdn_patterns:
            for reference in pattern.findall(html):
                if reference in assets:
                    continue
                parts = urlsplit("https:" + reference)
                host = parts.netloc
                path = parts.path or "/"
                if not host or not _SAFE_HOST_RE.match(host) or ".." in path or not _SAFE_CDN_PATH_RE.match(path):
                    logger.warning("Rejected invalid CDN reference: %s", reference)
                    continue
                relative = f"cdn/{host}{path}"
                if relative.endswith("/"):
                    relative += "index"
                local_path = os.path.join(content_dir, relative)
                if not _within_root(local_path, content_dir):
                    logger.warning("Rejected CDN reference outside content root: %s", reference)
                    continue
                assets[reference] = MirroredAsset(
                    reference=reference,
                    download_url="https:" + reference,
                    local_path=local_path,
                    new_url=f"{base_path}/content/{content_id}/{relative}",
                )
        return assets

    async def mirror(self, html: str, content_dir: str, content_id: str, base_path: str = "") -> MirrorResult:
        """
        Download every discovered asset with bounded concurrency and rewrite
        references for the ones that arrived. Never raises for asset problems.
        """
        os.makedirs(content_dir, exist_ok=True)
        assets = self.discover(html, content_dir, content_id, base_path)
        if not assets:
            return MirrorResult(html=html)

        logger.info("Mirroring %s assets for content %s", len(assets), content_id)
        semaphore = asyncio.Semaphore(max(1, self.config.asset_max_workers))

        async def _download(asset: MirroredAsset) -> bool:
            async with semaphore:
                try:
                    os.makedirs(os.path.dirname(asset.local_path), exist_ok=True)
                    return await asyncio.to_thread(
                        self.fetcher,
                        asset.download_url,
                        asset.local_path,
                        self.config.asset_fetch_timeout_seconds,
                        self.config.asset_fetch_tries,
                    )
                except asyncio.CancelledError:
                    raise
                except Exception as exc:
                    logger.warning("Asset download crashed for %s: %s", asset.download_url, exc)
                    return False

        # References differing only by query string share one file; fetch it once.
        by_path: Dict[str, List[MirroredAsset]] = {}
        for asset in assets.values():
            by_path.setdefault(asset.local_path, []).append(asset)
        groups = list(by_path.values())
        outcomes = await asyncio.gather(*(_download(group[0]) for group in groups))
        arrived = {group[0].local_path for group, ok in zip(groups, outcomes) if ok}

        result = MirrorResult(html=html)
        rewrites: Dict[str, str] = {}
        for asset in assets.values():
            if asset.local_path in arrived:
                logger.info("Downloaded asset %s from %s", asset.reference, asset.download_url)
                result.downloaded.append(asset.reference)
                rewrites[asset.reference] = asset.new_url
            else:
                logger.warning("Failed to download asset %s from %s", asset.reference, asset.download_url)
                result.failed.append(asset.reference)
        result.html = self.rewrite(html, rewrites)
        return result

    @staticmethod
    def rewrite(html: str, rewrites: Dict[str, str]) -> str:
        """Replace src/href attribute values and url() references found in rewrites."""
        if not rewrites:
            return html
        alternatives = "|".join(re.escape(ref) for ref in sorted(rewrites, key=len, reverse=True))
        pattern = re.compile(
            r"(?P<lead>\s(?:src|href)\s*=\s*[\"']?|url\(\s*[\"']?)"
            r"(?P<ref>" + alternatives + r")"
            r"(?=[\"'\s>)])",
            re.IGNORECASE,
        )
        return pattern.sub(lambda m: m.group("lead") + rewrites[m.group("ref")], html)
