"""External catalog providers: Steam store and RAWG."""

from typing import Any
from urllib.parse import quote

import structlog

from ..models import RequirementSource, SearchHit
from .errors import NetworkError
from .http_client import HttpClientService

log = structlog.stdlib.get_logger()


class SteamProvider:
    """Steam community app search plus store ``appdetails``."""

    source = RequirementSource.STEAM
    search_url = "https://steamcommunity.com/actions/SearchApps/{name}"
    details_url = "https://store.steampowered.com/api/appdetails"

    def __init__(self, http_client: HttpClientService) -> None:
        self.http_client = http_client

    async def search(self, name: str) -> SearchHit | None:
        url = self.search_url.format(name=quote(name, safe=""))
        results = await self.http_client.get_json(url, source=self.source.value)
        if not results:
            return None
        if not isinstance(results, list) or not isinstance(results[0], dict):
            raise NetworkError("Unexpected search response from steam", url=url, source=self.source.value)

        first = results[0]
        app_id = first.get("appid")
        if app_id is None:
            return None
        return SearchHit(platform_id=str(app_id), display_name=str(first.get("name") or name))

    async def fetch_details(self, platform_id: str) -> dict[str, Any] | None:
        payload = await self.http_client.get_json(
            self.details_url,
            params={"appids": platform_id, "cc": "us", "l": "en"},
            source=self.source.value,
        )
        if not isinstance(payload, dict):
            return None

        app = payload.get(str(platform_id))
        if not isinstance(app, dict) or not app.get("success"):
            log.debug("Steam has no details for app", app_id=platform_id)
            return None
        data = app.get("data")
        return data if isinstance(data, dict) else None

    def requirement_blocks(self, details: dict[str, Any]) -> tuple[str | None, str | None]:
        # Steam sends an empty list instead of an object when nothing is listed
        pc_requirements = details.get("pc_requirements")
        if not isinstance(pc_requirements, dict):
            return None, None
        return _block(pc_requirements.get("minimum")), _block(pc_requirements.get("recommended"))


class RawgProvider:
    """RAWG video game database, reported as source ``other``."""

    source = RequirementSource.OTHER
    base_url = "https://api.rawg.io/api"

    def __init__(self, http_client: HttpClientService, api_key: str | None = None) -> None:
        self.http_client = http_client
        self.api_key = api_key

    async def search(self, name: str) -> SearchHit | None:
        payload = await self.http_client.get_json(
            f"{self.base_url}/games",
            params=self._params(search=name, page_size="1"),
            source=self.source.value,
        )
        if not payload:
            return None
        results = payload.get("results") if isinstance(payload, dict) else None
        if results is not None and not isinstance(results, list):
            raise NetworkError("Unexpected search response from other", source=self.source.value)
        if not results:
            return None
        first = results[0]
        if not isinstance(first, dict):
            raise NetworkError("Unexpected search response from other", source=self.source.value)
        if first.get("id") is None:
            return None
        return SearchHit(platform_id=str(first["id"]), display_name=str(first.get("name") or name))

    async def fetch_details(self, platform_id: str) -> dict[str, Any] | None:
        payload = await self.http_client.get_json(
            f"{self.base_url}/games/{quote(str(platform_id), safe='')}",
            params=self._params(),
            source=self.source.value,
        )
        return payload if isinstance(payload, dict) else None

    def requirement_blocks(self, details: dict[str, Any]) -> tuple[str | None, str | None]:
        platforms = details.get("platforms") or []
        if not isinstance(platforms, list):
            raise NetworkError("Unexpected detail response from other", source=self.source.value)
        for entry in platforms:
            if not isinstance(entry, dict) or not _is_pc_platform(entry.get("platform")):
                continue
            requirements = entry.get("requirements") or entry.get("requirements_en")
            if isinstance(requirements, dict):
                return _block(requirements.get("minimum")), _block(requirements.get("recommended"))

        return _block(details.get("minimum")), _block(details.get("recommended"))

    def _params(self, **params: str) -> dict[str, str]:
        if self.api_key:
            params["key"] = self.api_key
        return params


def _is_pc_platform(platform: Any) -> bool:
    if not isinstance(platform, dict):
        return False
    slug = str(platform.get("slug") or "").lower()
    name = str(platform.get("name") or "").lower()
    return slug == "pc" or "pc" in name or "windows" in name


def _block(value: Any) -> str | None:
    return value if isinstance(value, str) and value.strip() else None
