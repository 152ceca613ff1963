"""User-agent parsing backed by the ``user-agents`` library (ua-parser rules)."""
from __future__ import annotations

import logging
from functools import _CacheInfo, lru_cache

from user_agents import parse as ua_parse

from edgemetrikks.services.enrichment.schemas import ClientInfo


logger = logging.getLogger(__name__)

# ua-parser reports unrecognized families as "Other"
UNKNOWN_FAMILY = "Other"


def _family(value: str | None) -> str:
    if not value or value == UNKNOWN_FAMILY:
        return ""
    return value


def _component(version: tuple, index: int) -> str:
    """Return one part of a parsed version tuple as text."""
    if index >= len(version) or version[index] in (None, ""):
        return ""
    return str(version[index])


class UserAgentParser:
    """Turns raw user-agent strings into ClientInfo.

    Never raises: user-agent strings are client controlled, so empty,
    malformed or unrecognized input yields an empty ClientInfo.
    """

    def __init__(self, log: logging.Logger | None = None, cache_size: int = 10000) -> None:
        self.log = log or logger
        self._parse_cached = lru_cache(maxsize=cache_size)(self._parse_uncached)

    def parse(self, raw: str) -> ClientInfo:
        """Parse a user-agent string."""
        if not raw or not isinstance(raw, str):  # pyright: ignore[reportUnnecessaryIsInstance]
            return ClientInfo()
        return self._parse_cached(raw)

    def cache_info(self) -> _CacheInfo:
        """Return lru_cache statistics for the parse cache."""
        return self._parse_cached.cache_info()

    def _parse_uncached(self, raw: str) -> ClientInfo:
        try:
            ua = ua_parse(raw)
        except Exception as e:
            # Broken regex rules or odd encodings must not abort a batch
            self.log.debug("User-agent parsing failed for %r: %s", raw, e)
            return ClientInfo()

        browser_family = _family(ua.browser.family)
        os_family = _family(ua.os.family)
        device_family = _family(ua.device.family)
        if not (browser_family or os_family or device_family):
            self.log.debug("Unrecognized user-agent %r", raw)
            return ClientInfo()

        return ClientInfo(
            browser_family=browser_family,
            browser_major=_component(ua.browser.version, 0),
            browser_minor=_component(ua.browser.version, 1),
            browser_patch=_component(ua.browser.version, 2),
            os_family=os_family,
            os_major=_component(ua.os.version, 0),
            os_minor=_component(ua.os.version, 1),
            os_patch=_component(ua.os.version, 2),
            os_patch_minor=_component(ua.os.version, 3),
            device_family=device_family,
            device_brand=ua.device.brand or "",
            device_model=ua.device.model or "",
            is_bot=bool(ua.is_bot),
            is_mobile=bool(ua.is_mobile),
            is_tablet=bool(ua.is_tablet),
            is_pc=bool(ua.is_pc),
        )
