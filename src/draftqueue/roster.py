"""
Roster providers.

The resolver needs the full season roster as a mapping of player id to
PlayerRecord. Providers own fetching, caching and rate limiting; the
engines only ever call get_all_players().

- SleeperRosterProvider: fetches /players/nfl from the Sleeper API
- StaticRosterProvider: serves a fixed mapping or a saved JSON dump

The Sleeper payload is several megabytes and changes at most a few times
a day, so it is cached in memory for 24 hours and a stale copy is served
if a refresh fails.
"""

import asyncio
import json
import logging
import random
import time
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Mapping, Optional, Union

import requests

from draftqueue.config import Settings
from draftqueue.players.models import PlayerRecord, roster_from_api

logger = logging.getLogger(__name__)


class RosterUnavailableError(RuntimeError):
    """Raised when no roster could be fetched and nothing is cached."""


class RosterProvider(ABC):
    """Source of the full player roster."""

    @abstractmethod
    async def get_all_players(self, force_refresh: bool = False) -> dict[str, PlayerRecord]:
        """
        Return every known player keyed by player id.

        Args:
            force_refresh: Bypass any cache and fetch fresh data

        Raises:
            RosterUnavailableError: If no data can be produced at all
        """


class StaticRosterProvider(RosterProvider):
    """
    Serves a roster that is already in memory or saved on disk.

    Usage:
        provider = StaticRosterProvider.from_json_file("players_nfl.json")
        roster = await provider.get_all_players()
    """

    def __init__(self, players: Mapping[str, PlayerRecord]):
        self._players = dict(players)

    @classmethod
    def from_payload(cls, payload: Mapping[str, Mapping[str, Any]]) -> "StaticRosterProvider":
        return cls(roster_from_api(payload))

    @classmethod
    def from_json_file(cls, path: Union[str, Path]) -> "StaticRosterProvider":
        """
        Load a dump of the raw /players/nfl response.

        Raises:
            RosterUnavailableError: If the file is missing or not a JSON object
        """
        path = Path(path)
        try:
            payload = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            raise RosterUnavailableError(f"Could not read roster file {path}: {e}") from e
        if not isinstance(payload, dict):
            raise RosterUnavailableError(f"Roster file {path} does not contain a JSON object")
        return cls.from_payload(payload)

    async def get_all_players(self, force_refresh: bool = False) -> dict[str, PlayerRecord]:
        return dict(self._players)


class SleeperRosterProvider(RosterProvider):
    """
    Roster provider backed by the Sleeper public API.

    Provides:
    - In-memory cache with expiry (default 24h)
    - Minimum delay between requests
    - Retry with exponential backoff
    - Stale-cache fallback when a refresh fails

    Usage:
        provider = SleeperRosterProvider(settings)
        roster = await provider.get_all_players()
        roster = await provider.get_all_players(force_refresh=True)
    """

    def __init__(self, settings: Optional[Settings] = None, session: Optional[requests.Session] = None):
        """
        Initialize the provider.

        Args:
            settings: Session settings (API URL, cache TTL, rate limit)
            session: Optional requests session (tests pass a stub)
        """
        self.settings = settings or Settings()
        self.session = session or requests.Session()

        self._cache: Optional[dict[str, PlayerRecord]] = None
        self._cached_at: Optional[float] = None
        self._last_request_at: Optional[float] = None

    @property
    def players_url(self) -> str:
        return f"{self.settings.roster_base_url.rstrip('/')}/players/{self.settings.roster_sport}"

    def is_cache_valid(self, max_age_s: Optional[float] = None) -> bool:
        """Check whether the cached roster is younger than the expiry."""
        if self._cache is None or self._cached_at is None:
            return False
        expiry = max_age_s if max_age_s is not None else self.settings.roster_cache_ttl_s
        return time.monotonic() - self._cached_at < expiry

    async def get_all_players(self, force_refresh: bool = False) -> dict[str, PlayerRecord]:
        if not force_refresh and self.is_cache_valid():
            logger.info("Using cached roster (%d players)", len(self._cache))
            return self._cache

        logger.info("Fetching roster from %s", self.players_url)
        try:
            payload = await self._fetch_with_retry()
        except (requests.RequestException, ValueError) as e:
            if self._cache is not None:
                logger.warning("Roster refresh failed (%s); using stale cached roster", e)
                return self._cache
            raise RosterUnavailableError(f"Could not fetch roster: {e}") from e

        players = roster_from_api(payload)
        self._cache = players
        self._cached_at = time.monotonic()
        logger.info("Fetched %d players", len(players))
        return players

    # =========================================================================
    # Helper Methods
    # =========================================================================

    async def _fetch_with_retry(self) -> dict:
        """
        Fetch the players payload with exponential backoff retry.

        Raises:
            requests.RequestException / ValueError: The last error if all retries fail
        """
        max_attempts = max(1, self.settings.roster_max_retries)
        last_error: Optional[Exception] = None

        for attempt in range(max_attempts):
            try:
                return await self._request_json(self.players_url)
            except (requests.RequestException, ValueError) as e:
                last_error = e
                if attempt < max_attempts - 1:
                    delay = 2.0 * (2 ** attempt) + random.uniform(0, 1)
                    logger.warning(
                        "[Retry %d/%d] roster fetch failed: %s. Retrying in %.1fs...",
                        attempt + 1, max_attempts, e, delay,
                    )
                    await asyncio.sleep(delay)

        raise last_error

    async def _request_json(self, url: str) -> dict:
        """Rate-limited GET returning the decoded JSON object."""
        if self._last_request_at is not None:
            elapsed = time.monotonic() - self._last_request_at
            wait = self.settings.roster_rate_limit - elapsed
            if wait > 0:
                await asyncio.sleep(wait)

        self._last_request_at = time.monotonic()
        response = await asyncio.to_thread(
            self.session.get, url, timeout=self.settings.roster_request_timeout_s
        )
        response.raise_for_status()

        payload = response.json()
        if not isinstance(payload, dict):
            raise ValueError(f"Unexpected roster payload type: {type(payload).__name__}")
        return payload
