#!/usr/bin/env python3
"""
External Data Fetcher
Optional HTTP collaborators: the remote stash list and the ONE-T grading API
"""

import asyncio
import functools
import logging
from typing import Dict, List, Optional

import requests

from .config import CrunchConfig
from .exceptions import ExternalApiError
from .models import GradeRecord

logger = logging.getLogger(__name__)

ONET_ENDPOINT_TEMPLATE = "https://{chain}-onet-api-beta.turboflakes.io"


class ExternalDataFetcher:
    """Fetches stash lists and validator grades without blocking the event loop"""

    def __init__(self, config: CrunchConfig):
        self.config = config
        self.timeout = config.http_timeout

    async def _get(self, url: str, headers: Dict[str, str] = None) -> requests.Response:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(
            None, functools.partial(requests.get, url, headers=headers or {}, timeout=self.timeout)
        )

    async def fetch_stash_list(self) -> Optional[List[str]]:
        """
        Load stashes from the configured URL

        Returns None when no URL is configured or the body holds no entries.
        Transport and HTTP status failures raise ExternalApiError.
        """
        url = self.config.stashes_url
        if not url:
            return None

        try:
            response = await self._get(url)
            response.raise_for_status()
        except requests.RequestException as e:
            raise ExternalApiError(url, str(e)) from e

        stashes = [entry.strip() for entry in response.text.split("\n")]
        stashes = [entry for entry in stashes if entry]
        if not stashes:
            return None

        logger.info(f"{len(stashes)} stashes loaded from {url}")
        return stashes

    def grade_url(self, chain_name: str, stash: str) -> str:
        endpoint = self.config.onet_api_url or ONET_ENDPOINT_TEMPLATE.format(chain=chain_name.lower())
        return (
            f"{endpoint.rstrip('/')}/api/v1/validators/{stash}/grade"
            f"?number_last_sessions={self.config.onet_number_last_sessions}"
        )

    async def fetch_grade(self, chain_name: str, stash: str) -> Optional[GradeRecord]:
        """Fetch the ONE-T grade of a stash; any failure is logged and returns None"""
        if not self.config.onet_api_enabled:
            return None

        url = self.grade_url(chain_name, stash)
        logger.debug(f"Crunch <> ONE-T grade loaded from {url}")
        try:
            response = await self._get(url, headers={"X-API-KEY": self.config.onet_api_key})
        except requests.RequestException as e:
            logger.error(f"ONE-T request failed for stash {stash}: {e}")
            return None

        if response.status_code != 200:
            logger.warning(f"Unexpected code {response.status_code} from ONE-T url {url}")
            return None

        try:
            return GradeRecord.from_json(response.json())
        except (ValueError, KeyError, TypeError) as e:
            logger.error(f"Unable to parse ONE-T response for stash {stash} error: {e}")
            return None
