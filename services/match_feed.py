"""
Match feed client for The Blue Alliance.
Handles polling completed matches and advancing the progress state.
"""
from typing import List, Optional

import aiohttp

import config
from logger import get_logger
from models.match import Match, latest_completed_qual, parse_matches
from services.errors import MatchFeedError
from services.progress import ProgressState

log = get_logger()


def create_session(secret: str) -> aiohttp.ClientSession:
    """Session that sends the TBA auth header on every request."""
    return aiohttp.ClientSession(
        headers={config.TBA_AUTH_HEADER: secret},
        timeout=aiohttp.ClientTimeout(total=10),
    )


class MatchFeedClient:
    """Fetches match summaries for an event."""

    def __init__(self, session: aiohttp.ClientSession, base_url: str = config.TBA_BASE_URL):
        self.session = session
        self.base_url = base_url.rstrip("/")

    async def fetch_recent_matches(self, event_id: str) -> List[Match]:
        """
        Fetch every match summary for `event_id`.

        Raises:
            MatchFeedError: On network failure, a non-2xx status, or a malformed body
        """
        url = f"{self.base_url}/event/{event_id}/matches/simple"
        try:
            async with self.session.get(url) as response:
                if not 200 <= response.status < 300:
                    raise MatchFeedError(f"bad status {response.status} from {url}", status=response.status)
                try:
                    payload = await response.json()
                except ValueError as e:
                    raise MatchFeedError(f"undecodable body from {url}: {e}", status=response.status) from e
        except aiohttp.ClientError as e:
            raise MatchFeedError(f"request to {url} failed: {e}") from e
        return parse_matches(payload)


async def refresh_progress(feed: MatchFeedClient, progress: ProgressState, event_id: str) -> Optional[int]:
    """
    Poll the feed once and store the latest completed qualification match.

    Returns:
        The new progress value, or None if nothing has finished yet.
    """
    matches = await feed.fetch_recent_matches(event_id)
    latest = latest_completed_qual(matches)
    if latest is None:
        log.debug("No completed qualification matches for %s yet", event_id)
        return None

    previous = await progress.get()
    await progress.set(latest)
    if previous != latest:
        log.info("Latest completed match is now %d", latest)
    return latest
