"""
Torii GraphQL API Client

Single responsibility: read the redeem queue and the global highest score
from the game's Torii indexer.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import aiohttp

from ..config import config
from ..errors import MalformedResponseError
from ..models.starknet import parse_felt

logger = logging.getLogger(__name__)


@dataclass
class RedeemEntry:
    """A player waiting in the redeem queue."""
    player: str
    score: int


# GraphQL Queries
REDEEM_QUEUE_QUERY = """
query {
  redeemModels(first: 1) {
    edges {
      node {
        player
        score
      }
    }
  }
}
"""

HIGHEST_SCORE_QUERY = """
query {
  highestScoreModels(first: 1) {
    edges {
      node {
        id
        score
      }
    }
  }
}
"""


def parse_score(value: Any) -> int:
    """Scores come back as ints, decimal strings or 0x-prefixed hex strings."""
    if isinstance(value, bool):
        raise MalformedResponseError(f"Invalid score: {value!r}")
    if isinstance(value, int):
        score = value
    elif isinstance(value, str):
        try:
            score = int(value, 16) if value.lower().startswith("0x") else int(value)
        except ValueError:
            raise MalformedResponseError(f"Invalid score: {value!r}")
    else:
        raise MalformedResponseError(f"Invalid score: {value!r}")
    if score < 0:
        raise MalformedResponseError(f"Negative score: {score}")
    return score


def extract_nodes(data: Dict[str, Any], model: str) -> List[Dict[str, Any]]:
    """Pull ``data[model].edges[*].node`` out of a GraphQL response."""
    try:
        edges = data[model]["edges"]
    except (KeyError, TypeError):
        raise MalformedResponseError(f"Invalid GraphQL response format for {model}")
    if not isinstance(edges, list):
        raise MalformedResponseError(f"Invalid GraphQL response format for {model}")

    nodes = []
    for edge in edges:
        node = edge.get("node") if isinstance(edge, dict) else None
        if not isinstance(node, dict):
            raise MalformedResponseError(f"Edge without node in {model}")
        nodes.append(node)
    return nodes


class ToriiClient:
    """
    Async client for the Torii GraphQL endpoint.

    Handles:
    - Fetching the oldest pending redeem request
    - Fetching the global highest score
    """

    def __init__(self, url: str = None):
        self.url = url or config.torii_graphql_url
        self._session: Optional[aiohttp.ClientSession] = None

    async def __aenter__(self):
        await self._ensure_session()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    async def _ensure_session(self):
        """Create session if needed."""
        if self._session is None:
            self._session = aiohttp.ClientSession()

    async def close(self):
        """Close the HTTP session."""
        if self._session:
            await self._session.close()
            self._session = None

    async def _graphql_request(self, query: str) -> Dict[str, Any]:
        """
        Make a GraphQL request and return its ``data`` member.

        Raises:
            aiohttp.ClientError: on transport failure
            MalformedResponseError: on HTTP errors, GraphQL errors or a missing ``data``
        """
        await self._ensure_session()

        async with self._session.post(
            self.url,
            json={"query": query},
            headers={"Content-Type": "application/json"},
        ) as response:
            if response.status != 200:
                raise MalformedResponseError(
                    f"Torii API error {response.status}: {await response.text()}"
                )
            try:
                data = await response.json()
            except (aiohttp.ContentTypeError, ValueError) as e:
                raise MalformedResponseError(f"Torii response is not valid JSON: {e}")

        if not isinstance(data, dict):
            raise MalformedResponseError("Torii response is not a JSON object")
        if data.get("errors"):
            raise MalformedResponseError(f"GraphQL errors: {data['errors']}")
        if not isinstance(data.get("data"), dict):
            raise MalformedResponseError("Torii response has no data")
        return data["data"]

    # -------------------------------------------------------------------------
    # Public Methods
    # -------------------------------------------------------------------------

    async def find_next_player_in_queue(self) -> Optional[RedeemEntry]:
        """Oldest pending redeem request, or None if the queue is empty."""
        data = await self._graphql_request(REDEEM_QUEUE_QUERY)
        nodes = extract_nodes(data, "redeemModels")
        if not nodes:
            return None

        node = nodes[0]
        player = node.get("player")
        if not isinstance(player, str) or not player:
            raise MalformedResponseError(f"Invalid player in redeem model: {player!r}")
        try:
            parse_felt(player)
        except ValueError:
            raise MalformedResponseError(f"Player is not an address: {player!r}")
        return RedeemEntry(player=player, score=parse_score(node.get("score")))

    async def get_highest_score(self) -> Optional[int]:
        """Global highest score, or None if none has been recorded yet."""
        data = await self._graphql_request(HIGHEST_SCORE_QUERY)
        nodes = extract_nodes(data, "highestScoreModels")
        if not nodes:
            return None
        return parse_score(nodes[0].get("score"))
