"""HTTP client for the remote game service (room lifecycle endpoints)."""

from __future__ import annotations

import logging
import os
from typing import Any, Optional

import httpx

from tablesync.errors import GameServiceError, RoomNotFoundError
from tablesync.models import JoinPlayerRequest, Player, RoomSnapshot

logger = logging.getLogger(__name__)

BACKEND_URL = os.getenv("TABLESYNC_BACKEND_URL", "http://localhost:8080")
API_TIMEOUT = float(os.getenv("TABLESYNC_API_TIMEOUT", "10"))


class GameServiceClient:
    """Thin async wrapper over ``/api/game``.  Every room response is a snapshot."""

    def __init__(
        self,
        base_url: str = BACKEND_URL,
        client: Optional[httpx.AsyncClient] = None,
        timeout: float = API_TIMEOUT,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self._client = client
        self._owns_client = client is None
        self._timeout = timeout

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(base_url=self.base_url, timeout=self._timeout)
        return self._client

    async def close(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    async def _request(
        self,
        method: str,
        path: str,
        json: Optional[dict[str, Any]] = None,
        params: Optional[dict[str, Any]] = None,
    ) -> httpx.Response:
        client = self._get_client()
        try:
            response = await client.request(method, f"/api/game{path}", json=json, params=params)
        except httpx.HTTPError as exc:
            logger.error("Game service request failed: %s %s: %s", method, path, exc)
            raise GameServiceError(f"Connection error: {exc}") from exc

        if response.status_code == 404:
            raise RoomNotFoundError("Room not found", status_code=404)
        if response.status_code >= 400:
            detail = response.text or response.reason_phrase
            raise GameServiceError(detail, status_code=response.status_code)
        return response

    # ------------------------------------------------------------------
    # Rooms
    # ------------------------------------------------------------------

    async def create_room(self) -> RoomSnapshot:
        """Create a room with the caller as dealer."""
        response = await self._request("POST", "/dealer/create")
        return RoomSnapshot.model_validate(response.json())

    async def join_player(
        self,
        game_code: str,
        name: str,
        online: bool = True,
        visually_impaired: bool = False,
    ) -> Player:
        req = JoinPlayerRequest(
            name=name,
            game_code=game_code,
            online=online,
            visually_impaired=visually_impaired,
        )
        response = await self._request("POST", "/player/join", json=req.model_dump(by_alias=True))
        return Player.model_validate(response.json())

    async def get_room(self, game_code: str) -> RoomSnapshot:
        response = await self._request("GET", f"/{game_code}")
        return RoomSnapshot.model_validate(response.json())

    async def start_game(self, game_code: str) -> None:
        await self._request("POST", f"/{game_code}/start")

    async def start_new_hand(self, game_code: str) -> None:
        await self._request("POST", f"/{game_code}/new-hand")

    async def leave(self, game_code: str, player_id: str) -> None:
        """Leave the room; the dealer uses this to kick a player too."""
        await self._request("POST", f"/{game_code}/leave", params={"playerId": player_id})

    async def disband(self, game_code: str) -> None:
        await self._request("POST", f"/{game_code}/disband")
