"""HTTP client for the SFU that terminates media for the rooms."""

from __future__ import annotations

import logging
from typing import Any

import httpx

from huddle.rpc.errors import MediaError, SdpError

logger = logging.getLogger(__name__)


class SFUMediaClient:
    """Negotiates media endpoints on the SFU HTTP API."""

    def __init__(
        self,
        base_url: str,
        *,
        api_key: str = "",
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.timeout = timeout
        self._transport = transport

    def _client(self, timeout: float) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=timeout, transport=self._transport)

    def _get_headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["X-API-Key"] = self.api_key
        return headers

    def _endpoint_url(self, room_id: str, endpoint_name: str) -> str:
        return f"{self.base_url}/api/rooms/{room_id}/endpoints/{endpoint_name}"

    async def _request(
        self,
        method: str,
        url: str,
        *,
        json: dict[str, Any] | None = None,
        allow_missing: bool = False,
    ) -> dict[str, Any]:
        try:
            async with self._client(self.timeout) as client:
                response = await client.request(method, url, json=json, headers=self._get_headers())
        except httpx.HTTPError as exc:
            logger.warning("Media server request %s %s failed: %s", method, url, exc)
            raise MediaError(f"Media server unavailable: {exc}") from exc

        if allow_missing and response.status_code == 404:
            return {}
        if response.status_code == 400:
            raise SdpError(f"Media server rejected the request: {response.text}")
        try:
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            raise MediaError(
                f"Media server returned {response.status_code} for {method} {url}"
            ) from exc
        if not response.content:
            return {}
        try:
            payload = response.json()
        except ValueError as exc:
            raise MediaError(f"Media server sent an invalid body for {method} {url}") from exc
        if not isinstance(payload, dict):
            raise MediaError(f"Media server sent an unexpected body for {method} {url}")
        return payload

    @staticmethod
    def _sdp_answer(payload: dict[str, Any]) -> str:
        answer = payload.get("sdpAnswer")
        if not isinstance(answer, str) or not answer:
            raise SdpError("Media server did not return an SDP answer")
        return answer

    async def publish(
        self,
        room_id: str,
        endpoint_name: str,
        sdp_offer: str,
        *,
        audio_only: bool,
        do_loopback: bool,
    ) -> str:
        payload = await self._request(
            "POST",
            f"{self._endpoint_url(room_id, endpoint_name)}/publish",
            json={"sdpOffer": sdp_offer, "audioOnly": audio_only, "doLoopback": do_loopback},
        )
        return self._sdp_answer(payload)

    async def subscribe(
        self, room_id: str, endpoint_name: str, subscriber_id: str, sdp_offer: str
    ) -> str:
        payload = await self._request(
            "POST",
            f"{self._endpoint_url(room_id, endpoint_name)}/subscribers/{subscriber_id}",
            json={"sdpOffer": sdp_offer},
        )
        return self._sdp_answer(payload)

    async def release(
        self, room_id: str, endpoint_name: str, subscriber_id: str | None = None
    ) -> None:
        url = self._endpoint_url(room_id, endpoint_name)
        if subscriber_id is not None:
            url = f"{url}/subscribers/{subscriber_id}"
        await self._request("DELETE", url, allow_missing=True)

    async def add_ice_candidate(
        self,
        room_id: str,
        endpoint_name: str,
        participant_id: str,
        candidate: str,
        sdp_mid: str,
        sdp_m_line_index: int,
    ) -> None:
        await self._request(
            "POST",
            f"{self._endpoint_url(room_id, endpoint_name)}/candidates",
            json={
                "participantId": participant_id,
                "candidate": candidate,
                "sdpMid": sdp_mid,
                "sdpMLineIndex": sdp_m_line_index,
            },
        )

    async def health_check(self) -> bool:
        try:
            async with self._client(5.0) as client:
                response = await client.get(f"{self.base_url}/health")
                return response.status_code == 200
        except httpx.HTTPError:
            return False
