"""Voice Transport: hosted voice-agent adapter (ElevenLabs conversational AI).

Invariants:
    - begin() returns the connection descriptor the browser needs ({"signed_url", "agent_id"})
    - Any HTTP/network failure or a reply without signed_url raises TransportFailureError
    - end() never raises; the browser owns the audio socket, so release is bookkeeping only

Design Decisions:
    - Signed URLs keep the API key server-side
    - httpx.AsyncClient may be injected (tests use httpx.MockTransport)
"""

import logging

import httpx

from coach.core.errors import TransportFailureError

logger = logging.getLogger(__name__)

_SIGNED_URL_PATH = "/v1/convai/conversation/get-signed-url"


class ElevenLabsVoiceTransport:
    """VoiceTransport for one conversation with one voice agent."""

    def __init__(
        self,
        agent_id: str,
        api_key: str,
        base_url: str = "https://api.elevenlabs.io",
        timeout_seconds: float = 10.0,
        client: httpx.AsyncClient | None = None,
    ):
        self.agent_id = agent_id
        self._api_key = api_key
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout_seconds
        self._client = client
        self.released = False

    async def begin(self) -> dict:
        if not self.agent_id:
            raise TransportFailureError("no voice agent configured for this session")
        try:
            response = await self._get_signed_url()
        except httpx.HTTPError as e:
            logger.error(f"Voice agent request failed: {e}")
            raise TransportFailureError(f"voice agent unreachable: {e}") from e

        if response.status_code != 200:
            logger.error(
                f"Voice agent responded with {response.status_code}: {response.text[:200]}",
            )
            raise TransportFailureError(
                f"voice agent returned HTTP {response.status_code}",
            )
        try:
            signed_url = response.json().get("signed_url")
        except ValueError:
            signed_url = None
        if not signed_url:
            raise TransportFailureError("no signed URL in voice agent response")

        self.released = False
        return {"signed_url": signed_url, "agent_id": self.agent_id}

    async def end(self) -> None:
        self.released = True
        logger.debug(f"Voice transport released (agent {self.agent_id})")

    async def _get_signed_url(self) -> httpx.Response:
        url = f"{self._base_url}{_SIGNED_URL_PATH}"
        params = {"agent_id": self.agent_id}
        headers = {"xi-api-key": self._api_key}
        if self._client is not None:
            return await self._client.get(url, params=params, headers=headers)
        async with httpx.AsyncClient(timeout=self._timeout) as client:
            return await client.get(url, params=params, headers=headers)


class ReportedPermission:
    """PermissionSource backed by what the client reported for this start request."""

    def __init__(self, granted: bool):
        self._granted = granted

    def has_permission(self) -> bool:
        return self._granted
