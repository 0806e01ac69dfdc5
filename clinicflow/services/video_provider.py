"""Client for the external video room provider."""

from datetime import UTC, datetime, timedelta

import httpx
import structlog
from jose import jwt

from clinicflow.config import settings
from clinicflow.core.exceptions import UpstreamFailureException

logger = structlog.get_logger(__name__)


class VideoProviderClient:
    """Thin REST client that provisions rooms and signs participant tokens."""

    ROOMS_PATH = "/v2/rooms"
    TIMEOUT = 10.0

    def __init__(
        self,
        api_key: str,
        secret: str,
        base_url: str,
        token_ttl_minutes: int = 60,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.api_key = api_key
        self.secret = secret
        self.base_url = base_url.rstrip("/")
        self.token_ttl = timedelta(minutes=token_ttl_minutes)
        self.transport = transport

    def generate_token(self, permissions: list[str], room_id: str | None = None) -> str:
        """
        Sign a provider token.

        Args:
            permissions: Provider permission names
            room_id: Restrict the token to one room

        Returns:
            HS256 signed token
        """
        now = datetime.now(UTC)
        payload = {
            "apikey": self.api_key,
            "permissions": permissions,
            "version": 2,
            "iat": now,
            "exp": now + self.token_ttl,
        }
        if room_id:
            payload["roomId"] = room_id
        return jwt.encode(payload, self.secret, algorithm="HS256")

    def participant_token(self, room_id: str, role: str) -> str:
        """Token for a participant joining ``room_id``; doctors moderate."""
        permissions = ["allow_join", "allow_mod" if role == "doctor" else "ask_join"]
        return self.generate_token(permissions, room_id=room_id)

    async def create_room(self) -> str:
        """
        Provision a room with the provider.

        Returns:
            Provider room id

        Raises:
            UpstreamFailureException: If the provider is unreachable or rejects the request
        """
        token = self.generate_token(["allow_join", "allow_mod"])
        async with httpx.AsyncClient(
            base_url=self.base_url,
            timeout=self.TIMEOUT,
            transport=self.transport,
        ) as client:
            try:
                response = await client.post(
                    self.ROOMS_PATH,
                    headers={"Authorization": token},
                    json={},
                )
                response.raise_for_status()
                room_id = response.json().get("roomId")
            except (httpx.HTTPError, ValueError) as e:
                logger.error("video_provider_failed", error=str(e))
                raise UpstreamFailureException("Video provider request failed") from e

        if not room_id:
            logger.error("video_provider_failed", error="missing roomId")
            raise UpstreamFailureException("Video provider returned no room id")
        return room_id


def get_video_provider() -> VideoProviderClient | None:
    """Return a provider client when credentials are configured."""
    if not settings.video_provider_enabled:
        return None
    return VideoProviderClient(
        api_key=settings.video_provider_api_key,
        secret=settings.video_provider_secret,
        base_url=settings.video_provider_base_url,
        token_ttl_minutes=settings.video_token_expire_minutes,
    )
