"""Discord REST client for status labels and alert embeds."""

from datetime import datetime
from typing import Any

import httpx
import structlog

log = structlog.get_logger()

DISCORD_API_URL = "https://discord.com/api/v10"


class PublishFailure(Exception):
    """Raised when a Discord request fails."""

    pass


class DiscordGateway:
    """Minimal Discord bot client: read/rename channels, post embeds.

    Public methods never raise; failures are logged and reported as
    False/None. Nothing is retried here.
    """

    def __init__(
        self,
        token: str,
        base_url: str = DISCORD_API_URL,
        timeout: float = 10.0,
        transport: httpx.BaseTransport | None = None,
    ):
        self.client = httpx.Client(
            base_url=base_url,
            timeout=timeout,
            transport=transport,
            headers={"Authorization": f"Bot {token}"},
        )

    def _request(self, method: str, path: str, **kwargs: Any) -> Any:
        try:
            response = self.client.request(method, path, **kwargs)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise PublishFailure(f"Discord API error {e.response.status_code} on {path}") from e
        except httpx.RequestError as e:
            raise PublishFailure(f"Discord request failed on {path}: {e}") from e

        if response.status_code == 204 or not response.content:
            return None
        try:
            return response.json()
        except ValueError as e:
            raise PublishFailure(f"Discord returned invalid JSON for {path}") from e

    def get_channel(self, channel_id: str) -> dict[str, Any] | None:
        """Fetch a channel object, or None if it cannot be accessed."""
        try:
            return self._request("GET", f"/channels/{channel_id}")
        except PublishFailure as e:
            log.error("Cannot access channel", channel_id=channel_id, error=str(e))
            return None

    def get_label(self, channel_id: str) -> str | None:
        """Current channel name, or None if unknown."""
        channel = self.get_channel(channel_id)
        return channel.get("name") if channel else None

    def set_label(self, channel_id: str, name: str) -> bool:
        """Rename a channel.

        Returns:
            True if successful, False otherwise
        """
        try:
            self._request("PATCH", f"/channels/{channel_id}", json={"name": name})
            log.info("Channel name updated", channel_id=channel_id, name=name)
            return True
        except PublishFailure as e:
            log.error("Error updating channel name", channel_id=channel_id, error=str(e))
            return False

    def send_alert(self, channel_id: str, embed: dict[str, Any]) -> bool:
        """Post an embed message to a channel.

        Returns:
            True if successful, False otherwise
        """
        try:
            self._request("POST", f"/channels/{channel_id}/messages", json={"embeds": [embed]})
            log.info("Notification sent", channel_id=channel_id, title=embed.get("title"))
            return True
        except PublishFailure as e:
            log.error("Failed to send notification", channel_id=channel_id, error=str(e))
            return False

    def close(self) -> None:
        self.client.close()


# Discord embed colors
COLOR_RED = 0xFF0000
COLOR_YELLOW = 0xFFFF00
COLOR_GREEN = 0x00FF00
COLOR_DEFAULT = 0xFFFFFF


def build_embed(
    title: str,
    color: int,
    footer_text: str,
    footer_icon: str | None = None,
    description: str | None = None,
    fields: list[dict] | None = None,
    timestamp: datetime | None = None,
) -> dict[str, Any]:
    """Assemble a Discord embed payload.

    Args:
        title: Embed title
        color: Embed color (decimal, e.g., 0xFF0000 for red)
        footer_text: Branding line shown under the embed
        footer_icon: Optional footer icon URL
        description: Optional embed description
        fields: Optional list of {"name": "...", "value": "...", "inline": bool}
        timestamp: Optional time shown on the embed
    """
    embed: dict[str, Any] = {
        "title": title,
        "color": color,
        "footer": {"text": footer_text},
    }
    if footer_icon:
        embed["footer"]["icon_url"] = footer_icon
    if description:
        embed["description"] = description
    if fields:
        embed["fields"] = fields
    if timestamp is not None:
        embed["timestamp"] = timestamp.isoformat()
    return embed
