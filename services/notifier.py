"""
Scouter notification service.
Handles formatting and sending the "you're scouting soon" message.
"""
import asyncio
from datetime import datetime
from typing import Optional

import aiohttp
import discord

import config
from logger import get_logger
from models.schedule_block import PopulatedScheduleBlock, Progress
from services.errors import DeliveryError

log = get_logger()


def format_window(start: Progress, end: Progress) -> str:
    """Block window as shown in the embed title."""
    if isinstance(start, datetime):
        start_local = start.astimezone(config.COMP_TZ).strftime("%H:%M")
        end_local = end.astimezone(config.COMP_TZ).strftime("%H:%M")
        return f"{start_local} - {end_local}"
    return f"matches {start} - {end}"


def build_embed(block: PopulatedScheduleBlock, label: str) -> discord.Embed:
    """One field per role in fixed order, filled or not."""
    embed = discord.Embed(
        title=f"Scouters for {format_window(block.start, block.end)}, in {label}",
        color=discord.Color.from_rgb(*config.EMBED_COLOR),
    )
    for role, user in block.assignments():
        if user is not None:
            embed.add_field(name=user.display_name, value=f"You are scouting {role}", inline=False)
        else:
            embed.add_field(name=config.NO_ONE_NAME, value=f"Is scouting {role}", inline=False)
    embed.set_footer(text=config.EMBED_FOOTER)
    return embed


class Notifier:
    """Sends block announcements to the configured channel."""

    def __init__(self, client: discord.Client, channel_id: int):
        self.client = client
        self.channel_id = channel_id
        self._channel: Optional[discord.abc.Messageable] = None

    async def get_channel(self) -> discord.abc.Messageable:
        if self._channel is None:
            channel = self.client.get_channel(self.channel_id)
            if channel is None:
                channel = await self.client.fetch_channel(self.channel_id)
            self._channel = channel
        return self._channel

    async def notify(self, block: PopulatedScheduleBlock, label: str) -> discord.Message:
        """
        Send the mention list plus the assignment embed.

        Raises:
            DeliveryError: If the channel cannot be reached or the send fails
        """
        try:
            channel = await self.get_channel()
            message = await channel.send(content=block.pings(), embed=build_embed(block, label))
        except (discord.HTTPException, aiohttp.ClientError, OSError, asyncio.TimeoutError) as e:
            raise DeliveryError(f"sending block {block.block_id} to {self.channel_id} failed: {e}") from e

        log.info("Announced block %s (%s)", block.block_id, label)
        return message
