"""
Helpers for responding to Discord interactions that may already be acknowledged
or expired.
"""

import logging

import discord

logger = logging.getLogger("wager_bot.utils.interaction_safety")


async def safe_defer(interaction: discord.Interaction, ephemeral: bool = False) -> bool:
    """
    Defer an interaction, tolerating one that was already answered.

    Returns:
        False if the interaction can no longer be answered
    """
    if interaction.response.is_done():
        return True
    try:
        await interaction.response.defer(ephemeral=ephemeral)
        return True
    except discord.NotFound:
        logger.warning(f"Interaction {interaction.id} expired before defer")
        return False
    except discord.HTTPException as exc:
        logger.warning(f"Could not defer interaction {interaction.id}: {exc}")
        return False


async def safe_followup(interaction: discord.Interaction, **kwargs):
    """
    Send a followup message to a deferred interaction.

    Returns:
        The sent message, or None if sending failed
    """
    try:
        return await interaction.followup.send(**kwargs)
    except discord.HTTPException as exc:
        logger.warning(f"Could not send followup for interaction {interaction.id}: {exc}")
        return None
