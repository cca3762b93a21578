"""
Tournament ladder commands.
"""

import asyncio
import logging

import discord
from discord import app_commands
from discord.ext import commands

from domain.models.tournament import TournamentStatus
from services.permissions import require_admin
from services.tournament_service import TournamentService
from utils.formatting import format_standings, format_timestamp
from utils.interaction_safety import safe_defer, safe_followup

logger = logging.getLogger("wager_bot.commands.tournament")


class TournamentCommands(commands.Cog):
    def __init__(self, bot: commands.Bot, tournament_service: TournamentService):
        self.bot = bot
        self.tournament_service = tournament_service

    @app_commands.command(name="tournament", description="Show the current tournament and standings")
    async def tournament(self, interaction: discord.Interaction):
        if not await safe_defer(interaction, ephemeral=True):
            return
        guild_id = interaction.guild.id if interaction.guild else None
        current = await asyncio.to_thread(self.tournament_service.get_current, guild_id)
        if current is None:
            await safe_followup(interaction, content="No tournament found.", ephemeral=True)
            return
        standings = await asyncio.to_thread(self.tournament_service.standings, current.tournament_id, 10)
        status = "REGISTRATION" if current.status == TournamentStatus.REGISTRATION else current.status
        embed = discord.Embed(title=f"Tournament: {current.name}", color=0x00BCD4)
        embed.add_field(name="Status", value=status, inline=True)
        embed.add_field(name="Stake", value=str(current.virtual_stake), inline=True)
        if current.status == TournamentStatus.REGISTRATION:
            embed.add_field(
                name="Registration closes", value=format_timestamp(current.registration_ends_at), inline=True
            )
        embed.add_field(name="Ends", value=format_timestamp(current.ends_at), inline=True)
        embed.add_field(name="Standings", value=format_standings(standings), inline=False)
        await safe_followup(interaction, embed=embed, ephemeral=True)

    @app_commands.command(name="tournamentjoin", description="Register for the open tournament")
    async def tournamentjoin(self, interaction: discord.Interaction):
        if not await safe_defer(interaction, ephemeral=True):
            return
        guild_id = interaction.guild.id if interaction.guild else None
        current = await asyncio.to_thread(self.tournament_service.get_current, guild_id)
        if current is None:
            await safe_followup(interaction, content="❌ No tournament found.", ephemeral=True)
            return
        result = await asyncio.to_thread(self.tournament_service.join, current.tournament_id, interaction.user.id)
        if not result:
            await safe_followup(interaction, content=f"❌ {result.error}", ephemeral=True)
            return
        message = "✅ You are registered." if result.value else "You were already registered."
        await safe_followup(interaction, content=message, ephemeral=True)

    @app_commands.command(name="tournamentcreate", description="Create a tournament (Admin only)")
    @app_commands.describe(
        name="Tournament name",
        registration_minutes="Minutes until registration closes",
        duration_days="Days until the tournament ends",
        stake="Virtual stake per wager (default 100)",
    )
    async def tournamentcreate(
        self,
        interaction: discord.Interaction,
        name: str,
        registration_minutes: int,
        duration_days: int,
        stake: int | None = None,
    ):
        if not await require_admin(interaction):
            return
        if not await safe_defer(interaction, ephemeral=False):
            return
        result = await asyncio.to_thread(
            self.tournament_service.create_tournament,
            interaction.guild.id if interaction.guild else None,
            name,
            interaction.user.id,
            registration_minutes,
            duration_days,
            stake,
        )
        if not result:
            await safe_followup(interaction, content=f"❌ {result.error}", ephemeral=True)
            return
        t = result.value
        await safe_followup(
            interaction,
            content=(
                f"🏆 Tournament **{t.name}** is open! Registration closes "
                f"{format_timestamp(t.registration_ends_at)}. Join with `/tournamentjoin`."
            ),
        )

    @app_commands.command(name="tournamentend", description="Set the tournament end date (Admin only)")
    @app_commands.describe(days="Days from now")
    async def tournamentend(self, interaction: discord.Interaction, days: int):
        if not await require_admin(interaction):
            return
        if not await safe_defer(interaction, ephemeral=True):
            return
        result = await asyncio.to_thread(
            self.tournament_service.set_end, interaction.guild.id if interaction.guild else None, days
        )
        if not result:
            await safe_followup(interaction, content=f"❌ {result.error}", ephemeral=True)
            return
        await safe_followup(interaction, content=f"✅ Ends {format_timestamp(result.value.ends_at)}.", ephemeral=True)

    @app_commands.command(name="tournamentstop", description="Finish the tournament now (Admin only)")
    async def tournamentstop(self, interaction: discord.Interaction):
        if not await require_admin(interaction):
            return
        if not await safe_defer(interaction, ephemeral=False):
            return
        result = await asyncio.to_thread(
            self.tournament_service.stop, interaction.guild.id if interaction.guild else None
        )
        if not result:
            await safe_followup(interaction, content=f"❌ {result.error}", ephemeral=True)
            return
        await safe_followup(
            interaction,
            content=f"🏁 Tournament finished!\n{format_standings(result.value[:10])}",
        )


async def setup(bot: commands.Bot):
    tournament_service = getattr(bot, "tournament_service", None)
    if tournament_service is None:
        raise RuntimeError("Tournament service not registered on bot.")
    await bot.add_cog(TournamentCommands(bot, tournament_service))
