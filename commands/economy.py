"""
Economy and profile commands: balance, leaderboard, daily reward, transfers and titles.
"""

import asyncio
import logging

import discord
from discord import app_commands
from discord.ext import commands

from services.economy_service import EconomyService
from services.title_service import TitleService
from services.wager_service import WagerService
from utils.formatting import format_leaderboard, format_points
from utils.interaction_safety import safe_defer, safe_followup
from utils.rate_limiter import GLOBAL_RATE_LIMITER

logger = logging.getLogger("wager_bot.commands.economy")

LEADERBOARD_SIZE = 20


class EconomyCommands(commands.Cog):
    def __init__(
        self,
        bot: commands.Bot,
        wager_service: WagerService,
        economy_service: EconomyService,
        title_service: TitleService | None = None,
    ):
        self.bot = bot
        self.wager_service = wager_service
        self.economy_service = economy_service
        self.title_service = title_service

    @app_commands.command(name="balance", description="Show your points")
    async def balance(self, interaction: discord.Interaction):
        if not await safe_defer(interaction, ephemeral=True):
            return
        points = await asyncio.to_thread(
            self.wager_service.get_balance, interaction.user.id, interaction.user.name
        )
        await safe_followup(interaction, content=f"💰 Balance: **{format_points(points)}**", ephemeral=True)

    @app_commands.command(name="betstanding", description="Global points leaderboard")
    async def betstanding(self, interaction: discord.Interaction):
        if not await safe_defer(interaction, ephemeral=True):
            return
        entries = await asyncio.to_thread(self.wager_service.get_leaderboard, LEADERBOARD_SIZE)
        embed = discord.Embed(
            title="Global leaderboard",
            description=format_leaderboard(entries),
            color=0x03A9F4,
        )
        await safe_followup(interaction, embed=embed, ephemeral=True)

    @app_commands.command(name="daily", description="Claim your daily reward")
    async def daily(self, interaction: discord.Interaction):
        if not await safe_defer(interaction, ephemeral=True):
            return
        result = await asyncio.to_thread(
            self.economy_service.claim_daily, interaction.user.id, interaction.user.name
        )
        if not result:
            await safe_followup(interaction, content=f"❌ {result.error}", ephemeral=True)
            return
        reward = result.value
        streak = f" (streak: {reward.streak + 1} days)" if reward.streak else ""
        await safe_followup(
            interaction,
            content=(
                f"🎁 +{format_points(reward.amount)}{streak}. "
                f"Balance: {format_points(reward.new_balance)}"
            ),
            ephemeral=True,
        )

    @app_commands.command(name="send", description="Send points to another user")
    @app_commands.describe(user="Recipient", amount="Points to send")
    async def send(self, interaction: discord.Interaction, user: discord.User, amount: int):
        rl = GLOBAL_RATE_LIMITER.check(
            scope="send",
            guild_id=interaction.guild.id if interaction.guild else 0,
            user_id=interaction.user.id,
        )
        if not rl.allowed:
            await interaction.response.send_message(
                f"⏳ Please wait {rl.retry_after_seconds}s before using `/send` again.",
                ephemeral=True,
            )
            return
        if not await safe_defer(interaction, ephemeral=False):
            return
        result = await asyncio.to_thread(self.economy_service.send_points, interaction.user.id, user.id, amount)
        if not result:
            await safe_followup(interaction, content=f"❌ {result.error}", ephemeral=True)
            return
        await safe_followup(
            interaction,
            content=f"💸 {interaction.user.mention} sent {format_points(amount)} to {user.mention}.",
        )

    @app_commands.command(name="titles", description="List your unlocked titles")
    async def titles(self, interaction: discord.Interaction):
        if self.title_service is None:
            await interaction.response.send_message("Titles are not available.", ephemeral=True)
            return
        if not await safe_defer(interaction, ephemeral=True):
            return
        profile = await asyncio.to_thread(self.title_service.get_profile, interaction.user.id)
        if not profile["titles"]:
            await safe_followup(interaction, content="You have not unlocked any title yet.", ephemeral=True)
            return
        lines = [f"{'⭐' if name == profile['title'] else '•'} {name}" for name in profile["titles"]]
        await safe_followup(interaction, content="\n".join(lines), ephemeral=True)

    @app_commands.command(name="settitle", description="Choose which unlocked title to display")
    @app_commands.describe(title="Title name")
    async def settitle(self, interaction: discord.Interaction, title: str):
        if self.title_service is None:
            await interaction.response.send_message("Titles are not available.", ephemeral=True)
            return
        if not await safe_defer(interaction, ephemeral=True):
            return
        result = await asyncio.to_thread(self.title_service.set_displayed_title, interaction.user.id, title.strip())
        if not result:
            await safe_followup(interaction, content=f"❌ {result.error}", ephemeral=True)
            return
        await safe_followup(interaction, content=f"✅ Now displaying **{result.value}**.", ephemeral=True)

    @settitle.autocomplete("title")
    async def settitle_autocomplete(self, interaction: discord.Interaction, current: str):
        if self.title_service is None:
            return []
        names = await asyncio.to_thread(self.title_service.get_unlocked_titles, interaction.user.id)
        return [
            app_commands.Choice(name=name, value=name)
            for name in names
            if current.lower() in name.lower()
        ][:25]

    @app_commands.command(name="profile", description="Show a wager profile")
    @app_commands.describe(user="User to show (default: you)")
    async def profile(self, interaction: discord.Interaction, user: discord.User | None = None):
        if self.title_service is None:
            await interaction.response.send_message("Profiles are not available.", ephemeral=True)
            return
        if not await safe_defer(interaction, ephemeral=True):
            return
        target = user or interaction.user
        profile = await asyncio.to_thread(self.title_service.get_profile, target.id)
        embed = discord.Embed(title=target.display_name, description=profile["title"] or "", color=0x00BCD4)
        embed.add_field(name="Points", value=format_points(profile["points"]), inline=True)
        embed.add_field(name="Bets", value=str(profile["bets"]), inline=True)
        embed.add_field(name="Parlays", value=str(profile["parlays"]), inline=True)
        embed.add_field(name="Duels", value=f"{profile['duel_wins']}/{profile['duels']} won", inline=True)
        embed.add_field(name="Titles", value=str(len(profile["titles"])), inline=True)
        await safe_followup(interaction, embed=embed, ephemeral=True)


async def setup(bot: commands.Bot):
    wager_service = getattr(bot, "wager_service", None)
    if wager_service is None:
        raise RuntimeError("Wager service not registered on bot.")
    economy_service = getattr(bot, "economy_service", None)
    if economy_service is None:
        raise RuntimeError("Economy service not registered on bot.")
    title_service = getattr(bot, "title_service", None)

    await bot.add_cog(EconomyCommands(bot, wager_service, economy_service, title_service))
