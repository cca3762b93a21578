"""
Wager commands: odds, bets, duels and parlays, plus the settlement poller.
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING

import discord
from discord import app_commands
from discord.ext import commands, tasks

from config import SESSION_TTL_SECONDS, SETTLEMENT_POLL_SECONDS
from domain.models.wager import LegSelection, WagerType
from services import error_codes
from utils.formatting import (
    STATUS_EMOJIS,
    format_leg,
    format_match,
    format_odds,
    format_points,
    format_score_table,
    format_selection,
)
from utils.interaction_safety import safe_defer, safe_followup
from utils.rate_limiter import GLOBAL_RATE_LIMITER
from utils.wager_sessions import WagerSessionStore

if TYPE_CHECKING:
    from services.notification_service import NotificationService
    from services.odds_service import OddsService
    from services.settlement_service import SettlementService
    from services.wager_service import WagerService

logger = logging.getLogger("wager_bot.commands.wagers")

BET_FLOW = "bet"
PARLAY_FLOW = "parlay"

BET_TYPE_CHOICES = [
    app_commands.Choice(name="Team", value=WagerType.TEAM.value),
    app_commands.Choice(name="Exact score", value=WagerType.SCORE.value),
]


class WagerCommands(commands.Cog):
    """Slash commands for placing and tracking wagers."""

    def __init__(
        self,
        bot: commands.Bot,
        wager_service: WagerService,
        odds_service: OddsService,
        settlement_service: SettlementService | None = None,
        notification_service: NotificationService | None = None,
    ):
        self.bot = bot
        self.wager_service = wager_service
        self.odds_service = odds_service
        self.settlement_service = settlement_service
        self.notification_service = notification_service
        self.sessions = WagerSessionStore(ttl_seconds=SESSION_TTL_SECONDS)
        if settlement_service is not None:
            self.settle_finished.start()

    def cog_unload(self):
        self.settle_finished.cancel()

    async def _rate_limited(self, interaction: discord.Interaction, scope: str) -> bool:
        rl = GLOBAL_RATE_LIMITER.check(
            scope=scope,
            guild_id=interaction.guild.id if interaction.guild else 0,
            user_id=interaction.user.id,
        )
        if rl.allowed:
            return False
        await interaction.response.send_message(
            f"⏳ Please wait {rl.retry_after_seconds}s before using `/{scope}` again.",
            ephemeral=True,
        )
        return True

    # =========================================================================
    # Quotes
    # =========================================================================

    @app_commands.command(name="upcoming", description="List upcoming matches open for betting")
    async def upcoming(self, interaction: discord.Interaction):
        if not await safe_defer(interaction, ephemeral=True):
            return
        matches = await asyncio.to_thread(self.odds_service.match_repo.get_upcoming, int(discord.utils.utcnow().timestamp()))
        if not matches:
            await safe_followup(interaction, content="No upcoming matches.", ephemeral=True)
            return
        await safe_followup(interaction, content="\n".join(format_match(m) for m in matches), ephemeral=True)

    @app_commands.command(name="odds", description="Show the current odds for a match")
    @app_commands.describe(match_id="Match number")
    async def odds(self, interaction: discord.Interaction, match_id: int):
        if not await safe_defer(interaction, ephemeral=True):
            return
        team_quote = await asyncio.to_thread(self.odds_service.quote_team, match_id)
        if team_quote is None:
            await safe_followup(interaction, content=f"❌ Match {match_id} not found.", ephemeral=True)
            return
        score_quote = await asyncio.to_thread(self.odds_service.quote_scores, match_id)

        embed = discord.Embed(title=f"{team_quote.home_team} vs {team_quote.opponent}", color=0x00BCD4)
        embed.add_field(
            name="Winner",
            value=(
                f"{team_quote.home_team}: **{format_odds(team_quote.live.home)}**\n"
                f"{team_quote.opponent}: **{format_odds(team_quote.live.opponent)}**"
            ),
            inline=True,
        )
        embed.add_field(
            name="Pools",
            value=f"{format_points(team_quote.pool_home)} / {format_points(team_quote.pool_opponent)}",
            inline=True,
        )
        if score_quote is not None:
            embed.add_field(
                name=f"Exact score (Bo{score_quote.number_of_games})",
                value=format_score_table(score_quote.odds),
                inline=False,
            )
        await safe_followup(interaction, embed=embed, ephemeral=True)

    # =========================================================================
    # Single bets
    # =========================================================================

    @app_commands.command(name="bet", description="Get a quote for a bet; confirm with /confirmbet")
    @app_commands.describe(
        match_id="Match number",
        bet_type="Bet on the winner or on the exact score",
        selection="Team name, or a home-first score such as 2-1",
        amount="Stake in points",
    )
    @app_commands.choices(bet_type=BET_TYPE_CHOICES)
    async def bet(
        self,
        interaction: discord.Interaction,
        match_id: int,
        bet_type: app_commands.Choice[str],
        selection: str,
        amount: int,
    ):
        if await self._rate_limited(interaction, "bet"):
            return
        if not await safe_defer(interaction, ephemeral=True):
            return

        kind = WagerType.parse(bet_type.value)
        priced = await asyncio.to_thread(
            self.wager_service.price_legs, [LegSelection(match_id, kind, selection.strip())]
        )
        if not priced:
            await safe_followup(interaction, content=f"❌ {priced.error}", ephemeral=True)
            return
        leg = priced.value[0]
        self.sessions.start(
            interaction.user.id,
            BET_FLOW,
            match_id=match_id,
            bet_type=kind,
            selection=leg.selection,
            amount=amount,
            odds=leg.odds,
        )
        await safe_followup(
            interaction,
            content=(
                f"Quote: {format_points(amount)} on {format_selection(kind, leg.selection)} "
                f"@ **{format_odds(leg.odds)}** (match #{match_id}).\n"
                f"Use `/confirmbet` within {SESSION_TTL_SECONDS}s to place it."
            ),
            ephemeral=True,
        )

    @app_commands.command(name="confirmbet", description="Place the bet you were last quoted")
    async def confirmbet(self, interaction: discord.Interaction):
        if not await safe_defer(interaction, ephemeral=True):
            return
        session = self.sessions.pop(interaction.user.id, BET_FLOW)
        if session is None:
            await safe_followup(interaction, content="❌ No pending quote. Use `/bet` first.", ephemeral=True)
            return
        data = session.data
        result = await asyncio.to_thread(
            self.wager_service.place_bet,
            interaction.guild.id if interaction.guild else None,
            interaction.user.id,
            data["match_id"],
            data["bet_type"],
            data["selection"],
            data["amount"],
            data["odds"],
        )
        if result.error_code == error_codes.ODDS_CHANGED:
            self.sessions.start(interaction.user.id, BET_FLOW, **{**data, "odds": result.value.current})
            await safe_followup(
                interaction,
                content=(
                    f"⚠️ Odds moved from {format_odds(result.value.quoted)} to "
                    f"**{format_odds(result.value.current)}**. Run `/confirmbet` again to accept."
                ),
                ephemeral=True,
            )
            return
        if not result:
            await safe_followup(interaction, content=f"❌ {result.error}", ephemeral=True)
            return
        receipt = result.value
        await safe_followup(
            interaction,
            content=(
                f"✅ Bet #{receipt.wager_id} placed @ {format_odds(receipt.odds)}. "
                f"Potential payout {format_points(receipt.potential_payout)}. "
                f"Balance: {format_points(receipt.new_balance)}"
            ),
            ephemeral=True,
        )

    # =========================================================================
    # Duels
    # =========================================================================

    @app_commands.command(name="duel", description="Challenge another user on a match")
    @app_commands.describe(opponent="User to challenge", match_id="Match number", team="Your team", amount="Stake each")
    async def duel(
        self,
        interaction: discord.Interaction,
        opponent: discord.User,
        match_id: int,
        team: str,
        amount: int,
    ):
        if await self._rate_limited(interaction, "duel"):
            return
        if not await safe_defer(interaction, ephemeral=False):
            return
        result = await asyncio.to_thread(
            self.wager_service.create_duel,
            interaction.guild.id if interaction.guild else None,
            interaction.user.id,
            opponent.id,
            match_id,
            team.strip(),
            amount,
        )
        if not result:
            await safe_followup(interaction, content=f"❌ {result.error}", ephemeral=True)
            return
        duel = result.value
        await safe_followup(
            interaction,
            content=(
                f"⚔️ {interaction.user.mention} challenges {opponent.mention}: "
                f"**{duel['challenger_team']}** vs **{duel['opponent_team']}** for {format_points(amount)} each.\n"
                f"Reply with `/duelrespond duel_id:{duel['duel_id']}`."
            ),
        )

    @app_commands.command(name="duelrespond", description="Accept, reject or cancel a pending duel")
    @app_commands.describe(duel_id="Duel number", action="What to do")
    @app_commands.choices(
        action=[
            app_commands.Choice(name="Accept", value="accept"),
            app_commands.Choice(name="Reject", value="reject"),
            app_commands.Choice(name="Cancel (challenger)", value="cancel"),
        ]
    )
    async def duelrespond(
        self,
        interaction: discord.Interaction,
        duel_id: int,
        action: app_commands.Choice[str] = None,
    ):
        if not await safe_defer(interaction, ephemeral=True):
            return
        verb = action.value if action else "accept"
        handler = {
            "accept": self.wager_service.accept_duel,
            "reject": self.wager_service.reject_duel,
            "cancel": self.wager_service.cancel_duel,
        }[verb]
        result = await asyncio.to_thread(handler, duel_id, interaction.user.id)
        if not result:
            await safe_followup(interaction, content=f"❌ {result.error}", ephemeral=True)
            return
        await safe_followup(interaction, content=f"✅ Duel #{duel_id} {result.value['status'].lower()}.", ephemeral=True)

    # =========================================================================
    # Parlays
    # =========================================================================

    @app_commands.command(name="parlayadd", description="Add a leg to your parlay slip")
    @app_commands.describe(match_id="Match number", bet_type="Leg type", selection="Team name or score")
    @app_commands.choices(bet_type=BET_TYPE_CHOICES)
    async def parlayadd(
        self,
        interaction: discord.Interaction,
        match_id: int,
        bet_type: app_commands.Choice[str],
        selection: str,
    ):
        if not await safe_defer(interaction, ephemeral=True):
            return
        session = self.sessions.get_or_start(interaction.user.id, PARLAY_FLOW, legs=[])
        legs: list[LegSelection] = [leg for leg in session.data["legs"] if leg.match_id != match_id]
        kind = WagerType.parse(bet_type.value)
        priced = await asyncio.to_thread(
            self.wager_service.price_legs, [LegSelection(match_id, kind, selection.strip())]
        )
        if not priced:
            await safe_followup(interaction, content=f"❌ {priced.error}", ephemeral=True)
            return
        leg = priced.value[0]
        legs.append(LegSelection(leg.match_id, leg.bet_type, leg.selection, quoted_odds=leg.odds))
        session.data["legs"] = legs
        self.sessions.touch(session)
        await safe_followup(interaction, content=self._describe_slip(legs), ephemeral=True)

    @app_commands.command(name="parlayslip", description="Show your parlay slip")
    async def parlayslip(self, interaction: discord.Interaction):
        session = self.sessions.get(interaction.user.id, PARLAY_FLOW)
        legs = session.data["legs"] if session else []
        await interaction.response.send_message(self._describe_slip(legs), ephemeral=True)

    @app_commands.command(name="parlayclear", description="Discard your parlay slip")
    async def parlayclear(self, interaction: discord.Interaction):
        self.sessions.pop(interaction.user.id, PARLAY_FLOW)
        await interaction.response.send_message("🗑️ Parlay slip cleared.", ephemeral=True)

    @app_commands.command(name="parlayconfirm", description="Place your parlay slip")
    @app_commands.describe(amount="Stake in points")
    async def parlayconfirm(self, interaction: discord.Interaction, amount: int):
        if await self._rate_limited(interaction, "parlayconfirm"):
            return
        if not await safe_defer(interaction, ephemeral=True):
            return
        session = self.sessions.get(interaction.user.id, PARLAY_FLOW)
        if session is None or not session.data["legs"]:
            await safe_followup(interaction, content="❌ Your slip is empty. Use `/parlayadd`.", ephemeral=True)
            return
        legs = session.data["legs"]
        result = await asyncio.to_thread(
            self.wager_service.place_parlay,
            interaction.guild.id if interaction.guild else None,
            interaction.user.id,
            amount,
            legs,
        )
        if result.error_code == error_codes.ODDS_CHANGED:
            requoted = await asyncio.to_thread(self.wager_service.requote_legs, legs)
            if not requoted:
                await safe_followup(interaction, content=f"❌ {requoted.error}", ephemeral=True)
                return
            session.data["legs"] = requoted.value
            self.sessions.touch(session)
            await safe_followup(
                interaction,
                content=(
                    "⚠️ Odds changed; every leg was re-priced. Confirm again to accept.\n"
                    f"{self._describe_slip(requoted.value)}"
                ),
                ephemeral=True,
            )
            return
        if not result:
            await safe_followup(interaction, content=f"❌ {result.error}", ephemeral=True)
            return
        self.sessions.pop(interaction.user.id, PARLAY_FLOW)
        receipt = result.value
        await safe_followup(
            interaction,
            content=(
                f"✅ Parlay #{receipt.wager_id} placed: {len(receipt.legs)} legs @ {format_odds(receipt.odds)}. "
                f"Potential payout {format_points(receipt.potential_payout)}. "
                f"Balance: {format_points(receipt.new_balance)}"
            ),
            ephemeral=True,
        )

    @staticmethod
    def _describe_slip(legs: list[LegSelection]) -> str:
        if not legs:
            return "Your parlay slip is empty."
        lines = [
            f"#{leg.match_id} {format_selection(leg.bet_type, leg.selection)} @ {format_odds(leg.quoted_odds or 0)}"
            for leg in legs
        ]
        total = 1.0
        for leg in legs:
            total *= leg.quoted_odds or 1.0
        lines.append(f"Combined: **{format_odds(total)}** ({len(legs)} legs)")
        return "\n".join(lines)

    # =========================================================================
    # Overview
    # =========================================================================

    @app_commands.command(name="mybets", description="Show your open wagers")
    async def mybets(self, interaction: discord.Interaction):
        if await self._rate_limited(interaction, "mybets"):
            return
        if not await safe_defer(interaction, ephemeral=True):
            return
        wagers = await asyncio.to_thread(self.wager_service.get_active_wagers, interaction.user.id)
        lines = []
        for bet in wagers["bets"]:
            lines.append(
                f"{STATUS_EMOJIS['ACTIVE']} Bet #{bet['bet_id']}: {format_points(bet['amount'])} on "
                f"{format_selection(bet['bet_type'], bet['selection'])} @ {format_odds(bet['odds'])}"
            )
        for duel in wagers["duels"]:
            mine = duel["challenger_team"] if duel["challenger_id"] == interaction.user.id else duel["opponent_team"]
            lines.append(
                f"{STATUS_EMOJIS[duel['status']]} Duel #{duel['duel_id']}: {mine} for {format_points(duel['amount'])}"
            )
        for parlay in wagers["parlays"]:
            legs = ", ".join(format_leg(leg) for leg in parlay["legs"])
            lines.append(
                f"{STATUS_EMOJIS['ACTIVE']} Parlay #{parlay['parlay_id']}: {format_points(parlay['amount'])} "
                f"@ {format_odds(parlay['total_odds'])} [{legs}]"
            )
        await safe_followup(interaction, content="\n".join(lines) or "You have no open wagers.", ephemeral=True)

    # =========================================================================
    # Settlement poller
    # =========================================================================

    @tasks.loop(seconds=SETTLEMENT_POLL_SECONDS)
    async def settle_finished(self):
        """Settle finished matches, deliver queued DMs and drop stale sessions."""
        try:
            reports = await asyncio.to_thread(self.settlement_service.settle_finished_matches)
            for report in reports:
                logger.info(f"Settlement poll: match {report.match_id} settled {report.settled_count} wagers")
        except Exception as e:
            logger.error(f"Settlement poll failed: {e}", exc_info=True)
        await self._deliver_notices()
        swept = self.sessions.sweep()
        if swept:
            logger.debug(f"Dropped {swept} expired wager sessions")

    @settle_finished.before_loop
    async def before_settle(self):
        await self.bot.wait_until_ready()
        logger.info(f"Settlement poller running every {SETTLEMENT_POLL_SECONDS}s")

    async def _deliver_notices(self) -> None:
        if self.notification_service is None:
            return
        for notice in self.notification_service.drain():
            try:
                user = self.bot.get_user(notice.discord_id) or await self.bot.fetch_user(notice.discord_id)
                await user.send(notice.message)
            except discord.HTTPException as e:
                logger.warning(f"Could not DM {notice.discord_id}: {e}")


async def setup(bot: commands.Bot):
    wager_service = getattr(bot, "wager_service", None)
    if wager_service is None:
        raise RuntimeError("Wager service not registered on bot.")
    odds_service = getattr(bot, "odds_service", None)
    if odds_service is None:
        raise RuntimeError("Odds service not registered on bot.")
    settlement_service = getattr(bot, "settlement_service", None)
    notification_service = getattr(bot, "notification_service", None)
    # settlement_service and notification_service are optional

    cog = WagerCommands(bot, wager_service, odds_service, settlement_service, notification_service)
    await bot.add_cog(cog)
