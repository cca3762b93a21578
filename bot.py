"""
Main Discord bot entry for the esports wager bot.
"""

import logging

# Configure logging BEFORE importing discord to prevent duplicate handlers
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
    force=True,  # Override any existing handlers (e.g., from discord.py)
)
logger = logging.getLogger("wager_bot")


# Suppress PyNaCl warning since voice support isn't needed
class _PyNaClFilter(logging.Filter):
    """Filter out the PyNaCl warning from discord.py."""

    def filter(self, record):
        return "PyNaCl is not installed" not in record.getMessage()


logging.getLogger("discord.client").addFilter(_PyNaClFilter())

# Now import discord after logging is configured
import discord
from discord.app_commands.errors import TransformerError
from discord.ext import commands

# discord.py adds its own handler to the 'discord' logger on import
_discord_logger = logging.getLogger("discord")
_discord_logger.handlers.clear()
_discord_logger.setLevel(logging.INFO)

import config
from infrastructure.service_container import ServiceConfig, ServiceContainer

# Bot setup

intents = discord.Intents.default()
intents.members = True

bot = commands.Bot(command_prefix="!", intents=intents)

# Lazy-initialized service container
_container: ServiceContainer | None = None


def build_service_config() -> ServiceConfig:
    """Map environment configuration onto the container's settings."""
    return ServiceConfig(
        db_path=config.DB_PATH,
        starting_balance=config.STARTING_BALANCE,
        min_stake=config.MIN_STAKE,
        odds_tolerance=config.ODDS_TOLERANCE,
        base_history_months=config.BASE_ODDS_HISTORY_MONTHS,
        base_history_limit=config.BASE_ODDS_HISTORY_LIMIT,
        score_history_months=config.SCORE_ODDS_HISTORY_MONTHS,
        score_history_limit=config.SCORE_ODDS_HISTORY_LIMIT,
        market_pressure_scale=config.MARKET_PRESSURE_SCALE,
        daily_base_reward=config.DAILY_BASE_REWARD,
        daily_streak_bonus=config.DAILY_STREAK_BONUS,
        daily_max_streak=config.DAILY_MAX_STREAK,
        tournament_default_stake=config.TOURNAMENT_DEFAULT_STAKE,
        tournament_placement_min_participants=config.TOURNAMENT_PLACEMENT_MIN_PARTICIPANTS,
        notify_title_unlocks=config.NOTIFY_TITLE_UNLOCKS,
        notify_settlements=config.NOTIFY_SETTLEMENTS,
    )


def _init_services():
    """Initialize all services via ServiceContainer (lazy, idempotent)."""
    global _container
    if _container is not None:
        return

    _container = ServiceContainer(build_service_config())
    _container.initialize_sync()
    _container.expose_to_bot(bot)


EXTENSIONS = [
    "commands.wagers",
    "commands.economy",
    "commands.tournament",
]


async def _load_extensions():
    """Load command extensions if not already loaded."""
    # Ensure services are initialized before loading extensions
    _init_services()

    loaded_extensions = []
    skipped_extensions = []
    failed_extensions = []

    for ext in EXTENSIONS:
        if ext in bot.extensions:
            skipped_extensions.append(ext)
            logger.debug(f"Extension {ext} already loaded, skipping")
            continue
        try:
            await bot.load_extension(ext)
            loaded_extensions.append(ext)
            logger.info(f"Loaded extension: {ext}")
        except Exception as exc:
            failed_extensions.append(ext)
            logger.error(f"Failed to load extension {ext}: {exc}", exc_info=True)

    logger.info(
        f"Extension loading complete: {len(loaded_extensions)} loaded, "
        f"{len(skipped_extensions)} skipped, {len(failed_extensions)} failed"
    )


@bot.event
async def setup_hook():
    """Load command cogs."""
    _init_services()
    await _load_extensions()


@bot.event
async def on_ready():
    """Called when bot is ready."""
    logger.info(f"{bot.user} connected. Guilds: {len(bot.guilds)}")
    logger.info(f"Loaded cogs: {list(bot.cogs.keys())}")

    try:
        await bot.tree.sync()
        logger.info("Slash commands synced globally.")
    except Exception as exc:
        logger.error(f"Failed to sync commands: {exc}", exc_info=True)


@bot.tree.error
async def on_app_command_error(interaction: discord.Interaction, error: discord.app_commands.AppCommandError):
    """Global error handler for app commands - prevents infinite 'thinking...' state."""
    logger.error(
        f"App command error in '{interaction.command.name if interaction.command else 'unknown'}': {error}",
        exc_info=error,
    )

    # Typing a username instead of selecting from Discord's picker
    if isinstance(error, TransformerError):
        value = getattr(error, "value", None)
        error_msg = (
            f"Could not find user `{value}`. "
            "Please use @mention or select from Discord's user picker when typing."
        )
    else:
        error_msg = "An error occurred while processing your command. Please try again."

    try:
        if interaction.response.is_done():
            await interaction.followup.send(content=f"❌ {error_msg}", ephemeral=True)
        else:
            await interaction.response.send_message(content=f"❌ {error_msg}", ephemeral=True)
    except discord.HTTPException as followup_error:
        logger.error(f"Failed to send error message to user: {followup_error}")


def main():
    """Run the bot."""
    token = config.DISCORD_BOT_TOKEN
    if not token:
        print("ERROR: DISCORD_BOT_TOKEN not found!")
        return

    try:
        # We've already configured logging above with our preferred format
        bot.run(token, log_handler=None)
    except KeyboardInterrupt:
        logger.info("Bot stopped by user (Ctrl+C)")
        print("\nBot stopped. Goodbye!")
    except Exception as exc:
        logger.error(f"Bot crashed: {exc}", exc_info=True)
        print(f"\nBot crashed: {exc}")


if __name__ == "__main__":
    main()
