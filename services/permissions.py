"""
Admin checks for tournament management commands.
"""

import discord

from config import ADMIN_USER_IDS


def _member_permissions(interaction: discord.Interaction):
    """Guild permissions of the invoking user, from the guild cache or the user object."""
    if interaction.guild:
        get_member = getattr(interaction.guild, "get_member", None)
        if callable(get_member):
            member = get_member(interaction.user.id)
            if member is not None and getattr(member, "guild_permissions", None):
                return member.guild_permissions
    return getattr(interaction.user, "guild_permissions", None)


def has_admin_permission(interaction: discord.Interaction) -> bool:
    """
    True for users in ADMIN_USER_IDS, or with Administrator / Manage Server
    in the current guild.
    """
    if interaction.user.id in ADMIN_USER_IDS:
        return True
    perms = _member_permissions(interaction)
    if perms is None:
        return False
    return bool(getattr(perms, "administrator", False) or getattr(perms, "manage_guild", False))


async def require_admin(interaction: discord.Interaction) -> bool:
    """Reply with an ephemeral denial and return False when the user is not an admin."""
    if has_admin_permission(interaction):
        return True
    await interaction.response.send_message("❌ Admin permission required.", ephemeral=True)
    return False
