"""
Tests for permission helpers.
"""

from types import SimpleNamespace

import pytest

from services.permissions import has_admin_permission, require_admin


class _Response:
    def __init__(self):
        self.sent = None

    async def send_message(self, content, ephemeral=False):
        self.sent = (content, ephemeral)


def test_has_admin_permission_allowlist(monkeypatch):
    monkeypatch.setattr("services.permissions.ADMIN_USER_IDS", [202])
    interaction = SimpleNamespace(user=SimpleNamespace(id=202), guild=None)

    assert has_admin_permission(interaction) is True


def test_has_admin_permission_guild_member_permissions(monkeypatch):
    monkeypatch.setattr("services.permissions.ADMIN_USER_IDS", [])

    perms = SimpleNamespace(administrator=True, manage_guild=False)
    member = SimpleNamespace(guild_permissions=perms)
    guild = SimpleNamespace(get_member=lambda _uid: member)
    interaction = SimpleNamespace(user=SimpleNamespace(id=303), guild=guild)

    assert has_admin_permission(interaction) is True


def test_has_admin_permission_user_permissions_fallback(monkeypatch):
    monkeypatch.setattr("services.permissions.ADMIN_USER_IDS", [])

    perms = SimpleNamespace(administrator=False, manage_guild=True)
    guild = SimpleNamespace(get_member=lambda _uid: None)
    interaction = SimpleNamespace(user=SimpleNamespace(id=404, guild_permissions=perms), guild=guild)

    assert has_admin_permission(interaction) is True


def test_has_admin_permission_false(monkeypatch):
    monkeypatch.setattr("services.permissions.ADMIN_USER_IDS", [])
    interaction = SimpleNamespace(user=SimpleNamespace(id=505), guild=None)

    assert has_admin_permission(interaction) is False


@pytest.mark.asyncio
async def test_require_admin_denies_with_ephemeral_reply(monkeypatch):
    monkeypatch.setattr("services.permissions.ADMIN_USER_IDS", [])
    interaction = SimpleNamespace(user=SimpleNamespace(id=505), guild=None, response=_Response())

    assert await require_admin(interaction) is False
    assert interaction.response.sent == ("❌ Admin permission required.", True)


@pytest.mark.asyncio
async def test_require_admin_allows_silently(monkeypatch):
    monkeypatch.setattr("services.permissions.ADMIN_USER_IDS", [1])
    interaction = SimpleNamespace(user=SimpleNamespace(id=1), guild=None, response=_Response())

    assert await require_admin(interaction) is True
    assert interaction.response.sent is None
