"""Tests for the admin CLI."""

from unittest.mock import patch

import pytest

from tradedesk import cli
from tradedesk.services.auth import verify_password


@pytest.fixture
def cli_engine(engine):
    with patch("tradedesk.cli.engine", engine), \
            patch("tradedesk.cli.create_db_and_tables"), \
            patch("tradedesk.cli.setup_logging"):
        yield engine


# ---------------------------------------------------------------------------
# 1. add_user
# ---------------------------------------------------------------------------

def test_add_user_with_totp(session):
    user, uri = cli.add_user(session, " admin ", "pw")
    assert user.username == "admin"
    assert verify_password("pw", user.hashed_password)
    assert user.totp_secret
    assert uri.startswith("otpauth://totp/")


def test_add_user_without_totp(session):
    user, uri = cli.add_user(session, "admin", "pw", with_totp=False)
    assert user.totp_secret is None
    assert uri is None


def test_add_user_rejects_duplicates(session, user):
    with pytest.raises(cli.CommandError, match="already exists"):
        cli.add_user(session, "trader", "pw")


@pytest.mark.parametrize("username,password", [("  ", "pw"), ("admin", "")])
def test_add_user_rejects_blanks(session, username, password):
    with pytest.raises(cli.CommandError):
        cli.add_user(session, username, password)


# ---------------------------------------------------------------------------
# 2. Commands
# ---------------------------------------------------------------------------

def test_create_user_password_mismatch(cli_engine, capsys):
    with patch("builtins.input", return_value="admin"), \
            patch("tradedesk.cli.getpass.getpass", side_effect=["one", "two"]), \
            pytest.raises(SystemExit) as exc_info:
        cli.main(["create-user"])
    assert exc_info.value.code == 1
    assert "Passwords do not match." in capsys.readouterr().out


def test_create_user_no_totp(cli_engine, capsys):
    with patch("builtins.input", return_value="admin"), \
            patch("tradedesk.cli.getpass.getpass", side_effect=["pw", "pw"]):
        cli.main(["create-user", "--no-totp"])
    out = capsys.readouterr().out
    assert "User 'admin' created successfully." in out
    assert "TOTP" not in out


def test_list_accounts(cli_engine, account, capsys):
    cli.main(["list-accounts"])
    out = capsys.readouterr().out
    assert "Main" in out
    assert "demo" in out
    assert "synced=never" in out


def test_sync_account(cli_engine, account, fake_gateway, capsys):
    gw = fake_gateway({
        "test_connection": {"success": True, "message": "ok"},
        "get_account_info": {"success": True, "balance": 12.5, "equity": 12.5},
        "verify_trading_permissions": {"success": True, "hasAllPermissions": True, "permissions": ["SPOT"]},
    })
    with patch("tradedesk.services.gateway.call_gateway", gw):
        cli.main(["sync-account", str(account.id)])
    out = capsys.readouterr().out
    assert "Account synced successfully" in out
    assert "balance=12.50" in out


@pytest.mark.parametrize("argv", [[], ["sync-account"], ["sync-account", "abc"], ["drop-tables"]])
def test_bad_invocations_exit_1(cli_engine, argv):
    with pytest.raises(SystemExit) as exc_info:
        cli.main(argv)
    assert exc_info.value.code == 1
