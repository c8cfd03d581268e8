"""Admin commands for the trade desk.

Usage:
    python -m tradedesk.cli create-user [--no-totp]
    python -m tradedesk.cli list-accounts
    python -m tradedesk.cli sync-account <account_id>
"""

import asyncio
import getpass
import sys

from sqlmodel import Session, select

from tradedesk.database import create_db_and_tables, engine
from tradedesk.models.account import TradingAccount
from tradedesk.models.user import User
from tradedesk.services.account_sync import sync_account
from tradedesk.services.auth import hash_password, new_totp_secret
from tradedesk.services.gateway import GatewayConfig
from tradedesk.utils.logging import setup_logging


class CommandError(Exception):
    """Printed to the operator; exits with status 1."""


def add_user(session: Session, username: str, password: str, with_totp: bool = True) -> tuple[User, str | None]:
    """Persist a dashboard user. Returns the user and, with TOTP, its provisioning URI."""
    username = username.strip()
    if not username:
        raise CommandError("Username cannot be empty.")
    if not password:
        raise CommandError("Password cannot be empty.")
    if session.exec(select(User).where(User.username == username)).first():
        raise CommandError(f"User '{username}' already exists.")

    totp_secret, totp_uri = new_totp_secret(username) if with_totp else (None, None)
    user = User(username=username, hashed_password=hash_password(password), totp_secret=totp_secret)
    session.add(user)
    session.commit()
    session.refresh(user)
    return user, totp_uri


def describe_account(account: TradingAccount) -> str:
    balance = "-" if account.balance is None else f"{account.balance:.2f}"
    synced = account.last_sync_time.isoformat(timespec="seconds") if account.last_sync_time else "never"
    verified = "verified" if account.is_api_verified else "unverified"
    return (
        f"{account.id:>4}  {account.name:<20} {account.platform:<8} {account.trading_mode:<5} "
        f"{verified:<10} balance={balance} synced={synced}"
    )


def _print_qr(uri: str):
    try:
        import qrcode
    except ImportError:
        print("(Install tradedesk[cli] to display the QR code in the terminal)")
        return
    qr = qrcode.QRCode(box_size=1, border=1)
    qr.add_data(uri)
    qr.make(fit=True)
    qr.print_ascii(invert=True)


def create_user(with_totp: bool = True):
    username = input("Username: ")
    password = getpass.getpass("Password: ")
    if password != getpass.getpass("Confirm password: "):
        raise CommandError("Passwords do not match.")

    with Session(engine) as session:
        user, totp_uri = add_user(session, username, password, with_totp)
        print(f"\nUser '{user.username}' created successfully.")
        if totp_uri:
            print(f"\nTOTP Secret: {user.totp_secret}")
            print(f"TOTP URI: {totp_uri}")
            print("\nScan the QR code below with your authenticator app:")
            _print_qr(totp_uri)


def list_accounts():
    with Session(engine) as session:
        accounts = session.exec(select(TradingAccount).order_by(TradingAccount.id)).all()
        if not accounts:
            print("No trading accounts.")
        for account in accounts:
            print(describe_account(account))


def sync_one(account_id: str):
    try:
        account_id = int(account_id)
    except ValueError:
        raise CommandError(f"Invalid account id: {account_id}") from None

    with Session(engine) as session:
        result = asyncio.run(sync_account(session, account_id, GatewayConfig.from_settings()))
        print(result.message)
        if not result.success:
            raise CommandError(f"Sync of account {account_id} failed.")
        print(describe_account(session.get(TradingAccount, account_id)))


COMMANDS = {
    "create-user": lambda args: create_user(with_totp="--no-totp" not in args),
    "list-accounts": lambda args: list_accounts(),
    "sync-account": lambda args: sync_one(args[0]) if args else _usage(),
}


def _usage():
    raise CommandError(__doc__.strip())


def main(argv: list[str] | None = None):
    argv = sys.argv[1:] if argv is None else argv
    setup_logging()
    create_db_and_tables()
    try:
        if not argv or argv[0] not in COMMANDS:
            _usage()
        COMMANDS[argv[0]](argv[1:])
    except CommandError as e:
        print(e)
        sys.exit(1)


if __name__ == "__main__":
    main()
