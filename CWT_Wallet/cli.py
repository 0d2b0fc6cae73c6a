"""
CLI entry point for the CWT Solana wallet.

Usage:
    # Serve the HTTP API (prompts for the wallet password once)
    SOLANA_FILE_PATH=wallet.cwt python -m CWT_Wallet.cli serve

    # Create a new vault (password asked twice)
    python -m CWT_Wallet.cli generate --file wallet.cwt

    # Print the vault address, no password needed
    python -m CWT_Wallet.cli address --file wallet.cwt

    # Change the vault password
    python -m CWT_Wallet.cli reencrypt --file wallet.cwt
"""

import argparse
import logging
import sys
from typing import Optional

from CWT_Wallet import wallet
from CWT_Wallet.cwt_server import config
from CWT_Wallet.cwt_shared.errors import WalletError
from CWT_Wallet.cwt_shared.password import PasswordStore
from CWT_Wallet.cwt_vault.vault import read_address, reencrypt_vault

logger = logging.getLogger(__name__)


# ─── Commands ───

def cmd_serve(args: argparse.Namespace) -> int:
    import uvicorn

    from CWT_Wallet.cwt_server.api import create_app
    from CWT_Wallet.cwt_server.context import from_environment

    passwords = PasswordStore()
    passwords.prompt()
    try:
        context = from_environment(passwords)
        logger.info("Serving wallet %s on %s:%d", context.wallet_path, args.host, args.port)
        uvicorn.run(create_app(context), host=args.host, port=args.port, log_level=config.LOG_LEVEL.lower())
    finally:
        passwords.clear()
    return 0


def cmd_generate(args: argparse.Namespace) -> int:
    passwords = PasswordStore()
    passwords.prompt(confirm=True)
    try:
        with passwords.borrow() as password:
            address = wallet.generate_wallet(args.file, password)
    finally:
        passwords.clear()
    print(address)
    return 0


def cmd_address(args: argparse.Namespace) -> int:
    print(read_address(args.file))
    return 0


def cmd_reencrypt(args: argparse.Namespace) -> int:
    old = PasswordStore()
    new = PasswordStore()
    old.prompt("Current wallet password: ")
    new.prompt("New wallet password: ", confirm=True)
    try:
        with old.borrow() as old_pw, new.borrow() as new_pw:
            reencrypt_vault(args.file, old_pw, new_pw)
    finally:
        old.clear()
        new.clear()
    print(f"Re-encrypted {args.file}")
    return 0


# ─── Arg parsing ───

def parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="CWT custodial Solana wallet")
    sub = parser.add_subparsers(dest="command", required=True)

    serve = sub.add_parser("serve", help="Run the HTTP API")
    serve.add_argument("--host", default=config.HOST, help=f"Bind address (default: {config.HOST})")
    serve.add_argument("--port", type=int, default=config.PORT, help=f"Port (default: {config.PORT})")
    serve.set_defaults(func=cmd_serve)

    for name, func, text in (
        ("generate", cmd_generate, "Create a new encrypted wallet file"),
        ("address", cmd_address, "Print the wallet address"),
        ("reencrypt", cmd_reencrypt, "Re-encrypt the wallet under a new password"),
    ):
        p = sub.add_parser(name, help=text)
        p.add_argument(
            "--file",
            default=config.SOLANA_FILE_PATH or None,
            required=not config.SOLANA_FILE_PATH,
            help="Wallet file (default: $SOLANA_FILE_PATH)",
        )
        p.set_defaults(func=func)

    return parser.parse_args(argv)


def main(argv: Optional[list[str]] = None) -> None:
    args = parse_args(argv)
    logging.basicConfig(level=config.LOG_LEVEL, format=config.LOG_FORMAT)

    try:
        code = args.func(args)
    except (WalletError, RuntimeError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)
    sys.exit(code)


if __name__ == "__main__":
    main()
