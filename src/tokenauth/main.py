"""Command line entry point for key provisioning and offline sweeps."""

import argparse
import asyncio

from tokenauth.app import App
from tokenauth.config import Config
from tokenauth.core.modules.signer.service import generate_key_pair
from tokenauth.logging import setup_logging


def keygen(bits: int) -> None:
    private_key, public_key = generate_key_pair(bits)
    print(f"TOKENAUTH_SIGN_PRIVATE_KEY={private_key}")
    print(f"TOKENAUTH_SIGN_PUBLIC_KEY={public_key}")


async def sweep(config: Config) -> int:
    app = App(config)
    async with app.lifespan():
        return await app.sweep_expired()


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(prog="tokenauth", description="Token authentication utilities")
    commands = parser.add_subparsers(dest="command", required=True)
    keygen_parser = commands.add_parser("keygen", help="Generate a signing key pair as environment lines")
    keygen_parser.add_argument("--bits", type=int, default=2048, help="RSA key size")
    commands.add_parser("sweep", help="Remove expired sessions from the configured store")
    args = parser.parse_args(argv)

    if args.command == "keygen":
        keygen(args.bits)
        return

    config = Config()
    setup_logging(config.debug)
    removed = asyncio.run(sweep(config))
    print(f"Removed {removed} expired sessions")


if __name__ == "__main__":
    main()
