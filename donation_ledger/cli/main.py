"""
Command line entry point.

Usage:
    python -m donation_ledger summary
    python -m donation_ledger watch
    python -m donation_ledger donate-native 0.1
    python -m donation_ledger donate-token 0xTOKEN 25 --campaign "Zero Hunger Mission"
    python -m donation_ledger campaigns
"""

import argparse
import asyncio
import sys

from loguru import logger
from pydantic import ValidationError

from donation_ledger.cli.logging import setup_logging
from donation_ledger.config.campaigns import DEFAULT_CAMPAIGN_NAME
from donation_ledger.config.settings import Settings, get_settings
from donation_ledger.models import DonationOutcome, Projection
from donation_ledger.services.donation_service import init_donation_service
from donation_ledger.utils.formatters import format_projection


async def run_summary(settings: Settings) -> int:
    """Resync once and print the projection."""
    service = init_donation_service(settings)
    try:
        if not await service.resync():
            logger.error(f"Could not load donations: {service.last_error}")
            return 1
        print(format_projection(service.projection, settings.native_symbol))
        return 0
    finally:
        await service.stop()


async def run_watch(settings: Settings) -> int:
    """Keep the projection fresh and print it after every resync."""
    service = init_donation_service(settings)

    def print_projection(projection: Projection) -> None:
        print(format_projection(projection, settings.native_symbol))
        print("-" * 60)

    service.add_projection_listener(print_projection)

    try:
        await service.start()
        logger.info(
            f"Watching for donations every {settings.blockchain_poll_interval}s "
            f"(Ctrl+C to stop)"
        )
        while True:
            await asyncio.sleep(3600)
    finally:
        await service.stop()


def report_outcome(outcome: DonationOutcome) -> int:
    """Print the donation result and return the exit code."""
    if outcome.succeeded:
        print(f"Donation successful! Transaction: {outcome.donation_tx_hash}")
        return 0

    error = outcome.error
    print(f"Donation failed ({error.code}): {error.message}")
    if outcome.residual_allowance:
        print(
            f"The token approval {outcome.approval_tx_hash} was confirmed and "
            f"remains in place; revoke it or retry the donation."
        )
    return 1


async def run_donate_native(settings: Settings, amount: str, campaign: str) -> int:
    service = init_donation_service(settings)
    try:
        outcome = await service.submit_native_donation(amount, campaign)
        return report_outcome(outcome)
    finally:
        await service.stop()


async def run_donate_token(settings: Settings, token: str, amount: str, campaign: str) -> int:
    service = init_donation_service(settings)
    try:
        outcome = await service.submit_token_donation(token, amount, campaign)
        return report_outcome(outcome)
    finally:
        await service.stop()


def run_campaigns(settings: Settings) -> int:
    for name, campaign_id in settings.get_campaigns().items():
        print(f"{campaign_id:>4}  {name}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="donation_ledger",
        description="Campaign donation ledger: history, totals and donations",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("summary", help="Load donations once and print totals")
    subparsers.add_parser("watch", help="Print totals whenever new donations arrive")
    subparsers.add_parser("campaigns", help="List campaigns and their ids")

    native = subparsers.add_parser("donate-native", help="Donate native currency")
    native.add_argument("amount", help="Amount in native units, e.g. 0.1")
    native.add_argument("--campaign", default=DEFAULT_CAMPAIGN_NAME, help="Campaign name")

    token = subparsers.add_parser("donate-token", help="Donate ERC-20 tokens")
    token.add_argument("token", help="Token contract address")
    token.add_argument("amount", help="Amount in token units, e.g. 25")
    token.add_argument("--campaign", default=DEFAULT_CAMPAIGN_NAME, help="Campaign name")

    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)

    try:
        settings = get_settings()
    except ValidationError as e:
        print(f"Invalid configuration:\n{e}", file=sys.stderr)
        return 2

    setup_logging(settings.log_level, settings.log_file)

    if args.command == "campaigns":
        return run_campaigns(settings)

    if args.command == "summary":
        coro = run_summary(settings)
    elif args.command == "watch":
        coro = run_watch(settings)
    elif args.command == "donate-native":
        coro = run_donate_native(settings, args.amount, args.campaign)
    else:
        coro = run_donate_token(settings, args.token, args.amount, args.campaign)

    try:
        return asyncio.run(coro)
    except KeyboardInterrupt:
        logger.info("Stopped")
        return 0
