"""Manual check of the provider directory.

Run from the repository root against the bundled demo data with:
  PYTHONPATH=src python scripts/directory_live_check.py \
    --email sarah@participant.com.au --password password --query therapy

Against a hosted backend, set the connection variables first:
  NEXACONNECT_SUPABASE_URL=... NEXACONNECT_SUPABASE_ANON_KEY=... \
  PYTHONPATH=src python scripts/directory_live_check.py --email ... --password ...

Optional flags:
  --category, --suburb, --min-rating narrow the search.
  --limit caps the number of printed results.
  --sanitize-output masks emails and phone numbers in standard output.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys

from sanitize import sanitize_data as _sanitize_data

from nexaconnect import Client, Settings
from nexaconnect.exceptions import NexaConnectError
from nexaconnect.models import Provider

_LOGGER = logging.getLogger(__name__)


def _format_provider(provider: Provider, *, sanitize: bool = False) -> str:
    data = {
        "id": provider.id,
        "name": provider.name,
        "tier": provider.tier,
        "suburb": provider.location.suburb or "-",
        "rating": provider.rating,
        "wait_time": provider.wait_time,
        "email": provider.email or "-",
        "phone": provider.phone or "-",
    }
    if sanitize:
        data = _sanitize_data(data)
    return (
        f"{data['id']} | {data['name']} | {data['tier']} | {data['suburb']} | "
        f"{data['rating']} | {data['wait_time']} | {data['email']} | {data['phone']}"
    )


def _parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Log in and search the provider directory.")
    parser.add_argument("--email", dest="email", help="Account email (optional).")
    parser.add_argument("--password", dest="password", help="Account password.")
    parser.add_argument("--query", dest="query", default="", help="Search text.")
    parser.add_argument("--category", dest="category", default="", help="Category id filter.")
    parser.add_argument("--suburb", dest="suburb", default="", help="Suburb filter.")
    parser.add_argument(
        "--min-rating",
        dest="min_rating",
        type=float,
        default=0,
        help="Minimum provider rating (default: 0).",
    )
    parser.add_argument(
        "--limit",
        dest="limit",
        type=int,
        default=10,
        help="Number of results to print (default: 10).",
    )
    parser.add_argument(
        "--sanitize-output",
        dest="sanitize_output",
        action="store_true",
        help="Sanitize privacy-sensitive values in standard output.",
    )
    parser.add_argument(
        "--log-level",
        dest="log_level",
        default="INFO",
        help="Python log level for the script (default: INFO).",
    )
    return parser.parse_args()


async def main() -> int:
    args = _parse_args()
    logging.basicConfig(level=args.log_level.upper())
    if args.email and not args.password:
        print("Missing required value: --password", file=sys.stderr)
        return 2

    try:
        settings = Settings.from_env()
        async with Client(settings) as client:
            state = await client.load()
            _LOGGER.info(
                "Loaded %s providers and %s reviews (%s)",
                len(state.providers),
                len(state.reviews),
                "remote" if settings.remote_enabled else "local",
            )
            if args.email:
                session = await client.login(args.email, args.password)
                print(f"Logged in: {session.role} {session.id} ({session.tier or '-'})")
            results = client.search(
                args.query,
                {
                    "category": args.category,
                    "suburb": args.suburb,
                    "min_rating": args.min_rating,
                },
            )
    except NexaConnectError as exc:
        print(f"Error: {exc.__class__.__name__}: {exc.user_message or exc}", file=sys.stderr)
        return 1

    print(f"Results: {len(results)}")
    for provider in results[: max(args.limit, 0)]:
        print(f"- {_format_provider(provider, sanitize=args.sanitize_output)}")
    return 0


if __name__ == "__main__":
    raise SystemExit(asyncio.run(main()))
