"""
Command-line interface for the link shortener.

Usage:
    link-shortener shorten <url> [--custom-code CODE] [--created-by NAME]
    link-shortener get <short_code>
    link-shortener stats <short_code>
    link-shortener analytics [--page N] [--size N] [--search TERM]
    link-shortener import <csv_file> [--link-prefix PREFIX]
"""

import argparse
import asyncio
import json
import sys
from typing import List, Optional

from .config import Config, load_config
from .database.sqlite import SQLiteLinkStore
from .errors import LinkShortenerError, NotFoundError
from .importer import import_links, read_csv_records
from .service import LinkShortenerService
from .common.logging_config import setup_logging


DEFAULT_LINK_PREFIX = "https://lnk.avantifellows.org/"


def _print_json(payload: dict, error: bool = False) -> None:
    print(json.dumps(payload, indent=2, default=str), file=sys.stderr if error else sys.stdout)


class LinkShortenerCLI:
    """Command-line interface for the link shortener."""

    def __init__(self, config: Config, verbose: bool = False):
        """Initialize CLI."""
        self.config = config
        self.logger = setup_logging(
            level="DEBUG" if verbose else config.log_level,
            log_file=config.log_file,
            stream=sys.stderr,
        )
        self.store: Optional[SQLiteLinkStore] = None
        self.service: Optional[LinkShortenerService] = None

    async def initialize(self):
        """Open the database and build the service."""
        self.logger.debug(f"Opening database {self.config.database_path}")
        self.store = SQLiteLinkStore(
            db_config=self.config.database_path,
            pool_size=self.config.pool_size,
            logger=self.logger,
        )
        await self.store.initialize()
        self.service = LinkShortenerService.from_config(self.store, self.config, logger=self.logger)

    async def cleanup(self):
        """Cleanup resources."""
        if self.service:
            await self.service.close()
        elif self.store:
            await self.store.close()

    async def shorten(self, url: str, custom_code: Optional[str] = None, created_by: str = ""):
        """Shorten a URL."""
        try:
            result = await self.service.create_short_url(url, custom_code, created_by)
        except LinkShortenerError as e:
            _print_json({"success": False, "error": str(e)}, error=True)
            return 1

        _print_json({
            "success": True,
            "short_code": result["short_code"],
            "short_url": result["short_url"],
            "original_url": result["original_url"],
            "created_at": result["created_at"].isoformat(),
        })
        return 0

    async def get(self, short_code: str):
        """Get original URL for a short code (no click is recorded)."""
        original_url = await self.service.resolve(short_code)

        if original_url is None:
            _print_json({"success": False, "error": f"Short code '{short_code}' not found"}, error=True)
            return 1

        _print_json({"success": True, "short_code": short_code, "original_url": original_url})
        return 0

    async def stats(self, short_code: str):
        """Get statistics for a short code."""
        try:
            link = await self.service.get_link(short_code)
        except NotFoundError as e:
            _print_json({"success": False, "error": str(e)}, error=True)
            return 1

        _print_json({"success": True, **link.to_dict()})
        return 0

    async def analytics(self, page: int = 1, size: int = 50, search: Optional[str] = None):
        """Print one page of analytics."""
        result = await self.service.list_analytics(page=page, page_size=size, search=search)
        _print_json({"success": True, **result.to_dict()})
        return 0

    async def import_csv(
        self,
        csv_file: str,
        link_prefix: str,
        code_column: int,
        url_column: int,
        timestamp_column: int,
    ):
        """Import links from a CSV export in one transaction."""
        try:
            records, rejected = read_csv_records(
                csv_file,
                link_prefix=link_prefix,
                code_column=code_column,
                url_column=url_column,
                timestamp_column=timestamp_column,
            )
        except (OSError, ValueError) as e:
            _print_json({"success": False, "error": f"Error reading CSV: {e}"}, error=True)
            return 1

        for message in rejected:
            self.logger.warning(message)

        result = await import_links(self.store, records, logger=self.logger)

        summary = result.to_dict()
        summary["total"] += len(rejected)
        summary["skipped"] += len(rejected)
        _print_json({"success": True, **summary})
        return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="link-shortener",
        description="Link Shortener CLI",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Shorten a URL
  %(prog)s shorten https://example.org/long/url

  # Shorten with custom code
  %(prog)s shorten https://example.org/long/url --custom-code promo1

  # Click statistics for one link
  %(prog)s stats promo1

  # Second page of links matching "docs"
  %(prog)s analytics --page 2 --search docs

  # Import a CSV export
  %(prog)s import links.csv --link-prefix https://lnk.example.org/
        """
    )

    parser.add_argument(
        "--db-path",
        default=None,
        help="SQLite database path (default: from DATABASE_PATH env or link_shortener.db)"
    )

    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Verbose output"
    )

    subparsers = parser.add_subparsers(dest="command", help="Command to execute")

    shorten_parser = subparsers.add_parser("shorten", help="Shorten a URL")
    shorten_parser.add_argument("url", help="URL to shorten")
    shorten_parser.add_argument("--custom-code", help="Custom short code")
    shorten_parser.add_argument("--created-by", default="", help="Attribution stored with the link")

    get_parser = subparsers.add_parser("get", help="Get original URL")
    get_parser.add_argument("short_code", help="Short code to lookup")

    stats_parser = subparsers.add_parser("stats", help="Get link statistics")
    stats_parser.add_argument("short_code", help="Short code to get stats for")

    analytics_parser = subparsers.add_parser("analytics", help="List links with click totals")
    analytics_parser.add_argument("--page", type=int, default=1, help="Page number")
    analytics_parser.add_argument("--size", type=int, default=50, help="Links per page")
    analytics_parser.add_argument("--search", default=None, help="Filter by code or URL substring")

    import_parser = subparsers.add_parser("import", help="Import links from a CSV export")
    import_parser.add_argument("csv_file", help="CSV file with a header row")
    import_parser.add_argument(
        "--link-prefix",
        default=DEFAULT_LINK_PREFIX,
        help=f"Prefix stripped from short links (default: {DEFAULT_LINK_PREFIX})"
    )
    import_parser.add_argument("--code-column", type=int, default=0, help="Short link column index")
    import_parser.add_argument("--url-column", type=int, default=1, help="Destination URL column index")
    import_parser.add_argument("--timestamp-column", type=int, default=28, help="Creation timestamp column index")

    return parser


async def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 1

    overrides = {"database_path": args.db_path} if args.db_path else {}
    cli = LinkShortenerCLI(config=load_config(**overrides), verbose=args.verbose)

    try:
        await cli.initialize()

        if args.command == "shorten":
            return await cli.shorten(args.url, args.custom_code, args.created_by)
        elif args.command == "get":
            return await cli.get(args.short_code)
        elif args.command == "stats":
            return await cli.stats(args.short_code)
        elif args.command == "analytics":
            return await cli.analytics(args.page, args.size, args.search)
        elif args.command == "import":
            return await cli.import_csv(
                args.csv_file,
                link_prefix=args.link_prefix,
                code_column=args.code_column,
                url_column=args.url_column,
                timestamp_column=args.timestamp_column,
            )
        else:
            parser.print_help()
            return 1

    except LinkShortenerError as e:
        _print_json({"success": False, "error": str(e)}, error=True)
        return 1

    finally:
        await cli.cleanup()


def run() -> None:
    """Console script entry point."""
    sys.exit(asyncio.run(main()))


if __name__ == "__main__":
    run()
