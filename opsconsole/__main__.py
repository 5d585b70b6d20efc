"""
Ops Console - Entry Point

Usage:
    python -m opsconsole                     # Settings from environment / .env
    python -m opsconsole --config my.yaml    # YAML overrides
    python -m opsconsole --dry-run           # Print settings and exit
    python -m opsconsole --in-memory         # No Supabase, local maintenance document
    python -m opsconsole --verbose           # Enable debug logging
"""

import argparse
import json
import sys

import uvicorn

from opsconsole.api.app import create_app
from opsconsole.common.config import load_settings
from opsconsole.common.exceptions import ConfigError
from opsconsole.common.logging_setup import configure_logging
from opsconsole.services import ConsoleServices
from opsconsole.services.maintenance import InMemoryDocumentSource


def mask(value: str) -> str:
    """Mask a secret for display"""
    if not value:
        return ""
    if len(value) <= 8:
        return "****"
    return f"{value[:4]}...{value[-4:]}"


def main() -> int:
    parser = argparse.ArgumentParser(description="Ops Console API")
    parser.add_argument("--config", "-c", help="YAML config file")
    parser.add_argument("--dry-run", action="store_true", help="Print settings and exit")
    parser.add_argument("--in-memory", action="store_true", help="Use an in-memory maintenance document")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")
    args = parser.parse_args()

    try:
        settings = load_settings(args.config)
    except ConfigError as e:
        print(f"Error: {e.message}", file=sys.stderr)
        return 1

    configure_logging(
        "DEBUG" if args.verbose else settings.log_level,
        json_format=settings.log_format.lower() == "json",
    )

    if args.dry_run:
        shown = settings.model_dump()
        shown["supabase_key"] = mask(settings.supabase_key)
        shown["stats_token"] = mask(settings.stats_token)
        print(json.dumps(shown, indent=2))
        return 0

    source = InMemoryDocumentSource() if args.in_memory else None
    services = ConsoleServices(settings, source=source)
    app = create_app(services=services, settings=settings)

    uvicorn.run(app, host=settings.api_host, port=settings.api_port, log_level=settings.log_level.lower())
    return 0


if __name__ == "__main__":
    sys.exit(main())
