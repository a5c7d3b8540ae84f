"""gemindex CLI: print the known versions of RubyGems packages as JSON."""

from __future__ import annotations

import asyncio
import json
import logging
import sys
from typing import Any, Dict, List, Optional

from args import parse_args
from cli_config import apply_cli_overrides, load_config, setup_logging
from common.logging_utils import extra_context, is_debug_enabled
from constants import Constants, ExitCodes
from registry.rubygems import ExternalHostError, FallbackLookupError, RubyGemsDatasource

logger = logging.getLogger(__name__)


async def lookup_packages(
    packages: List[str], registries: Optional[List[str]] = None
) -> Dict[str, Any]:
    """Look up every package; missing ones map to None."""
    results: Dict[str, Any] = {}
    async with RubyGemsDatasource() as datasource:
        for name in packages:
            result = await datasource.get_releases(name, registries or None)
            results[name] = result.to_dict() if result is not None else None
            if result is None:
                logger.warning("Package not found: %s", name)
        logger.info(
            "Rubygems index status",
            extra=extra_context(component="cli", **datasource.coordinator.stats()),
        )
    return results


def export_json(results: Dict[str, Any], path: Optional[str]) -> None:
    """Write results to ``path``, or stdout when no path is given."""
    payload = json.dumps(results, indent=2)
    if not path:
        sys.stdout.write(payload + "\n")
        return
    with open(path, "w", encoding="utf-8") as fh:
        fh.write(payload + "\n")
    logging.info("JSON file has been successfully exported at: %s", path)


def main(argv=None) -> int:
    """Main function of the program."""
    args = parse_args(argv)
    setup_logging(args)
    load_config(args)
    apply_cli_overrides(args)

    if is_debug_enabled(logger):
        logger.debug(
            "CLI start",
            extra=extra_context(
                event="function_entry",
                component="cli",
                action="main",
                feed_url=Constants.VERSIONS_FEED_URL,
            )
        )

    try:
        results = asyncio.run(lookup_packages(args.PACKAGES, args.REGISTRIES))
    except ExternalHostError as exc:
        logging.error("Registry host unavailable: %s", exc)
        return ExitCodes.CONNECTION_ERROR.value
    except FallbackLookupError as exc:
        logging.error("Registry lookup failed (%s): %s", exc.status_code, exc)
        return ExitCodes.CONNECTION_ERROR.value

    try:
        export_json(results, args.OUTPUT)
    except OSError as exc:
        logging.error("JSON file couldn't be written to disk: %s", exc)
        return ExitCodes.FILE_ERROR.value

    if any(value is None for value in results.values()):
        return ExitCodes.NOT_FOUND.value
    return ExitCodes.SUCCESS.value


if __name__ == "__main__":
    sys.exit(main())
