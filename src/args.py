"""Argument parsing functionality for gemindex."""

import argparse


def parse_args(argv=None):
    """Parses the arguments passed to the program."""
    parser = argparse.ArgumentParser(
        prog="gemindex",
        description=(
            "gemindex - list the published versions of RubyGems packages"
        ),
        add_help=True,
    )

    parser.add_argument("-p", "--package",
                        dest="PACKAGES",
                        help="Gem name to look up (can be used multiple times).",
                        action="append", type=str,
                        required=True)
    parser.add_argument("-r", "--registry",
                        dest="REGISTRIES",
                        help="Registry URL to search, in order (can be used multiple times). "
                             "Defaults to https://rubygems.org.",
                        action="append", type=str,
                        default=[])
    parser.add_argument("-o", "--output",
                        dest="OUTPUT",
                        help="Path to JSON output file (defaults to stdout)",
                        action="store",
                        type=str)
    parser.add_argument("-c", "--config",
                        dest="CONFIG",
                        help="Path to configuration file (YAML, YML, or JSON)",
                        action="store",
                        type=str)
    parser.add_argument("--feed-url",
                        dest="FEED_URL",
                        help="Override the versions feed URL",
                        action="store",
                        type=str)
    parser.add_argument("--stale-minutes",
                        dest="STALE_MINUTES",
                        help="Minutes before the mirrored index is refreshed",
                        action="store",
                        type=float)
    parser.add_argument("--timeout",
                        dest="TIMEOUT",
                        help="Request timeout in seconds",
                        action="store",
                        type=int)
    parser.add_argument("--loglevel",
                        dest="LOG_LEVEL",
                        help="Set the logging level",
                        action="store",
                        type=str,
                        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'],
                        default='INFO')
    parser.add_argument("--logfile",
                        dest="LOG_FILE",
                        help="Log output file",
                        action="store",
                        type=str)

    return parser.parse_args(argv)
