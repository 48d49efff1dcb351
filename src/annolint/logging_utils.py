from __future__ import annotations

import logging
import sys


def configure_logging(*, verbose: bool, quiet: bool) -> None:
    """
    Configure process-wide logging for CLI usage.

    INFO by default, DEBUG with --verbose, WARNING with --quiet (verbose wins
    if a programmatic caller passes both). Logs go to stderr so JSON/SARIF on
    stdout stays machine-readable.
    """

    if verbose:
        level = logging.DEBUG
        fmt = "annolint [%(levelname)s] %(name)s: %(message)s"
    else:
        level = logging.WARNING if quiet else logging.INFO
        fmt = "annolint: %(message)s"

    logging.basicConfig(level=level, format=fmt, stream=sys.stderr, force=True)
