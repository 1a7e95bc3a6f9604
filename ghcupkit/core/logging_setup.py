"""Root logger configuration for front-ends embedding ghcupkit."""

import logging


def configure_logging(verbose: bool = False, quiet: bool = False) -> int:
    """
    Configure logging based on verbose/quiet flags.

    Args:
        verbose: Show debug output, including every file system mutation
        quiet: Only show errors

    Returns:
        The configured log level
    """
    if verbose:
        level = logging.DEBUG
        format_str = "%(levelname)s [%(name)s] %(message)s"
    elif quiet:
        level = logging.ERROR
        format_str = "%(levelname)s: %(message)s"
    else:
        level = logging.INFO
        format_str = "%(message)s"

    logging.basicConfig(
        level=level,
        format=format_str,
        force=True,  # Reconfigure if already configured
    )
    return level
