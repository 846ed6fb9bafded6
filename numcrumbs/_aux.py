import logging

from rich.logging import RichHandler


def setup_logging(level=logging.INFO):
    """Send log records through rich, with markup and rich tracebacks."""
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(rich_tracebacks=True, markup=True)],
        force=True,
    )
