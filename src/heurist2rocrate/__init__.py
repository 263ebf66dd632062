"""Convert Heurist database exports into RO-Crates.

The conversion is available as ``heurist2rocrate convert`` (see `cli`) and as
library: `reader.read_heurist_export` -> `converter.Converter` ->
`crate.write_crate`.
"""

import logging
import logging.handlers
import os
from importlib.metadata import PackageNotFoundError, version
from pathlib import Path

try:
    __version__ = version("heurist2rocrate")
except PackageNotFoundError:  # pragma: no cover
    # package is not installed
    __version__ = "0.0.0"

LOGLEVEL_NAMES = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")
CONSOLE_FORMAT = "%(levelname)-8s|%(message)s"
LOGFILE_FORMAT = "%(asctime)s|%(name)-30s|%(levelname)-8s|%(message)s"
# Conversions of large databases write many warnings; keep a few logs of them.
LOGFILE_MAX_BYTES = 1_000_000
LOGFILE_BACKUPS = 3


def _loglevel_from_env(default: int) -> int:
    """The level named in the LOGLEVEL environment variable, if valid."""
    name = os.getenv("LOGLEVEL", "").strip().upper()
    if name in LOGLEVEL_NAMES:
        return getattr(logging, name)
    return default


def setup_logging(loglevel: int = logging.INFO, logfile: Path | None = None):
    """
    Log to the console and, if logfile is given, to a rotating log file.

    LOGLEVEL from the environment overrides loglevel, e.g. LOGLEVEL=DEBUG to
    see how every name of the crate was resolved.
    """
    loglevel = _loglevel_from_env(loglevel)
    loglevel = min(logging.CRITICAL, max(loglevel, logging.NOTSET))

    logging.basicConfig(level=loglevel, format=CONSOLE_FORMAT)

    if logfile is not None:
        handler = logging.handlers.RotatingFileHandler(
            logfile,
            maxBytes=LOGFILE_MAX_BYTES,
            backupCount=LOGFILE_BACKUPS,
            encoding="utf-8",
        )
        handler.setLevel(loglevel)
        handler.setFormatter(
            logging.Formatter(fmt=LOGFILE_FORMAT, datefmt="%Y-%m-%d %H:%M:%S")
        )
        logging.getLogger().addHandler(handler)

    # rdflib is only used for its namespaces
    logging.getLogger("rdflib").propagate = False
