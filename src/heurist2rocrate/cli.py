"""Command line interface for heurist2rocrate with subcommands."""

import argparse
import logging
import os.path
import sys
import textwrap
from pathlib import Path

from heurist2rocrate import __version__, config, setup_logging
from heurist2rocrate.convert import convert
from heurist2rocrate.utils import ConversionError

logger = logging.getLogger(__name__)


def process_common_options(args, raw_args):
    # set up output directory
    outdir = getattr(args, "outdir", None)
    if outdir is not None and os.path.isfile(outdir):
        msg = "Outdir must be a directory but it is a file."
        logger.error(msg)
        raise ConversionError(msg)

    # set up logging
    loglevel = logging.INFO + (args.quieter - args.verboser) * 10
    logfile = args.logfile
    if logfile is None:
        setup_logging(loglevel)
    else:
        logfile.parents[0].mkdir(exist_ok=True, parents=True)
        setup_logging(loglevel, logfile)

    logger.info("Executing cmd: heurist2rocrate %s", " ".join(raw_args))
    logger.debug("Processing common options.")

    # load config
    if args.config is not None:
        if args.config.exists():
            config.load_config(config_file=Path(args.config))
        else:
            msg = "Config file not found at: %s"
            logger.error(msg, args.config)
            raise ConversionError(msg % args.config)


class DecentFormatter(argparse.HelpFormatter):
    """
    An argparse formatter that preserves newlines & keeps indentation.
    """

    def _fill_text(self, text, width, indent):
        lines = []
        for line in textwrap.indent(textwrap.dedent(text), indent).splitlines():
            lines.append(textwrap.fill(line, width, subsequent_indent=indent))
        return "\n".join(lines)

    def _split_lines(self, text, width):
        lines = []
        for line in textwrap.dedent(text).splitlines():
            if not line.strip():  # pragma: no cover
                continue
            indent = " " * (len(line) - len(line.lstrip()))
            lines.extend(
                textwrap.fill(line, width, subsequent_indent=indent).splitlines()
            )
        return lines


def root_cmd(args):
    if args.version:
        print(f"heurist2rocrate {__version__}")


def create_root_parser():
    parser = argparse.ArgumentParser(
        prog="heurist2rocrate",
        description="A command-line tool to convert Heurist database exports to RO-Crates.",
        allow_abbrev=False,
        formatter_class=DecentFormatter,
    )
    parser.add_argument(
        "-V",
        "--version",
        help="The version of heurist2rocrate command line interface.",
        action="store_true",
    )
    parser.set_defaults(func=root_cmd)
    return parser


def create_common_options_parser():
    parser = argparse.ArgumentParser(
        prog="heurist2rocrate",
        allow_abbrev=False,
        add_help=False,
        formatter_class=DecentFormatter,
    )
    group = parser.add_mutually_exclusive_group()
    group.add_argument(
        "-v",
        "--verbose",
        action="count",
        dest="verboser",
        default=0,
        help="More verbose output. Repeat to increase verbosity (-vv or -vvv).",
    )
    group.add_argument(
        "-q",
        "--quiet",
        action="count",
        default=0,
        dest="quieter",
        help="Less verbose output. Repeat to reduce verbosity (-qq or -qqq).",
    )
    parser.add_argument(
        "--config",
        help='Path to settings file (typically "heurist2rocrate.toml").',
        type=Path,
        required=False,
    )
    parser.add_argument(
        "-O",
        "--outdir",
        help=(
            "Specify directory where the crate should be written to. "
            'The directory is created if required. (default: "<INPUT_DIR>-rocrate")'
        ),
        metavar=("DIRECTORY"),
        type=Path,
    )
    parser.add_argument(
        "-l",
        "--logfile",
        help=(
            "Activate logging to a file at given path. "
            "The path will be created if it is not existing."
        ),
        type=Path,
    )
    return parser


def add_convert_subparser(subparsers, options):
    """Conversion of a Heurist export directory to an RO-Crate."""

    parser = subparsers.add_parser(
        "convert",
        description=(
            "Convert a Heurist XML export to an RO-Crate. The export directory "
            "must contain Database_Structure.xml and Record_Structure.xml. "
            "Uploaded files are taken from its file_uploads sub-directory."
        ),
        help="Convert a Heurist export to an RO-Crate.",
        **options,
    )
    mapping = parser.add_argument_group("Mapping")
    mapping.add_argument(
        "-m",
        "--mapping",
        help=(
            "An RO-Crate metadata file (JSON) that maps record types, fields "
            "and vocabularies to classes and properties."
        ),
        type=Path,
        metavar=("FILE"),
    )
    crate = parser.add_argument_group("RO-Crate")
    crate.add_argument(
        "--db-name",
        help=(
            "Name of the Heurist database. Used in the namespace of the "
            "generated classes and properties. (default: name of INPUT_DIR)"
        ),
    )
    crate.add_argument("--name", help="Name of the crate (root dataset).")
    crate.add_argument(
        "--description", help="Description of the crate (root dataset)."
    )
    crate.add_argument(
        "--zip",
        help="Additionally pack the crate directory into a zip file.",
        default=False,
        action="store_true",
    )
    parser.add_argument(
        "INPUT_DIR",
        type=Path,
        help="Directory of the Heurist XML export.",
    )
    parser.set_defaults(func=convert)


def main_cli(raw_args=None):
    """Setup CLI app and run commands based on args."""
    parser = create_root_parser()

    subparsers = parser.add_subparsers(
        title="Subcommands",
        dest="subcommand",
        description="Get help for commands with heurist2rocrate COMMAND --help",
    )
    # Create parser to share some options between subparsers. We cannot use the
    # root parser for this because it includes the sub-commands and their help.
    common_options_parser = create_common_options_parser()

    common_options = {
        "parents": [common_options_parser],
        "formatter_class": DecentFormatter,
    }
    add_convert_subparser(subparsers, common_options)

    if not raw_args:
        parser.print_help()
        return

    # Parse the command-line arguments
    #   pars_args will call sys.exit(2) if invalid commands are given.
    args = parser.parse_args(raw_args)
    if hasattr(args, "config"):
        process_common_options(args, raw_args)
    args.func(args)


def run_cli_app(raw_args=None):
    """Entry point for running the cli app."""
    if raw_args is None:
        raw_args = sys.argv[1:]
    try:
        main_cli(raw_args)
    except ConversionError as e:
        logger.error("Terminating with error: %s", e)  # noqa: TRY400
        sys.exit(1)
    except Exception:  # pragma: no cover
        logger.exception("Unexpected error.")
        sys.exit(3)  # value 2 is used by argparse for invalid args.


if __name__ == "__main__":
    run_cli_app(sys.argv[1:])
