import logging
from pathlib import Path

from colorama import Fore, Style

from heurist2rocrate import config
from heurist2rocrate.configuration import Configuration
from heurist2rocrate.converter import Converter
from heurist2rocrate.crate import write_crate
from heurist2rocrate.reader import read_heurist_export
from heurist2rocrate.utils import ConversionError

logger = logging.getLogger(__name__)


def default_outdir(input_dir: Path) -> Path:
    return input_dir.with_name(f"{input_dir.name}-rocrate")


def format_stats(stats: dict[str, int], colored: bool = True) -> str:
    lines = []
    for category, count in stats.items():
        if colored:
            lines.append(f"{Fore.GREEN}{count:>8}{Style.RESET_ALL} {category}")
        else:
            lines.append(f"{count:>8} {category}")
    return "\n".join(lines)


def _check_convert_args(args):
    if not args.INPUT_DIR.is_dir():
        msg = f'Heurist export directory "{args.INPUT_DIR}" not found.'
        raise ConversionError(msg)
    if args.mapping is not None and not args.mapping.is_file():
        msg = f'Mapping configuration "{args.mapping}" not found.'
        raise ConversionError(msg)


def convert(args):
    logger.debug("Convert subcommand started!")
    _check_convert_args(args)

    input_dir = Path(args.INPUT_DIR)
    data = read_heurist_export(
        input_dir,
        db_name=args.db_name,
        name=args.name,
        description=args.description,
    )
    configuration = None
    if args.mapping is not None:
        logger.info('Using mapping configuration "%s"', args.mapping)
        configuration = Configuration.from_file(args.mapping)

    converter = Converter(data, configuration)
    metadata = converter.convert()

    outdir = args.outdir if args.outdir is not None else default_outdir(input_dir)
    written = write_crate(
        metadata,
        outdir,
        uploaded_files=converter.uploaded_files,
        uploads_dir=input_dir / config.SETTINGS.uploads_dir,
        zip_output=args.zip,
    )
    logger.info("-> successfully converted %s to %s", input_dir, written)
    print(format_stats(converter.stats))
