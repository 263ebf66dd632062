import logging
import shutil
import zipfile
from pathlib import Path

from heurist2rocrate import config
from heurist2rocrate.rocrate import Metadata

logger = logging.getLogger(__name__)


def write_crate(
    metadata: Metadata,
    outdir: Path,
    uploaded_files=(),
    uploads_dir: Path | None = None,
    zip_output: bool = False,
) -> Path:
    """Write the RO-Crate metadata and the uploaded files into outdir.

    With zip_output the crate directory is additionally packed into
    "<outdir>.zip" whose path is returned instead of the metadata file path.
    """
    outdir = Path(outdir)
    outdir.mkdir(parents=True, exist_ok=True)
    metadata_path = outdir / config.SETTINGS.metadata_file
    with metadata_path.open("w", encoding="utf-8") as fp:
        fp.write(metadata.to_json(indent=2))
    logger.info("-> Saved RO-Crate metadata to %s", metadata_path)

    copied = 0
    for name in uploaded_files:
        source = Path(uploads_dir) / name if uploads_dir is not None else None
        if source is None or not source.is_file():
            logger.warning('Uploaded file "%s" not found, it is missing in the crate.', name)
            continue
        shutil.copy2(source, outdir / name)
        copied += 1
    if copied:
        logger.info("-> Copied %i uploaded file(s) to %s", copied, outdir)

    if not zip_output:
        return metadata_path
    zip_path = outdir.with_name(outdir.name + ".zip")
    if zip_path.exists():
        zip_path.unlink()
    with zipfile.ZipFile(zip_path, "w", compression=zipfile.ZIP_DEFLATED) as zf:
        for path in sorted(outdir.rglob("*")):
            if path.is_file():
                zf.write(path, arcname=str(path.relative_to(outdir)))
    logger.info("-> Packed RO-Crate to %s", zip_path)
    return zip_path
