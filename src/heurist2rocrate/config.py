"""Config module to share the tool settings across all modules in heurist2rocrate."""

import logging
import sys
from pathlib import Path
from typing import Annotated

from pydantic import AnyHttpUrl, BaseModel, ConfigDict, StringConstraints, field_validator

if sys.version_info >= (3, 11):
    import tomllib
else:
    import tomli as tomllib

logger = logging.getLogger(__name__)

FileName = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1)]


class Settings(BaseModel):
    model_config = ConfigDict(validate_default=True)

    # Classes and properties derived from the Heurist schema are published
    # below <namespace_base><db_name>#
    namespace_base: AnyHttpUrl = "https://w3id.org/ro/terms/"
    # Fallback namespace for configured classes that are not defined in the crate
    external_vocabulary: AnyHttpUrl = "https://schema.org/"
    # Names of the files in a Heurist export directory
    structure_file: FileName = "Database_Structure.xml"
    records_file: FileName = "Record_Structure.xml"
    uploads_dir: FileName = "file_uploads"
    metadata_file: FileName = "ro-crate-metadata.json"
    default_config: bool = False

    @field_validator("namespace_base", "external_vocabulary", mode="before")
    @classmethod
    def ensure_trailing_separator(cls, value):
        # Names are appended directly to both URLs.
        if isinstance(value, str) and not value.endswith(("/", "#")):
            return value + "/"
        return value

    def namespace_for(self, db_name: str) -> str:
        return f"{self.namespace_base}{db_name}"

    def external_class_id(self, class_name: str) -> str:
        return f"{self.external_vocabulary}{class_name}"


# This is updated/set by load_config.
SETTINGS = Settings(default_config=True)
SETTINGS_PATH: Path | None = None


def load_config(config_file: Path | None = None, config: Settings | None = None):
    new_conf = {}
    new_conf["SETTINGS_PATH"] = None
    if config_file is not None and not config_file.exists():
        logger.warning('Configuration file "%s" not found.', config_file)
    if (True if config_file is None else not config_file.exists()) and config is None:
        new_conf["SETTINGS"] = Settings(default_config=True)
        logger.debug("Initializing default config.")
    elif config_file and config is None:
        with config_file.open(mode="rb") as fp:
            conf = tomllib.load(fp)
        logger.debug("Config loaded from: %s", config_file)
        new_conf["SETTINGS"] = Settings(**conf)
        new_conf["SETTINGS_PATH"] = config_file.resolve()
    else:
        new_conf["SETTINGS"] = Settings.model_validate_json(config.model_dump_json())
        logger.debug("Refreshing global state of config.")

    for name, value in new_conf.items():
        globals()[name] = value
