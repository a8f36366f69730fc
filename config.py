import os
import re
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, ConfigDict, field_validator

DEFAULT_PAIN_VERSION = "008.002.02"
PAIN_VERSION_PATTERN = re.compile(r"\d{3}\.\d{3}\.\d{2}")

# Environment variables read by SepaConfig.from_env()
PAIN_VERSION_ENV = "SEPA_PAIN_VERSION"
XSD_DIR_ENV = "SEPA_XSD_DIR"


class SepaConfig(BaseModel):
    """
    Generation settings handed to DirectDebitMessage and SchemaValidator.

    - schema_version: pain version used for the namespace and the XSD file name.
    - schema_dir: directory holding ``pain.<version>.xsd`` files. When unset,
      generated documents are not checked against a schema.
    """
    model_config = ConfigDict(frozen=True)

    schema_version: str = DEFAULT_PAIN_VERSION
    schema_dir: Optional[Path] = None

    @field_validator("schema_version")
    @classmethod
    def _check_schema_version(cls, value: str) -> str:
        if not PAIN_VERSION_PATTERN.fullmatch(value):
            raise ValueError(f"Invalid pain version {value!r}; expected e.g. {DEFAULT_PAIN_VERSION}.")
        return value

    @property
    def namespace(self) -> str:
        return f"urn:iso:std:iso:20022:tech:xsd:pain.{self.schema_version}"

    @property
    def xsd_filename(self) -> str:
        return f"pain.{self.schema_version}.xsd"

    @classmethod
    def from_env(cls) -> "SepaConfig":
        schema_dir = os.getenv(XSD_DIR_ENV)
        return cls(
            schema_version=os.getenv(PAIN_VERSION_ENV, DEFAULT_PAIN_VERSION),
            schema_dir=Path(schema_dir) if schema_dir else None,
        )


if __name__ == '__main__':
    config = SepaConfig.from_env()
    print("--- Configuration Settings ---")
    print(f"pain version: {config.schema_version}")
    print(f"Namespace: {config.namespace}")
    if config.schema_dir is None:
        print("XSD validation: disabled")
    else:
        xsd_path = config.schema_dir / config.xsd_filename
        print(f"XSD validation: {xsd_path}")
        if not xsd_path.exists():
            print(f"WARNING: XSD file not found at the configured path: {xsd_path}")
    print("--- End of Configuration ---")
