import logging
from typing import Dict, Optional

from pydantic import BaseModel, Field as PydanticField

from mapping import apply_mapping, load_mapping_profile
from models import ValidationReport
from sepa_message import DirectDebitMessage
from uploader import read_csv_file

logger = logging.getLogger(__name__)


class ImportResult(BaseModel):
    """Outcome of a CSV import: accepted count and the report of every rejected row (1-based)."""
    accepted: int = 0
    rejected: Dict[int, ValidationReport] = PydanticField(default_factory=dict)

    @property
    def total(self) -> int:
        return self.accepted + len(self.rejected)


def import_transactions(
    message: DirectDebitMessage,
    csv_file_path: str,
    mapping_profile_path: str,
    delimiter: Optional[str] = None,
) -> ImportResult:
    """
    Reads a CSV export, maps it with a JSON mapping profile and submits every
    row to ``message``.

    Rows are independent: a rejected row is recorded in the result and the
    remaining rows are still submitted.

    Raises:
        FileNotFoundError: The CSV file or the mapping profile does not exist.
        ValueError: The CSV cannot be read or the profile is invalid.
    """
    logger.info(f"Starting CSV import: {csv_file_path} with mapping: {mapping_profile_path}")

    mapping_profile = load_mapping_profile(mapping_profile_path)
    logger.info(f"Loaded mapping profile: '{mapping_profile.profile_name}'.")

    data_rows = read_csv_file(csv_file_path, delimiter=delimiter)
    if not data_rows:
        logger.warning(f"No data found in CSV: {csv_file_path}.")
        return ImportResult()

    result = ImportResult()
    for row_number, fields in enumerate(apply_mapping(data_rows, mapping_profile), start=1):
        report = message.add_transaction(fields)
        if report.is_valid:
            result.accepted += 1
        else:
            result.rejected[row_number] = report

    logger.info(f"CSV import finished: {result.accepted} accepted, {len(result.rejected)} rejected.")
    return result
