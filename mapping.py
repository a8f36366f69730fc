import json
from typing import Any, Dict, List
from pydantic import BaseModel, Field as PydanticField, ValidationError, field_validator
import logging

from models import Transaction

logger = logging.getLogger(__name__)

# Transaction fields left out when their CSV cell is blank.
OPTIONAL_FIELDS = {"bic", "ultimate_debtor"}


class MappingProfile(BaseModel):
    """
    Describes how the columns of a CSV export become transaction fields.

    - profile_name: A user-friendly name for the mapping.
    - mappings: CSV column header -> Transaction field (e.g. "Betrag" -> "amount").
    - defaults: Transaction field -> constant value used when no column provides
                it (e.g. a fixed "sequence_type" for the whole file).
    - decimal_comma: Amounts are written with a decimal comma ("1.234,56").
    """
    profile_name: str
    mappings: Dict[str, str]
    defaults: Dict[str, Any] = PydanticField(default_factory=dict)
    decimal_comma: bool = False

    @field_validator("mappings", "defaults")
    @classmethod
    def _check_targets(cls, value: Dict[str, Any], info):
        targets = value.values() if info.field_name == "mappings" else value.keys()
        unknown = sorted(set(targets) - set(Transaction.model_fields))
        if unknown:
            raise ValueError(f"Unknown transaction field(s): {', '.join(unknown)}")
        return value


def normalize_amount(raw: str, decimal_comma: bool) -> str:
    text = raw.replace(" ", "")
    if decimal_comma:
        text = text.replace(".", "").replace(",", ".")
    return text


def apply_mapping(data_rows: List[Dict[str, Any]], mapping_profile: MappingProfile) -> List[Dict[str, Any]]:
    """
    Applies mapping rules to turn raw CSV rows into transaction field dicts.

    The result is not validated here; it is meant for
    DirectDebitMessage.add_transaction, which reports per row.

    Args:
        data_rows: A list of dictionaries, where each dictionary represents a row of data.
        mapping_profile: The MappingProfile object containing transformation rules.

    Returns:
        One dict of transaction fields per input row, in input order.
    """
    mapped_rows: List[Dict[str, Any]] = []

    for i, row_data in enumerate(data_rows):
        fields: Dict[str, Any] = dict(mapping_profile.defaults)
        for csv_column, field_name in mapping_profile.mappings.items():
            if csv_column not in row_data:
                logger.warning(f"Row {i+1}: CSV column '{csv_column}' defined in mapping not found in source data. This mapping will be skipped for this row.")
                continue

            value = row_data[csv_column]
            if isinstance(value, str):
                value = value.strip()
                if not value and field_name in OPTIONAL_FIELDS:
                    fields.pop(field_name, None)
                    continue
                if field_name == "amount":
                    value = normalize_amount(value, mapping_profile.decimal_comma)
            fields[field_name] = value

        mapped_rows.append(fields)

    return mapped_rows


def load_mapping_profile(profile_path: str) -> MappingProfile:
    """
    Loads a mapping profile from a JSON file.

    Args:
        profile_path: The path to the JSON mapping profile file.

    Returns:
        An instance of MappingProfile.
    """
    try:
        with open(profile_path, 'r', encoding='utf-8') as f:
            data = json.load(f)
        return MappingProfile(**data)
    except FileNotFoundError:
        logger.error(f"Mapping profile not found at: {profile_path}")
        raise
    except json.JSONDecodeError as e:
        logger.error(f"Error decoding JSON from mapping profile {profile_path}: {e}")
        raise ValueError(f"Error decoding JSON from mapping profile: {profile_path}") from e
    except ValidationError as e:
        logger.error(f"Validation error loading mapping profile {profile_path}: {e}")
        raise ValueError(f"Invalid mapping profile format {profile_path}: {e}") from e
