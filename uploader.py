import csv
import logging
from typing import Dict, List, Optional

logger = logging.getLogger(__name__)

# Delimiters seen in bank and accounting exports.
CANDIDATE_DELIMITERS = ",;\t|"


def _detect_delimiter(sample: str) -> str:
    try:
        return csv.Sniffer().sniff(sample, delimiters=CANDIDATE_DELIMITERS).delimiter
    except csv.Error:
        return ","


def read_csv_file(file_path: str, delimiter: Optional[str] = None) -> List[Dict[str, str]]:
    """
    Reads a CSV export of debit instructions.

    Header names and cell values are stripped of surrounding whitespace and
    rows without any content are skipped.

    Args:
        file_path: The path to the CSV file.
        delimiter: Field separator. Detected from the first lines when omitted.

    Returns:
        A list of dictionaries keyed by column header. Empty if the file is
        empty or only contains a header row.

    Raises:
        FileNotFoundError: If the CSV file does not exist.
        ValueError: If there's an issue decoding the file or a CSV formatting error.
    """
    rows: List[Dict[str, str]] = []
    try:
        with open(file_path, mode='r', newline='', encoding='utf-8-sig') as csvfile:
            if delimiter is None:
                delimiter = _detect_delimiter(csvfile.read(4096))
                csvfile.seek(0)
            reader = csv.DictReader(csvfile, delimiter=delimiter)
            if not reader.fieldnames:
                return []
            for row in reader:
                cleaned = {
                    (key or "").strip(): (value or "").strip()
                    for key, value in row.items()
                    if key is not None
                }
                if not any(cleaned.values()):
                    continue
                rows.append(cleaned)
    except FileNotFoundError:
        raise FileNotFoundError(f"CSV file not found at: {file_path}")
    except UnicodeDecodeError:
        raise ValueError(f"Encoding issue with CSV file: {file_path}. Please ensure it's UTF-8 encoded.")
    except csv.Error as e:
        raise ValueError(f"Error reading CSV file {file_path}: {e}")

    logger.info(f"Read {len(rows)} rows from {file_path} (delimiter {delimiter!r}).")
    return rows
