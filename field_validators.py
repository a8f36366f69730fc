import re
from datetime import date, datetime
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Optional, Union

# SEPA restricted character set (Latin subset accepted by all banks).
SEPA_CHARSET = r"A-Za-z0-9+?/\-:().,' "
SEPA_TEXT_PATTERN = re.compile(rf"[{SEPA_CHARSET}]+")
# Mandate references may not contain a space.
SEPA_ID_PATTERN = re.compile(r"[A-Za-z0-9+?/\-:().,']+")
CURRENCY_PATTERN = re.compile(r"[A-Z]{3}")
ACCOUNT_PATTERN = re.compile(r"[A-Z0-9]+")
# Characters XML 1.0 cannot carry, control characters included.
XML_FORBIDDEN_PATTERN = re.compile(r"[^\t\n\r\x20-\ud7ff\ue000-\ufffd\U00010000-\U0010ffff]")

MESSAGE_ID_MAX_LENGTH = 29
IDENTIFIER_MAX_LENGTH = 35
SUBJECT_MAX_LENGTH = 140
NAME_MAX_LENGTH = 70

MIN_AMOUNT = Decimal("0.01")
MAX_AMOUNT = Decimal("999999999.99")
CENT = Decimal("0.01")

SEQUENCE_TYPE_CODES = {
    "FIRST": "FRST",
    "RECURRING": "RCUR",
    "ONE_OFF": "OOFF",
    "FINAL": "FNAL",
}

AmountInput = Union[Decimal, int, float, str]


# Helper function for validating string length
def check_length(value: str, max_length: int, min_length: int = 1) -> str:
    if not (min_length <= len(value) <= max_length):
        raise ValueError(f"Length must be between {min_length} and {max_length} characters (got {len(value)}).")
    return value


def check_charset(value: str, pattern: "re.Pattern[str]" = SEPA_TEXT_PATTERN) -> str:
    if not pattern.fullmatch(value):
        bad = sorted({c for c in value if not pattern.fullmatch(c)})
        raise ValueError(f"Contains characters outside the SEPA character set: {''.join(bad)!r}")
    return value


def _restricted_text(value: str, max_length: int, pattern: "re.Pattern[str]" = SEPA_TEXT_PATTERN) -> str:
    if not isinstance(value, str):
        raise ValueError("String required.")
    check_length(value, max_length)
    return check_charset(value, pattern)


def validate_message_id(value: str) -> str:
    """Message id doubles as prefix of every PmtInfId, hence the 29 character cap."""
    return _restricted_text(value, MESSAGE_ID_MAX_LENGTH)


def validate_transaction_id(value: str) -> str:
    return _restricted_text(value, IDENTIFIER_MAX_LENGTH)


def validate_mandate_id(value: str) -> str:
    return _restricted_text(value, IDENTIFIER_MAX_LENGTH, SEPA_ID_PATTERN)


def validate_creditor_id(value: str) -> str:
    return _restricted_text(value, IDENTIFIER_MAX_LENGTH, SEPA_ID_PATTERN)


def validate_subject(value: str) -> str:
    return _restricted_text(value, SUBJECT_MAX_LENGTH)


def validate_name(value: str) -> str:
    return _restricted_text(value, NAME_MAX_LENGTH)


def validate_party_name(value: str) -> str:
    """Initiating party and creditor names: any text XML can carry, 1 to 70 characters."""
    if not isinstance(value, str):
        raise ValueError("String required.")
    check_length(value, NAME_MAX_LENGTH)
    bad = XML_FORBIDDEN_PATTERN.findall(value)
    if bad:
        raise ValueError(f"Contains characters not allowed in XML: {''.join(sorted(set(bad)))!r}")
    return value


def _account_code(value: str, label: str) -> str:
    code = "".join(value.split()).upper()
    if code and not ACCOUNT_PATTERN.fullmatch(code):
        raise ValueError(f"{label} may only contain letters and digits, got {value!r}.")
    return code


def validate_iban(value: str) -> str:
    if not isinstance(value, str):
        raise ValueError("String required.")
    iban = _account_code(value, "IBAN")
    if not iban:
        raise ValueError("IBAN must not be empty.")
    return iban


def validate_bic(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    if not isinstance(value, str):
        raise ValueError("String required.")
    return _account_code(value, "BIC") or None


def validate_currency(value: str) -> str:
    if not isinstance(value, str):
        raise ValueError("String required.")
    currency = value.strip().upper()
    if not CURRENCY_PATTERN.fullmatch(currency):
        raise ValueError(f"Currency must be a three letter ISO 4217 code, got {value!r}.")
    return currency


def validate_sequence_type(value) -> str:
    """Accepts an ISO code (``RCUR``) or a category name (``RECURRING``) and returns the code."""
    raw = getattr(value, "value", value)
    if not isinstance(raw, str):
        raise ValueError(f"Invalid sequence type {value!r}.")
    key = raw.strip().upper()
    if key in SEQUENCE_TYPE_CODES:
        return SEQUENCE_TYPE_CODES[key]
    if key in SEQUENCE_TYPE_CODES.values():
        return key
    raise ValueError(f"Invalid sequence type {value!r}; expected one of {', '.join(SEQUENCE_TYPE_CODES)}.")


def _to_decimal(value: AmountInput) -> Decimal:
    if isinstance(value, bool):
        raise ValueError("Amount must be a number, not a boolean.")
    if isinstance(value, float):
        value = repr(value)
    try:
        amount = Decimal(value.strip() if isinstance(value, str) else value)
    except (InvalidOperation, TypeError, ValueError):
        raise ValueError(f"Invalid amount {value!r}.")
    if not amount.is_finite():
        raise ValueError(f"Invalid amount {value!r}.")
    return amount


def to_minor_units(value: AmountInput) -> int:
    """
    Converts a decimal amount to integer cents.

    The amount must lie in [0.01, 999999999.99]; the conversion rounds to the
    nearest cent with ties away from zero.
    """
    amount = _to_decimal(value)
    if not (MIN_AMOUNT <= amount <= MAX_AMOUNT):
        raise ValueError(f"Amount {amount} out of range ({MIN_AMOUNT} to {MAX_AMOUNT}).")
    return int(amount.quantize(CENT, rounding=ROUND_HALF_UP).scaleb(2))


def validate_amount(value: AmountInput) -> Decimal:
    """Returns the amount rounded to exactly two fraction digits."""
    return Decimal(to_minor_units(value)).scaleb(-2)


def validate_date(value) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        try:
            return datetime.strptime(value.strip(), "%Y-%m-%d").date()
        except ValueError:
            raise ValueError(f"Invalid date {value!r}; expected YYYY-MM-DD.")
    raise ValueError(f"Invalid date {value!r}.")
