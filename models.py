from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field as PydanticField, ValidationError, field_validator

import field_validators as fv


# pain.008 Enums

class SequenceType(str, Enum):
    """Position of a debit within the lifecycle of its mandate (SeqTp)."""
    FIRST = "FRST"
    RECURRING = "RCUR"
    ONE_OFF = "OOFF"
    FINAL = "FNAL"


class LocalInstrument(str, Enum):
    """SEPA direct debit scheme (LclInstrm/Cd)."""
    CORE = "CORE"
    B2B = "B2B"
    COR1 = "COR1"


# Validation report

class FieldIssue(BaseModel):
    field: str
    reason: str

    def __str__(self) -> str:
        return f"{self.field}: {self.reason}"


class ValidationReport(BaseModel):
    """
    Outcome of validating one submission.

    An empty report means the submission was accepted. Every call produces a
    new report; nothing is carried over between submissions.
    """
    issues: List[FieldIssue] = PydanticField(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return not self.issues

    @property
    def fields(self) -> List[str]:
        return [issue.field for issue in self.issues]

    def messages(self) -> List[str]:
        return [str(issue) for issue in self.issues]

    @classmethod
    def from_validation_error(cls, error: ValidationError) -> "ValidationReport":
        issues = []
        for detail in error.errors():
            field = ".".join(str(part) for part in detail.get("loc", ())) or "__root__"
            cause = (detail.get("ctx") or {}).get("error")
            reason = str(cause) if cause is not None else detail.get("msg", "invalid value")
            issues.append(FieldIssue(field=field, reason=reason))
        return cls(issues=issues)


# Main Models

class MessageHeader(BaseModel):
    """Document level data shared by the group header and every payment information block."""
    model_config = ConfigDict(frozen=True, extra="forbid")

    message_id: str
    initiator_name: str
    collection_date: date
    creditor_name: str
    creditor_iban: str
    creditor_bic: Optional[str] = None
    creditor_id: str
    currency: str = "EUR"
    local_instrument: LocalInstrument = LocalInstrument.CORE
    # None omits BtchBookg altogether
    batch_booking: Optional[bool] = None
    created_at: Optional[datetime] = None

    @field_validator("message_id", mode="before")
    @classmethod
    def _check_message_id(cls, value):
        return fv.validate_message_id(value)

    @field_validator("initiator_name", "creditor_name", mode="before")
    @classmethod
    def _check_party_name(cls, value):
        return fv.validate_party_name(value)

    @field_validator("collection_date", mode="before")
    @classmethod
    def _check_collection_date(cls, value):
        return fv.validate_date(value)

    @field_validator("creditor_iban", mode="before")
    @classmethod
    def _check_iban(cls, value):
        return fv.validate_iban(value)

    @field_validator("creditor_bic", mode="before")
    @classmethod
    def _check_bic(cls, value):
        return fv.validate_bic(value)

    @field_validator("creditor_id", mode="before")
    @classmethod
    def _check_creditor_id(cls, value):
        return fv.validate_creditor_id(value)

    @field_validator("currency", mode="before")
    @classmethod
    def _check_currency(cls, value):
        return fv.validate_currency(value)


class Transaction(BaseModel):
    """A single direct debit instruction (DrctDbtTxInf)."""
    model_config = ConfigDict(frozen=True, extra="forbid")

    end_to_end_id: str
    iban: str
    bic: Optional[str] = None
    debtor_name: str
    mandate_id: str
    mandate_signature_date: date
    amount: Decimal
    subject: str
    sequence_type: SequenceType
    ultimate_debtor: Optional[str] = None

    @field_validator("end_to_end_id", mode="before")
    @classmethod
    def _check_end_to_end_id(cls, value):
        return fv.validate_transaction_id(value)

    @field_validator("iban", mode="before")
    @classmethod
    def _check_iban(cls, value):
        return fv.validate_iban(value)

    @field_validator("bic", mode="before")
    @classmethod
    def _check_bic(cls, value):
        return fv.validate_bic(value)

    @field_validator("debtor_name", mode="before")
    @classmethod
    def _check_debtor_name(cls, value):
        return fv.validate_name(value)

    @field_validator("ultimate_debtor", mode="before")
    @classmethod
    def _check_ultimate_debtor(cls, value):
        if value is None:
            return None
        return fv.validate_name(value)

    @field_validator("mandate_id", mode="before")
    @classmethod
    def _check_mandate_id(cls, value):
        return fv.validate_mandate_id(value)

    @field_validator("mandate_signature_date", mode="before")
    @classmethod
    def _check_signature_date(cls, value):
        return fv.validate_date(value)

    @field_validator("amount", mode="before")
    @classmethod
    def _check_amount(cls, value):
        return fv.validate_amount(value)

    @field_validator("subject", mode="before")
    @classmethod
    def _check_subject(cls, value):
        return fv.validate_subject(value)

    @field_validator("sequence_type", mode="before")
    @classmethod
    def _check_sequence_type(cls, value):
        return fv.validate_sequence_type(value)

    @property
    def amount_cents(self) -> int:
        """Amount in minor currency units."""
        return int(self.amount.scaleb(2))
