import logging
from datetime import datetime
from typing import Any, List, Mapping, Optional, Union

from pydantic import ValidationError

from config import SepaConfig
from exceptions import FieldValidationError
from models import MessageHeader, Transaction, ValidationReport
from transaction_store import SequenceGroup, TransactionStore
from xml_generator import generate_pain008_xml
from xsd_validator import SchemaValidator

logger = logging.getLogger(__name__)


class DirectDebitMessage:
    """
    One pain.008 Customer Direct Debit Initiation document.

    Usage:
        message = DirectDebitMessage(message_id="BATCH-2024-05", initiator_name="ACME",
                                     collection_date="2024-06-01", creditor_name="ACME",
                                     creditor_iban="DE89370400440532013000",
                                     creditor_bic="COBADEFFXXX", creditor_id="DE98ZZZ09999999999")
        report = message.add_transaction(end_to_end_id="INV-1", ...)
        xml = message.as_xml()

    The header is validated once; a bad header raises FieldValidationError.
    Transactions are validated one by one and the report is returned, so a
    rejected debit never aborts the batch.
    """

    def __init__(
        self,
        header: Union[MessageHeader, Mapping[str, Any], None] = None,
        config: Optional[SepaConfig] = None,
        **header_fields: Any,
    ):
        self.config = config or SepaConfig()
        self._header = self._build_header(header, header_fields)
        self._store = TransactionStore()
        self._schema_validator = SchemaValidator(self.config)
        self.finalized = False

    @property
    def header(self) -> MessageHeader:
        return self._header

    @staticmethod
    def _build_header(header, header_fields) -> MessageHeader:
        if isinstance(header, MessageHeader):
            if header_fields:
                raise TypeError("Pass either a MessageHeader or header fields, not both.")
            data = header.model_dump()
        else:
            data = dict(header or {})
            data.update(header_fields)
        try:
            return MessageHeader.model_validate(data)
        except ValidationError as e:
            report = ValidationReport.from_validation_error(e)
            logger.warning(f"Invalid message header: {report.messages()}")
            raise FieldValidationError(report, "Invalid message header") from e

    def add_transaction(
        self,
        transaction: Union[Transaction, Mapping[str, Any], None] = None,
        **fields: Any,
    ) -> ValidationReport:
        """Validates and stores one debit. Returns an empty report on success."""
        if self.finalized:
            logger.warning(f"Message {self.header.message_id} was already serialized; adding more transactions.")
        if transaction is None:
            transaction = fields
        elif fields:
            raise TypeError("Pass either a transaction or transaction fields, not both.")
        return self._store.insert(transaction)

    def groups(self) -> List[SequenceGroup]:
        return self._store.groups()

    @property
    def transactions(self) -> List[Transaction]:
        return list(self._store)

    @property
    def transaction_count(self) -> int:
        return self._store.total_count()

    @property
    def control_sum_cents(self) -> int:
        return self._store.total_sum()

    def as_xml(self, pretty_print: bool = True, created_at: Optional[datetime] = None) -> str:
        """
        Renders the document and checks it against the configured schema.

        Raises:
            SchemaFileMissingError, SchemaConformanceError: only when a schema
            directory is configured. The rendered XML is available on the
            exception's ``document`` attribute.
        """
        xml_string = generate_pain008_xml(
            self.header,
            self._store,
            schema_version=self.config.schema_version,
            pretty_print=pretty_print,
            created_at=created_at,
        )
        self._schema_validator.validate(xml_string)
        self.finalized = True
        return xml_string
