import xmltodict
from datetime import datetime, timezone
from typing import Any, Dict, Optional
import logging

from config import DEFAULT_PAIN_VERSION
from models import MessageHeader, SequenceType, Transaction
from transaction_store import SequenceGroup, TransactionStore

logger = logging.getLogger(__name__)

PAIN_NAMESPACE_PREFIX = "urn:iso:std:iso:20022:tech:xsd:pain."
XSI_NAMESPACE = "http://www.w3.org/2001/XMLSchema-instance"

PAYMENT_METHOD_DIRECT_DEBIT = "DD"
SERVICE_LEVEL_SEPA = "SEPA"
CHARGE_BEARER_SHARED = "SLEV"
CREDITOR_SCHEME_PROPRIETARY = "SEPA"

TIMESTAMP_FORMAT = "%Y-%m-%dT%H:%M:%SZ"
DATE_FORMAT = "%Y-%m-%d"


def pain_namespace(schema_version: str = DEFAULT_PAIN_VERSION) -> str:
    return f"{PAIN_NAMESPACE_PREFIX}{schema_version}"


def format_amount(cents: int) -> str:
    """Renders minor units as ``<units>.<two digit cents>``, e.g. 1234 -> "12.34"."""
    if cents < 0:
        raise ValueError(f"Negative amounts cannot be rendered: {cents}")
    return f"{cents // 100}.{cents % 100:02d}"


def format_timestamp(moment: datetime) -> str:
    # Naive datetimes are taken to be UTC already.
    if moment.tzinfo is not None:
        moment = moment.astimezone(timezone.utc)
    return moment.strftime(TIMESTAMP_FORMAT)


def payment_info_id(message_id: str, sequence_type: SequenceType) -> str:
    return f"{message_id}-{sequence_type.value}"


def _financial_institution(bic: Optional[str]) -> Dict[str, Any]:
    # An absent BIC still yields an (empty) FinInstnId element.
    return {"FinInstnId": {"BIC": bic} if bic is not None else None}


def _group_header(header: MessageHeader, store: TransactionStore, created_at: datetime) -> Dict[str, Any]:
    return {
        "MsgId": header.message_id,
        "CreDtTm": format_timestamp(created_at),
        "NbOfTxs": str(store.total_count()),
        "CtrlSum": format_amount(store.total_sum()),
        "InitgPty": {"Nm": header.initiator_name},
    }


def _transaction_info(tx: Transaction, currency: str) -> Dict[str, Any]:
    tx_info: Dict[str, Any] = {
        "PmtId": {"EndToEndId": tx.end_to_end_id},
        "InstdAmt": {"@Ccy": currency, "#text": format_amount(tx.amount_cents)},
        "DrctDbtTx": {
            "MndtRltdInf": {
                "MndtId": tx.mandate_id,
                "DtOfSgntr": tx.mandate_signature_date.strftime(DATE_FORMAT),
            },
        },
        "DbtrAgt": _financial_institution(tx.bic),
        "Dbtr": {"Nm": tx.debtor_name},
        "DbtrAcct": {"Id": {"IBAN": tx.iban}},
    }
    if tx.ultimate_debtor is not None:
        tx_info["UltmtDbtr"] = {"Nm": tx.ultimate_debtor}
    tx_info["RmtInf"] = {"Ustrd": tx.subject}
    return tx_info


def _payment_info(header: MessageHeader, group: SequenceGroup) -> Dict[str, Any]:
    pmt_inf: Dict[str, Any] = {
        "PmtInfId": payment_info_id(header.message_id, group.sequence_type),
        "PmtMtd": PAYMENT_METHOD_DIRECT_DEBIT,
    }
    if header.batch_booking is not None:
        pmt_inf["BtchBookg"] = "true" if header.batch_booking else "false"
    pmt_inf.update({
        "NbOfTxs": str(group.count),
        "CtrlSum": format_amount(group.control_sum),
        "PmtTpInf": {
            "SvcLvl": {"Cd": SERVICE_LEVEL_SEPA},
            "LclInstrm": {"Cd": header.local_instrument.value},
            "SeqTp": group.sequence_type.value,
        },
        "ReqdColltnDt": header.collection_date.strftime(DATE_FORMAT),
        "Cdtr": {"Nm": header.creditor_name},
        "CdtrAcct": {"Id": {"IBAN": header.creditor_iban}},
        "CdtrAgt": _financial_institution(header.creditor_bic),
        "ChrgBr": CHARGE_BEARER_SHARED,
        "CdtrSchmeId": {
            "Id": {
                "PrvtId": {
                    "Othr": {
                        "Id": header.creditor_id,
                        "SchmeNm": {"Prtry": CREDITOR_SCHEME_PROPRIETARY},
                    },
                },
            },
        },
        "DrctDbtTxInf": [_transaction_info(tx, header.currency) for tx in group.transactions],
    })
    return pmt_inf


def build_document(
    header: MessageHeader,
    store: TransactionStore,
    schema_version: str = DEFAULT_PAIN_VERSION,
    created_at: Optional[datetime] = None,
) -> Dict[str, Any]:
    """
    Builds the xmltodict representation of a pain.008 document.

    Args:
        header: Validated message header.
        store: Accepted transactions, grouped by sequence type.
        schema_version: pain version for the namespace and schemaLocation.
        created_at: Creation timestamp. Falls back to header.created_at, then
                    to the current UTC time.

    Returns:
        A dict whose only key is the root element "Document".
    """
    moment = created_at or header.created_at or datetime.now(timezone.utc)
    namespace = pain_namespace(schema_version)

    return {
        "Document": {
            "@xmlns": namespace,
            "@xmlns:xsi": XSI_NAMESPACE,
            "@xsi:schemaLocation": f"{namespace} pain.{schema_version}.xsd",
            "CstmrDrctDbtInitn": {
                "GrpHdr": _group_header(header, store, moment),
                "PmtInf": [_payment_info(header, group) for group in store.groups()],
            },
        }
    }


def generate_pain008_xml(
    header: MessageHeader,
    store: TransactionStore,
    schema_version: str = DEFAULT_PAIN_VERSION,
    pretty_print: bool = True,
    created_at: Optional[datetime] = None,
) -> str:
    """
    Generates a pain.008 XML string from a message header and its transactions.

    Rendering only reads the store, so it may be repeated.

    Args:
        header: Validated message header.
        store: Accepted transactions.
        schema_version: pain version, e.g. "008.002.02".
        pretty_print: If True, the output XML will be indented.
        created_at: Optional fixed creation timestamp (CreDtTm).

    Returns:
        A string containing the pain.008 XML.
    """
    if not isinstance(header, MessageHeader):
        raise TypeError("header must be a MessageHeader instance.")
    if not isinstance(store, TransactionStore):
        raise TypeError("store must be a TransactionStore instance.")

    logger.info(f"Generating pain.{schema_version} XML for message {header.message_id} "
                f"({store.total_count()} transactions in {len(store.groups())} payment blocks)")

    document = build_document(header, store, schema_version, created_at)
    xml_string = xmltodict.unparse(document, pretty=pretty_print, full_document=True, encoding='utf-8')

    logger.info("pain.008 XML string generated successfully.")
    return xml_string
