import logging
from typing import Any, Dict, Iterator, List, Mapping, NamedTuple, Tuple, Union

from pydantic import ValidationError

from models import SequenceType, Transaction, ValidationReport

logger = logging.getLogger(__name__)


class SequenceGroup(NamedTuple):
    """Snapshot of the transactions sharing one sequence type."""
    sequence_type: SequenceType
    transactions: Tuple[Transaction, ...]
    control_sum: int  # minor units

    @property
    def count(self) -> int:
        return len(self.transactions)


class TransactionStore:
    """
    Accepted transactions grouped by sequence type.

    Groups are created on first use of a sequence type and keep that order.
    Each group keeps a running control sum in minor units. Insertion is
    all-or-nothing: a rejected submission leaves the store untouched.
    """

    def __init__(self) -> None:
        self._transactions: Dict[SequenceType, List[Transaction]] = {}
        self._sums: Dict[SequenceType, int] = {}

    def insert(self, transaction: Union[Transaction, Mapping[str, Any]]) -> ValidationReport:
        # Instances are re-checked too: model_copy and model_construct skip validation.
        if isinstance(transaction, Transaction):
            data = transaction.model_dump()
        else:
            data = dict(transaction)
        try:
            record = Transaction.model_validate(data)
        except ValidationError as e:
            report = ValidationReport.from_validation_error(e)
            logger.warning(f"Rejected transaction {data.get('end_to_end_id')!r}: {report.messages()}")
            return report

        seq_type = record.sequence_type
        self._transactions.setdefault(seq_type, []).append(record)
        self._sums[seq_type] = self._sums.get(seq_type, 0) + record.amount_cents
        logger.debug(f"Accepted transaction {record.end_to_end_id} ({seq_type.value}, {record.amount_cents} cents).")
        return ValidationReport()

    def groups(self) -> List[SequenceGroup]:
        return [
            SequenceGroup(seq_type, tuple(txs), self._sums[seq_type])
            for seq_type, txs in self._transactions.items()
        ]

    def total_count(self) -> int:
        return sum(len(txs) for txs in self._transactions.values())

    def total_sum(self) -> int:
        return sum(self._sums.values())

    def __len__(self) -> int:
        return self.total_count()

    def __iter__(self) -> Iterator[Transaction]:
        for txs in self._transactions.values():
            yield from txs
