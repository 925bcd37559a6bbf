"""
Compensation list for committed stock writes.

Stock deductions happen after the order exists, with no transaction spanning
the two systems. Each committed write is recorded here; if a later line fails,
``compensate`` writes every recorded old stock back, newest first.
"""
import logging
from dataclasses import dataclass, field
from typing import Iterator, List, Optional, Tuple

from pos_checkout.models.checkout_models import DeductionRecord

logger = logging.getLogger(__name__)


@dataclass
class CompensationReport:
    restored: List[DeductionRecord] = field(default_factory=list)
    failed: List[Tuple[DeductionRecord, str]] = field(default_factory=list)

    @property
    def complete(self) -> bool:
        return not self.failed


class CompensationList:
    """Ordered record of committed deductions that can be undone once."""

    def __init__(self, order_id: Optional[int] = None):
        self.order_id = order_id
        self._records: List[DeductionRecord] = []
        self._compensated = False

    def record(self, record: DeductionRecord) -> None:
        if self._compensated:
            raise RuntimeError("Cannot record after compensation has run")
        self._records.append(record)

    @property
    def records(self) -> List[DeductionRecord]:
        return list(self._records)

    def __len__(self) -> int:
        return len(self._records)

    def __iter__(self) -> Iterator[DeductionRecord]:
        return iter(self._records)

    async def compensate(self, inventory) -> CompensationReport:
        """
        Restore every recorded old stock level, newest first. Best-effort:
        a failed restore is logged and reported, and the rest still run.
        """
        report = CompensationReport()
        if self._compensated:
            return report
        self._compensated = True

        if not self._records:
            return report

        logger.info(
            f"Rolling back {len(self._records)} inventory deduction(s)",
            extra={"order_id": self.order_id},
        )
        for record in reversed(self._records):
            try:
                await inventory.write_stock(record.key, record.old_stock)
                report.restored.append(record)
                logger.info(
                    f"Rolled back inventory for {record.key} to {record.old_stock:.3f}",
                    extra={"order_id": self.order_id, "line_index": record.line_index},
                )
            except Exception as e:
                report.failed.append((record, str(e)))
                logger.error(
                    f"Failed to roll back inventory for {record.key} "
                    f"(expected {record.old_stock:.3f}, left at {record.new_stock:.3f}): {e}",
                    extra={"order_id": self.order_id, "line_index": record.line_index},
                )
        return report
