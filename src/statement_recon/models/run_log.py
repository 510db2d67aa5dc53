"""Historical run log entry for a completed reconciliation."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Optional
from uuid import uuid4

from ..config import ReconciliationSettings
from .records import ReconciliationResult, ReconciliationSummary


@dataclass
class ReconciliationLog:
    """
    Audit entry persisted by the calling application after a run.

    Holds the run timestamp, operator identity, a snapshot of the settings
    used and the summary. The record list is intentionally not kept.
    """

    user_id: str
    user_name: str
    settings: ReconciliationSettings
    summary: ReconciliationSummary
    run_at: datetime = field(default_factory=datetime.now)
    id: str = field(default_factory=lambda: uuid4().hex)

    @classmethod
    def from_result(
        cls,
        result: ReconciliationResult,
        user_id: str,
        user_name: str,
        run_at: Optional[datetime] = None,
    ) -> "ReconciliationLog":
        return cls(
            user_id=user_id,
            user_name=user_name,
            settings=result.settings,
            summary=result.summary,
            run_at=run_at or datetime.now(),
        )

    def to_dict(self) -> dict[str, Any]:
        """JSON-serializable representation."""
        settings_document = self.settings.model_dump(mode="json", by_alias=True)
        return {
            "id": self.id,
            "runAt": self.run_at.isoformat(),
            "userId": self.user_id,
            "userName": self.user_name,
            "settings": settings_document,
            "filters": settings_document["filters"],
            "summary": self.summary.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ReconciliationLog":
        summary_data = data["summary"]
        summary = ReconciliationSummary(
            matched=summary_data["matched"],
            partial_match=summary_data["partialMatch"],
            missing_in_counterparty=summary_data["missingInCounterparty"],
            missing_in_own=summary_data["missingInOwn"],
            total_own_records=summary_data["totalOwnRecords"],
            total_counterparty_records=summary_data["totalCounterpartyRecords"],
            counterparty_source_rows=summary_data.get("counterpartySourceRows", 0),
            total_records=summary_data.get("totalRecords", 0),
            total_amount_difference=summary_data["totalAmountDifference"],
        )
        return cls(
            id=data["id"],
            run_at=datetime.fromisoformat(data["runAt"]),
            user_id=data["userId"],
            user_name=data["userName"],
            settings=ReconciliationSettings.model_validate(data["settings"]),
            summary=summary,
        )
