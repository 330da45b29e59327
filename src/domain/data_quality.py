"""Data-quality reporting.

Malformed records never abort a computation. Each component notes the records
it had to exclude or degrade here, and the report travels alongside the
normal result so callers can surface the counts.
"""

from typing import List

from pydantic import BaseModel, Field


class DataQualityReport(BaseModel):
    """Record ids affected by data-quality problems.

    Attributes:
        missing_admission_date: Records without an admission date; excluded
            from any temporal filter and from date-based statistics
        unresolved_outcome_date: Non-active records with no date in the
            outcome fallback chain; still counted in outcome totals
        inconsistent_dates: Records whose end of stay precedes admission
    """

    missing_admission_date: List[str] = Field(default_factory=list)
    unresolved_outcome_date: List[str] = Field(default_factory=list)
    inconsistent_dates: List[str] = Field(default_factory=list)

    def flag_missing_admission(self, record_id: str) -> None:
        if record_id not in self.missing_admission_date:
            self.missing_admission_date.append(record_id)

    def flag_unresolved_outcome(self, record_id: str) -> None:
        if record_id not in self.unresolved_outcome_date:
            self.unresolved_outcome_date.append(record_id)

    def flag_inconsistent(self, record_id: str) -> None:
        if record_id not in self.inconsistent_dates:
            self.inconsistent_dates.append(record_id)

    @property
    def issue_count(self) -> int:
        return (
            len(self.missing_admission_date)
            + len(self.unresolved_outcome_date)
            + len(self.inconsistent_dates)
        )

    @property
    def is_clean(self) -> bool:
        return self.issue_count == 0
