"""
Mint Safety Filter - Verdict and Batch Report Models

This module defines the Pydantic models returned to callers. Field names
serialize in camelCase (``overallSuccess``, ``durationMs``) and form the
stable contract external systems parse.
"""

from typing import List, Sequence

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class ReportModel(BaseModel):
    """Base for immutable report models with camelCase serialization."""

    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)


class Verdict(ReportModel):
    """Outcome of checking one mint, with the trace of every check performed."""

    ok: bool = Field(..., description="True if no check failed")
    message: str = Field("", description="Check trace lines joined with ' | '")


class BatchItemResult(ReportModel):
    """Verdict for one identifier of a batch."""

    identifier: str = Field(..., description="Canonical base58 mint address")
    verdict: Verdict
    success: bool


class BatchReport(ReportModel):
    """Aggregate outcome of a batch check."""

    total: int = Field(0, ge=0)
    passed: int = Field(0, ge=0)
    failed: int = Field(0, ge=0)
    # Reserved for partial-fetch failures; never produced yet
    skipped: int = Field(0, ge=0)
    overall_success: bool = True
    duration_ms: float = Field(0.0, ge=0)
    items: List[BatchItemResult] = Field(default_factory=list)

    @classmethod
    def empty(cls) -> 'BatchReport':
        """Vacuously successful report for an empty or disabled batch."""
        return cls()

    @classmethod
    def from_items(cls, items: List[BatchItemResult], duration_ms: float) -> 'BatchReport':
        """Build a report by counting item outcomes."""
        passed = sum(1 for item in items if item.success)
        failed = len(items) - passed
        return cls(
            total=len(items),
            passed=passed,
            failed=failed,
            skipped=0,
            overall_success=failed == 0,
            duration_ms=duration_ms,
            items=items
        )

    @classmethod
    def all_failed(cls, identifiers: Sequence[str], message: str, duration_ms: float) -> 'BatchReport':
        """Report marking every identifier failed with the same message."""
        items = [
            BatchItemResult(
                identifier=identifier,
                verdict=Verdict(ok=False, message=message),
                success=False
            )
            for identifier in identifiers
        ]
        return cls(
            total=len(items),
            passed=0,
            failed=len(items),
            skipped=0,
            overall_success=False,
            duration_ms=duration_ms,
            items=items
        )

    def with_acceptance_threshold(self, threshold: int) -> 'BatchReport':
        """Copy of this report whose overall success tolerates ``threshold`` failures."""
        return self.model_copy(update={"overall_success": self.failed <= threshold})

    def failed_items(self) -> List[BatchItemResult]:
        return [item for item in self.items if not item.success]

    def to_dict(self) -> dict:
        return self.model_dump(by_alias=True)

    def to_json(self, indent: int = 2) -> str:
        return self.model_dump_json(by_alias=True, indent=indent)
