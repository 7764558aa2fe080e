"""
Mint Safety Filter - Batch Orchestrator

This module fans a list of mint addresses out to the rule evaluator under a
bounded worker pool and aggregates the verdicts into a BatchReport.

Results are written into a pre-sized buffer indexed by input position, so
completion order never shows up in the output.
"""

import logging
import time
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Callable, List, Optional, Sequence, Union

from accounts.address import MintAddress
from accounts.exceptions import AccountSourceError
from accounts.records import AccountRecord
from accounts.source import AccountSource

from .core import RuleConfiguration, evaluate_mint
from .report import BatchItemResult, BatchReport, Verdict


Evaluator = Callable[[MintAddress, Optional[AccountRecord], Optional[RuleConfiguration]], Verdict]


class BatchOrchestrator:
    """
    Runs the rule evaluator over a batch of mints.

    Reports raw outcomes only; whether a batch is acceptable as a whole is
    decided by the policy layer.
    """

    DEFAULT_CONCURRENCY = 20

    def __init__(self, account_source: Optional[AccountSource] = None,
                 concurrency: int = DEFAULT_CONCURRENCY,
                 evaluator: Evaluator = evaluate_mint):
        """
        Initialize the orchestrator.

        Args:
            account_source: Source used for the bulk fetch
            concurrency: Default maximum number of concurrent evaluations
            evaluator: Function producing a verdict for one mint
        """
        if concurrency < 1:
            raise ValueError(f"Concurrency must be at least 1, got {concurrency}")

        self.account_source = account_source
        self.concurrency = concurrency
        self.evaluator = evaluator
        self.logger = logging.getLogger("validator.batch")

    def run_batch(self, identifiers: Sequence[Union[MintAddress, str]],
                  config: Optional[RuleConfiguration] = None,
                  concurrency: Optional[int] = None,
                  fetched_records: Optional[Sequence[Optional[AccountRecord]]] = None) -> BatchReport:
        """
        Evaluate every mint of a batch.

        Args:
            identifiers: Mint addresses in report order
            config: Rule configuration passed to the evaluator
            concurrency: Maximum concurrent evaluations for this batch
            fetched_records: Pre-fetched records aligned with identifiers;
                skips the bulk fetch when given

        Returns:
            BatchReport with one item per identifier, in input order

        Raises:
            AccountSourceError: If the bulk fetch returns a misaligned result
            ValueError: If fetched_records does not match identifiers
        """
        if not identifiers:
            return BatchReport.empty()

        batch_start = time.perf_counter()
        mints = [MintAddress.coerce(identifier) for identifier in identifiers]
        workers = concurrency if concurrency is not None else self.concurrency
        if workers < 1:
            raise ValueError(f"Concurrency must be at least 1, got {workers}")

        records = self._resolve_records(mints, fetched_records)

        verdicts: List[Optional[Verdict]] = [None] * len(mints)

        with ThreadPoolExecutor(max_workers=min(workers, len(mints)),
                                thread_name_prefix="mint-check") as executor:
            futures = {
                executor.submit(self._evaluate_item, mint, records[index], config): index
                for index, mint in enumerate(mints)
            }
            for future in as_completed(futures):
                verdicts[futures[future]] = future.result()

        duration_ms = (time.perf_counter() - batch_start) * 1000

        items = [
            BatchItemResult(identifier=str(mint), verdict=verdict, success=verdict.ok)
            for mint, verdict in zip(mints, verdicts)
        ]
        report = BatchReport.from_items(items, duration_ms)

        self.logger.debug(
            f"Batch of {report.total} mints checked in {duration_ms:.2f}ms: "
            f"{report.passed} passed, {report.failed} failed"
        )
        return report

    def _resolve_records(self, mints: List[MintAddress],
                         fetched_records: Optional[Sequence[Optional[AccountRecord]]]) -> List[Optional[AccountRecord]]:
        """Return records aligned with mints, fetching them if not supplied."""
        if fetched_records is not None:
            if len(fetched_records) != len(mints):
                raise ValueError(
                    f"Got {len(fetched_records)} pre-fetched records for {len(mints)} mints"
                )
            return list(fetched_records)

        if self.account_source is None:
            raise AccountSourceError("No account source configured and no records supplied")

        self.logger.debug(f"Fetching {len(mints)} mint accounts")
        records = self.account_source.get_multiple_accounts(mints)

        if len(records) != len(mints):
            raise AccountSourceError(
                f"Account source returned {len(records)} records for {len(mints)} mints"
            )
        return list(records)

    def _evaluate_item(self, mint: MintAddress, record: Optional[AccountRecord],
                       config: Optional[RuleConfiguration]) -> Verdict:
        """Evaluate one mint, turning unexpected errors into a failing verdict."""
        try:
            return self.evaluator(mint, record, config)
        except Exception as e:
            self.logger.error(f"Evaluation error for mint {mint}: {e}")
            return Verdict(ok=False, message=f"evaluation error: {e}")
