"""
Mint Safety Filter - Policy Manager

This module provides the PolicyManager class, the public entry point for
checking mints. It selects the rule profile, applies the batch acceptance
threshold, logs a structured summary, and guarantees that execute() returns
a report instead of raising.
"""

import json
import logging
import time
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence, Union

from accounts.address import MintAddress
from accounts.exceptions import InvalidMintAddressError
from accounts.source import AccountSource

from .batch import BatchOrchestrator
from .core import ConfigurationError, DEFAULT_RULES, RuleConfiguration
from .report import BatchReport


MintInput = Union[MintAddress, str, bytes]

# Inputs naming one mint; anything else is iterated as a batch
SINGLE_MINT_TYPES = (MintAddress, str, bytes, bytearray)


def display_identifier(mint: Any) -> str:
    """Report identifier for an input, base58 when it parses as an address."""
    try:
        return str(MintAddress.coerce(mint))
    except InvalidMintAddressError:
        return str(mint)


class RuleProfile(str, Enum):
    """Named rule profiles."""
    FULL = "full"
    FAST = "fast"  # authority checks only; skips extensions and fees


class PolicyManager:
    """
    Runs batches of mint checks under a named rule profile and acceptance threshold.
    """

    DEFAULT_CONCURRENCY = 50

    def __init__(self, account_source: Optional[AccountSource],
                 options: Optional[RuleConfiguration] = None,
                 concurrency: int = DEFAULT_CONCURRENCY,
                 fast_mode: bool = False,
                 max_allowed_failures: int = 0,
                 enabled: bool = True,
                 defaults: RuleConfiguration = DEFAULT_RULES,
                 orchestrator: Optional[BatchOrchestrator] = None):
        """
        Initialize the policy manager.

        Args:
            account_source: Source of mint accounts
            options: Caller rule configuration; unset fields use ``defaults``
            concurrency: Maximum concurrent evaluations per batch
            fast_mode: Use the fast profile unless overridden per call
            max_allowed_failures: Failures a batch may have and still succeed
            enabled: When False every call returns an empty successful report
            defaults: Fully populated default rule configuration
            orchestrator: Batch orchestrator to delegate to
        """
        if max_allowed_failures < 0:
            raise ConfigurationError(
                f"max_allowed_failures must be non-negative, got {max_allowed_failures}"
            )

        self.options = options or RuleConfiguration()
        self.concurrency = concurrency
        self.fast_mode = fast_mode
        self.max_allowed_failures = max_allowed_failures
        self.enabled = enabled
        self.defaults = defaults
        self.orchestrator = orchestrator or BatchOrchestrator(account_source, concurrency=concurrency)
        self.logger = logging.getLogger("validator.policy")

        if self.enabled:
            self.logger.info(
                f"Mint filters enabled{' (FAST mode)' if fast_mode else ''} "
                f"(Token-2022 extensions + mint/freeze authority checks)"
            )

    @classmethod
    def from_config(cls, config: Dict[str, Any], account_source: Optional[AccountSource]) -> 'PolicyManager':
        """
        Build a policy manager from a merged configuration dictionary.

        Args:
            config: Configuration with a ``filters`` section
            account_source: Source of mint accounts

        Returns:
            Configured PolicyManager
        """
        filters = config.get("filters", {})

        try:
            options = RuleConfiguration(
                forbidden_extensions=filters.get("forbidden_extensions"),
                min_fee_basis_points=filters.get("min_basis_points"),
                max_fee_basis_points=filters.get("max_basis_points"),
                check_fees=filters.get("check_fees"),
                check_mint_renounced=filters.get("check_mint_renounced"),
                check_freezable=filters.get("check_freezable")
            )
        except ValueError as e:
            raise ConfigurationError(f"Invalid filter configuration: {e}") from e

        return cls(
            account_source,
            options=options,
            concurrency=filters.get("concurrency", cls.DEFAULT_CONCURRENCY),
            fast_mode=filters.get("fast_mode", False),
            max_allowed_failures=filters.get("max_allowed_failures", 0),
            enabled=filters.get("enabled", True)
        )

    def effective_configuration(self, config: Optional[RuleConfiguration] = None,
                                fast_mode: Optional[bool] = None) -> RuleConfiguration:
        """
        Resolve the configuration a batch runs with.

        The fast profile turns off fee and extension checks and defaults both
        authority checks to on unless the caller set them explicitly.
        """
        base = config or self.options
        fast = self.fast_mode if fast_mode is None else fast_mode

        if fast:
            base = base.model_copy(update={
                "check_fees": False,
                "forbidden_extensions": frozenset(),
                "check_mint_renounced": True if base.check_mint_renounced is None else base.check_mint_renounced,
                "check_freezable": True if base.check_freezable is None else base.check_freezable,
            })

        return base.merged_with(self.defaults)

    @staticmethod
    def active_rule_names(config: RuleConfiguration, fast_mode: bool) -> List[str]:
        """Human-readable names of the checks a configuration enables."""
        names = [
            "Fee Check" if config.check_fees else None,
            "Mint Renounced" if config.check_mint_renounced else None,
            "Freeze Authority" if config.check_freezable else None,
            "Forbidden Extensions" if config.forbidden_extensions else None,
            "Fast Mode" if fast_mode else None,
        ]
        return [name for name in names if name]

    def execute(self, mints: Union[MintInput, Sequence[MintInput]],
                config: Optional[RuleConfiguration] = None,
                fast_mode: Optional[bool] = None,
                acceptance_threshold: Optional[int] = None) -> BatchReport:
        """
        Check one or many mints.

        Never raises: infrastructure failures produce a report that marks
        every requested mint failed with the error message.

        Args:
            mints: A mint address or a sequence of them
            config: Rule configuration overriding the manager's options
            fast_mode: Override the manager's profile selection
            acceptance_threshold: Override the manager's max allowed failures

        Returns:
            BatchReport whose overall_success honours the acceptance threshold
        """
        if not self.enabled:
            self.logger.info("Mint filter check is disabled. Returning without running any checks.")
            return BatchReport.empty()

        mint_list: List[MintInput] = []
        fast = self.fast_mode if fast_mode is None else fast_mode
        threshold = self.max_allowed_failures if acceptance_threshold is None else acceptance_threshold
        batch_start = time.perf_counter()

        try:
            if isinstance(mints, SINGLE_MINT_TYPES):
                mint_list = [mints]
            else:
                mint_list = list(mints)

            if threshold < 0:
                raise ConfigurationError(
                    f"acceptance threshold must be non-negative, got {threshold}"
                )

            effective = self.effective_configuration(config, fast)
            active_rules = self.active_rule_names(effective, fast)
            self.logger.info(f"Running batch with filters: {', '.join(active_rules) or 'None'}")

            report = self.orchestrator.run_batch(
                [MintAddress.coerce(mint) for mint in mint_list],
                effective,
                concurrency=self.concurrency
            )
            report = report.with_acceptance_threshold(threshold)

            self._log_summary(report, active_rules)

            if not report.overall_success:
                self.logger.warning(
                    f"Batch check failed: {report.failed} mints failed, which exceeds "
                    f"the allowed maximum ({threshold})"
                )

            return report

        except Exception as e:
            self.logger.error(f"Batch filter error: {e}")
            report = BatchReport.all_failed(
                [display_identifier(mint) for mint in mint_list],
                str(e),
                (time.perf_counter() - batch_start) * 1000
            )
            self.logger.info(report.to_json())
            return report

    def _log_summary(self, report: BatchReport, active_rules: List[str]):
        """Log one structured summary of a completed batch."""
        summary = {
            "total": report.total,
            "passed": report.passed,
            "failed": report.failed,
            "skipped": report.skipped,
            "overallSuccess": report.overall_success,
            "durationMs": round(report.duration_ms, 2),
            "activeFilters": active_rules,
            "details": [
                {
                    "mint": item.identifier,
                    "success": item.success,
                    "message": item.verdict.message or "OK",
                }
                for item in report.items
            ],
        }
        self.logger.info(json.dumps(summary, indent=2))
