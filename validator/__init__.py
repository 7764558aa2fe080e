"""
Mint Safety Filter Validator Module

This module provides the mint rule evaluator, the bounded-concurrency batch
orchestrator, and the policy manager that applies rule profiles and the
batch acceptance threshold.
"""

from .core import (
    RuleConfiguration,
    MintCheckContext,
    MintRule,
    ValidationError,
    ConfigurationError,
    DEFAULT_RULES,
    DEFAULT_FORBIDDEN_EXTENSIONS,
    default_rules,
    evaluate_mint
)

from .report import (
    Verdict,
    BatchItemResult,
    BatchReport
)

from .batch import BatchOrchestrator
from .policy import PolicyManager, RuleProfile

from .rules import (
    ForbiddenExtensionRule,
    TransferFeeRule,
    MintAuthorityRule,
    FreezeAuthorityRule
)

__all__ = [
    "RuleConfiguration",
    "MintCheckContext",
    "MintRule",
    "ValidationError",
    "ConfigurationError",
    "DEFAULT_RULES",
    "DEFAULT_FORBIDDEN_EXTENSIONS",
    "default_rules",
    "evaluate_mint",
    "Verdict",
    "BatchItemResult",
    "BatchReport",
    "BatchOrchestrator",
    "PolicyManager",
    "RuleProfile",
    "ForbiddenExtensionRule",
    "TransferFeeRule",
    "MintAuthorityRule",
    "FreezeAuthorityRule"
]
