"""
Mint Safety Filter - Rule Evaluation Core

This module provides the rule configuration, the per-mint check context, the
MintRule base class, and evaluate_mint(), the pure function that turns one
raw mint account into a Verdict.

Evaluation order for a mint:
- Missing account fails immediately
- Extended (Token-2022) decode, falling back to the legacy layout on owner mismatch
- Forbidden extension and transfer fee rules (extended mints only)
- Mint and freeze authority rules (both formats)
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import FrozenSet, List, Optional, Sequence

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from accounts.address import MintAddress
from accounts.exceptions import TokenDecodeError
from accounts.records import AccountRecord
from accounts.token import DecodedMint, ExtensionType, decode_mint

from .report import Verdict


logger = logging.getLogger("validator.engine")

MESSAGE_SEPARATOR = " | "
ACCOUNT_NOT_FOUND = "account not found"

MAX_BASIS_POINTS = 10_000


class ValidationError(Exception):
    """Base exception for validation errors."""
    pass


class ConfigurationError(ValidationError):
    """Raised when rule or policy configuration is invalid."""
    pass


class RuleConfiguration(BaseModel):
    """
    Options controlling which checks run and their limits.

    Every field may be left unset; unset fields are filled from defaults
    with merged_with().
    """

    model_config = ConfigDict(frozen=True)

    forbidden_extensions: Optional[FrozenSet[ExtensionType]] = Field(
        None, description="Extensions that disqualify a mint"
    )
    min_fee_basis_points: Optional[int] = Field(None, ge=0, le=MAX_BASIS_POINTS)
    max_fee_basis_points: Optional[int] = Field(None, ge=0, le=MAX_BASIS_POINTS)
    check_fees: Optional[bool] = None
    check_mint_renounced: Optional[bool] = None
    check_freezable: Optional[bool] = None

    @field_validator('forbidden_extensions', mode='before')
    @classmethod
    def parse_extensions(cls, v):
        """Accept extension names and numbers alongside enum members."""
        if v is None:
            return v
        if isinstance(v, (str, int)):
            v = [v]

        parsed = set()
        for item in v:
            if isinstance(item, ExtensionType):
                parsed.add(item)
            elif isinstance(item, str):
                parsed.add(ExtensionType.from_name(item))
            else:
                parsed.add(ExtensionType(item))
        return frozenset(parsed)

    @model_validator(mode='after')
    def validate_fee_range(self):
        if (self.min_fee_basis_points is not None and self.max_fee_basis_points is not None
                and self.min_fee_basis_points > self.max_fee_basis_points):
            raise ValueError(
                f"min_fee_basis_points ({self.min_fee_basis_points}) cannot exceed "
                f"max_fee_basis_points ({self.max_fee_basis_points})"
            )
        return self

    def merged_with(self, defaults: 'RuleConfiguration') -> 'RuleConfiguration':
        """Return a configuration with unset fields taken from ``defaults``."""
        values = {}
        for name in type(self).model_fields:
            value = getattr(self, name)
            values[name] = value if value is not None else getattr(defaults, name)
        return RuleConfiguration(**values)

    def forbidden_names(self) -> List[str]:
        return [ext.name for ext in sorted(self.forbidden_extensions or ())]


DEFAULT_FORBIDDEN_EXTENSIONS = frozenset({
    ExtensionType.MintCloseAuthority,
    ExtensionType.PausableConfig,
    ExtensionType.ConfidentialTransferMint,
    ExtensionType.NonTransferable,
    ExtensionType.TransferHook,
    ExtensionType.PermanentDelegate,
})

DEFAULT_RULES = RuleConfiguration(
    forbidden_extensions=DEFAULT_FORBIDDEN_EXTENSIONS,
    min_fee_basis_points=0,
    max_fee_basis_points=MAX_BASIS_POINTS,
    check_fees=True,
    check_mint_renounced=True,
    check_freezable=True
)


@dataclass(frozen=True)
class TraceLine:
    """One line of a verdict message."""
    rule_name: str
    text: str
    is_failure: bool


@dataclass
class MintCheckContext:
    """
    Context object passed between mint rules.

    Holds the decoded mint, the resolved configuration, and the trace lines
    produced so far in generation order.
    """
    identifier: MintAddress
    mint: DecodedMint
    config: RuleConfiguration
    lines: List[TraceLine] = field(default_factory=list)

    def add_failure(self, rule_name: str, message: str):
        """Record a failing check."""
        self.lines.append(TraceLine(rule_name, message, True))

    def add_note(self, rule_name: str, message: str):
        """Record an informational line that does not fail the mint."""
        self.lines.append(TraceLine(rule_name, message, False))

    def has_failures(self) -> bool:
        return any(line.is_failure for line in self.lines)

    def to_verdict(self) -> Verdict:
        return Verdict(
            ok=not self.has_failures(),
            message=MESSAGE_SEPARATOR.join(line.text for line in self.lines)
        )


class MintRule(ABC):
    """
    Abstract base class for mint rules.

    Rules are stateless so a single instance can be shared by concurrent
    evaluations.
    """

    def __init__(self, name: str, description: str, enabled: bool = True):
        self.name = name
        self.description = description
        self.enabled = enabled
        self.logger = logging.getLogger(f"validator.rules.{name}")

    @abstractmethod
    def validate(self, context: MintCheckContext) -> bool:
        """
        Check the mint in the context, recording trace lines.

        Args:
            context: Mint check context

        Returns:
            True if the check passes, False otherwise
        """
        pass

    def is_applicable(self, context: MintCheckContext) -> bool:
        """
        Check if this rule applies to the given context.

        Args:
            context: Mint check context

        Returns:
            True if this rule should be applied
        """
        return self.enabled


_default_rules: Optional[List[MintRule]] = None


def default_rules() -> List[MintRule]:
    """Rules applied by evaluate_mint, in trace order."""
    global _default_rules

    if _default_rules is None:
        # Import here to avoid circular imports
        from .rules.extensions import ForbiddenExtensionRule
        from .rules.transfer_fee import TransferFeeRule
        from .rules.authorities import MintAuthorityRule, FreezeAuthorityRule

        _default_rules = [
            ForbiddenExtensionRule(),
            TransferFeeRule(),
            MintAuthorityRule(),
            FreezeAuthorityRule(),
        ]

    return _default_rules


def evaluate_mint(identifier: MintAddress, record: Optional[AccountRecord],
                  config: Optional[RuleConfiguration] = None,
                  rules: Optional[Sequence[MintRule]] = None) -> Verdict:
    """
    Evaluate one mint account against the configured rules.

    Performs no I/O. Identical inputs always produce equal verdicts.

    Args:
        identifier: Address of the mint
        record: Raw account record, or None if the account does not exist
        config: Rule configuration; unset fields use DEFAULT_RULES
        rules: Rules to apply instead of default_rules()

    Returns:
        Verdict with the trace of every check performed
    """
    if record is None:
        return Verdict(ok=False, message=ACCOUNT_NOT_FOUND)

    resolved = (config or DEFAULT_RULES).merged_with(DEFAULT_RULES)

    try:
        mint = decode_mint(identifier, record)
    except TokenDecodeError as e:
        logger.debug(f"Failed to decode mint {identifier}: {e}")
        return Verdict(ok=False, message=f"error unpacking mint: {e}")

    context = MintCheckContext(identifier=identifier, mint=mint, config=resolved)

    for rule in (rules if rules is not None else default_rules()):
        if not rule.is_applicable(context):
            continue

        passed = rule.validate(context)
        logger.debug(f"Rule {rule.name} {'passed' if passed else 'failed'} for {identifier.truncated()}")

    return context.to_verdict()
