"""
Mint Safety Filter Rules Module

This module contains concrete mint rules: forbidden Token-2022 extensions,
transfer fee range, and mint/freeze authority checks.
"""

from .extensions import ForbiddenExtensionRule
from .transfer_fee import TransferFeeRule
from .authorities import MintAuthorityRule, FreezeAuthorityRule

__all__ = [
    "ForbiddenExtensionRule",
    "TransferFeeRule",
    "MintAuthorityRule",
    "FreezeAuthorityRule"
]
