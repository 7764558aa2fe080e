"""
Transfer Fee Range Rule

This module implements the TransferFeeRule class that validates the active
transfer fee of a Token-2022 mint against a basis-point range.
"""

from accounts.token import read_active_transfer_fee

from validator.core import MintRule, MintCheckContext


class TransferFeeRule(MintRule):
    """
    Validation rule that enforces the configured transfer fee range.
    
    Fees inside the range produce no trace line. Mints without a
    TransferFeeConfig extension pass.
    """
    
    def __init__(self):
        super().__init__(
            name="transfer_fee",
            description="Enforces minimum and maximum transfer fee basis points"
        )
    
    def is_applicable(self, context: MintCheckContext) -> bool:
        return self.enabled and context.mint.is_extended and bool(context.config.check_fees)
    
    def validate(self, context: MintCheckContext) -> bool:
        fee = read_active_transfer_fee(context.mint.extended)
        if fee is None:
            return True
        
        min_bps = context.config.min_fee_basis_points
        max_bps = context.config.max_fee_basis_points
        
        if fee.basis_points < min_bps:
            context.add_failure(self.name, f"fee bps {fee.basis_points} below min {min_bps}")
            return False
        
        if fee.basis_points > max_bps:
            context.add_failure(self.name, f"fee bps {fee.basis_points} above max {max_bps}")
            return False
        
        self.logger.debug(
            f"Transfer fee {fee.basis_points} bps within [{min_bps}, {max_bps}] "
            f"for {context.identifier.truncated()}"
        )
        return True
