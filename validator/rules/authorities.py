"""
Authority Rules

This module implements the MintAuthorityRule and FreezeAuthorityRule
classes, which reject mints whose privileged authorities are still assigned.
Both apply to legacy and extended mints since they read the shared base layout.
"""

from validator.core import MintRule, MintCheckContext


class MintAuthorityRule(MintRule):
    """Validation rule requiring the mint authority to be renounced."""
    
    def __init__(self):
        super().__init__(
            name="mint_authority",
            description="Requires the mint authority to be renounced"
        )
    
    def is_applicable(self, context: MintCheckContext) -> bool:
        return self.enabled and bool(context.config.check_mint_renounced)
    
    def validate(self, context: MintCheckContext) -> bool:
        if context.mint.authorities.mint_authority_present:
            context.add_failure(self.name, "mint authority not renounced")
            return False
        return True


class FreezeAuthorityRule(MintRule):
    """Validation rule rejecting mints that can freeze holder accounts."""
    
    def __init__(self):
        super().__init__(
            name="freeze_authority",
            description="Rejects mints with an active freeze authority"
        )
    
    def is_applicable(self, context: MintCheckContext) -> bool:
        return self.enabled and bool(context.config.check_freezable)
    
    def validate(self, context: MintCheckContext) -> bool:
        if context.mint.authorities.freeze_authority_present:
            context.add_failure(self.name, "freeze authority present")
            return False
        return True
