"""
Forbidden Extension Rule

This module implements the ForbiddenExtensionRule class that rejects
Token-2022 mints carrying any extension from the configured forbidden set.
"""

from accounts.token import list_extensions

from validator.core import MintRule, MintCheckContext


class ForbiddenExtensionRule(MintRule):
    """
    Validation rule that rejects mints with forbidden extensions.
    
    A clean mint gets an informational trace line so an audit can tell
    "checked and clean" apart from "not checked".
    """
    
    def __init__(self):
        super().__init__(
            name="forbidden_extensions",
            description="Rejects Token-2022 mints with disallowed extensions"
        )
    
    def is_applicable(self, context: MintCheckContext) -> bool:
        # Extensions only exist on extended mints
        return self.enabled and context.mint.is_extended
    
    def validate(self, context: MintCheckContext) -> bool:
        present = list_extensions(context.mint.extended)
        forbidden = context.config.forbidden_extensions or frozenset()
        found = sorted(present & forbidden)
        
        if found:
            names = ", ".join(ext.name for ext in found)
            context.add_failure(self.name, f"disallowed extensions found: {names}")
            self.logger.debug(f"Mint {context.identifier.truncated()} has forbidden extensions: {names}")
            return False
        
        context.add_note(self.name, "no forbidden extensions found")
        return True
