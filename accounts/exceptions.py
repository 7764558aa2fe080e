"""
Mint Safety Filter - Account Exceptions

This module defines custom exceptions for mint address parsing and
token account decoding.
"""


class AccountError(Exception):
    """Base exception for account-related errors."""
    pass


class InvalidMintAddressError(AccountError):
    """Exception raised when a mint address cannot be parsed."""
    pass


class TokenDecodeError(AccountError):
    """Exception raised when a token mint account cannot be decoded."""
    pass


class InvalidAccountOwnerError(TokenDecodeError):
    """Exception raised when an account is not owned by the expected token program."""
    
    def __init__(self, expected: str, actual: str):
        self.expected = expected
        self.actual = actual
        super().__init__(f"Account owner {actual} does not match token program {expected}")


class InvalidAccountSizeError(TokenDecodeError):
    """Exception raised when account data has a size no mint layout allows."""
    
    def __init__(self, size: int, message: str = None):
        self.size = size
        if message is None:
            message = f"Invalid mint account size: {size} bytes"
        super().__init__(message)


class InvalidAccountTypeError(TokenDecodeError):
    """Exception raised when an extended account is not tagged as a mint."""
    pass


class AccountSourceError(AccountError):
    """Exception raised when an account source returns an unusable response."""
    pass
