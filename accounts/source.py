"""
Mint Safety Filter - Account Source Interface

This module defines the interface for fetching raw mint accounts in bulk.
"""

from abc import ABC, abstractmethod
from typing import List, Optional, Sequence

from .address import MintAddress
from .records import AccountRecord


class AccountSource(ABC):
    """
    Abstract source of raw account records.
    
    Implementations return one entry per requested identifier, in request
    order, with None standing in for accounts that do not exist.
    """
    
    @abstractmethod
    def get_multiple_accounts(self, identifiers: Sequence[MintAddress]) -> List[Optional[AccountRecord]]:
        """
        Fetch account records for the given identifiers.
        
        Args:
            identifiers: Mint addresses to fetch
            
        Returns:
            Order-aligned list of AccountRecord or None
        """
        pass


class StaticAccountSource(AccountSource):
    """In-memory account source keyed by mint address."""
    
    def __init__(self, records: Optional[dict] = None):
        self.records = dict(records or {})
        self.fetch_count = 0
    
    def add(self, identifier: MintAddress, record: Optional[AccountRecord]):
        self.records[identifier] = record
    
    def get_multiple_accounts(self, identifiers: Sequence[MintAddress]) -> List[Optional[AccountRecord]]:
        self.fetch_count += 1
        return [self.records.get(identifier) for identifier in identifiers]
