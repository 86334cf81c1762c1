"""Database modules"""

from rra_agreements.db.base import AgreementStoreInterface
from rra_agreements.db.supabase import SupabaseAgreementStore, get_database

__all__ = [
    "AgreementStoreInterface",
    "SupabaseAgreementStore",
    "get_database",
]
