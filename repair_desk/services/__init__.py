"""
Service layer for the hosted backend.

This module contains:
- RemoteDataService: collection reads/writes and atomic stock adjustment
- SupabaseAuthProvider / AuthService: identities and role records
"""

from .remote import RemoteDataService
from .auth import AuthService, SupabaseAuthProvider

__all__ = ["RemoteDataService", "AuthService", "SupabaseAuthProvider"]
