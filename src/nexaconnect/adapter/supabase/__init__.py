"""Supabase persistence adapter."""

from .api import SupabaseAdapter

__all__ = ["SupabaseAdapter"]
