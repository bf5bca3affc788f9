"""Entra ID group membership reconciliation."""
