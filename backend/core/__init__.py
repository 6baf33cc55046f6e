"""Ledger core: configuration, auth, quantity mutation, batches and history."""
