"""Extraction pipeline: trigger, worker and ledger queries."""
