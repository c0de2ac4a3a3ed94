"""Helpers for feeding claim data to the engine."""

from claim_knowledge.tools.data_loader import load_claim_records, load_raw_claims

__all__ = ["load_claim_records", "load_raw_claims"]
