"""Campus loyalty points ledger."""
