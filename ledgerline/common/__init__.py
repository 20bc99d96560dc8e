"""Small helpers shared across Ledgerline layers."""
