"""
Custodial Ledger

A single-asset custodial bank ledger: a manager-operated set of accounts with
permission-gated deposit, withdrawal, credit and debit, checked 128-bit
balance arithmetic, and one reported outcome per call.
"""

__version__ = "1.0.0"
