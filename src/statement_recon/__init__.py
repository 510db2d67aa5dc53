"""Statement reconciliation: match an own ledger export against a counterparty statement."""

__version__ = "0.1.0"
