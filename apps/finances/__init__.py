"""Finances app package.

This app contains the internal wallet ledger: the immutable transaction
audit trail and the ``Ledger`` component that moves money between user
balances.
"""
