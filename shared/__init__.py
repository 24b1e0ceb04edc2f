"""
Shared Kernel

Value objects, error taxonomy, unit of work, clock and message bus shared
by the booking and ledger contexts.
"""
