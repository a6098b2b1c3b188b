"""Visionara - identity and credential consistency backend.

Keeps administrator accounts consistent between an external identity
provider and the application's relational store, issues rate-limited
verification codes for password changes, and records every privileged
mutation in a tamper-evident audit ledger.
"""

__version__ = "0.1.0"
