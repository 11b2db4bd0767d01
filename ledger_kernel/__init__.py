"""
Ledger Kernel

Multi-tenant posting and reversal engine with:
- Balanced double-entry posting at minor-unit precision
- A parallel inventory ledger updated in the same unit of work
- Purpose-tag account resolution per company
- Period locks
- Idempotent document voids
"""

__version__ = "0.1.0"
