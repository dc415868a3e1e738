"""
Finance Tracker - Transaction Core

Keeps account balances consistent with the transactions recorded against
them and checks expenses against the user's salary allocation policy
(necessidades / desejos / futuro).

DESIGN PRINCIPLES:
1. A balance only moves when a transaction is completed
2. Validate everything before mutating anything
3. One operation, one atomic unit of work
4. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "Finance Tracker Team"
