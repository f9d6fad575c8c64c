"""
Retail ledger - multi-tenant inventory ledger and point-of-sale engine
"""
__version__ = "0.1.0"
