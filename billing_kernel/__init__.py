"""
Billing kernel: typed exceptions, structured logging and the domain values
shared by the proration engine and the first-invoice service.
"""

__version__ = "1.0.0"
