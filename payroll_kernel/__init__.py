"""
Payroll Kernel

Shared foundation for the statutory payroll core:
- Structured JSON logging with request-scoped context
- Typed exception hierarchy with machine-readable codes
- Pure domain values (Decimal money coercion, percentages)
- Injectable clock
"""

__version__ = "0.1.0"
