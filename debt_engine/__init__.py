"""
Debt Amortization Engine

Amortization schedules, next-payment projections, payment posting and
automatic monthly updates for debt accounts. All financial math uses
Decimal fixed-point money.
"""

__version__ = "1.0.0"
