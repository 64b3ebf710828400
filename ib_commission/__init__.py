"""
IB commission engine.

Multi-level referral commission engine for the brokerage platform:
upline resolution, monthly volume accumulation, direct joining income,
monthly batch payouts, wallet crediting and reversals.
"""

__version__ = "1.0.0"
