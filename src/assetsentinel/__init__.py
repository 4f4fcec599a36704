"""AssetSentinel — multi-tenant asset maintenance backend.

Organizations manage assets, maintenance plans, work orders and inventory.
Connected clients of an organization receive live notifications when work
orders move, stock runs low, or maintenance falls due.
"""

__version__ = "0.1.0"
