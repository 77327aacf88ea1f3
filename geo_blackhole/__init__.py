"""
geo-blackhole - country-based BGP blackholing for gobgpd.

Provides:
- Desired block set computation from a MaxMind country database
- Host-level allow-list exclusions
- Minimal-churn reconciliation against the gobgpd global RIB
- Community and next hop encoding for blackhole announcements
"""

__version__ = "0.1.0"
