"""
Retail Weather

Attaches per-city daily weather context to retail sales records:
- Merges per-attribute weather sources into (date, city) facts
- Resolves temperature, humidity and condition through an
  exact -> state -> region -> global fallback, recording the tier used
- Audits post-reconciliation coverage
"""

__version__ = "1.0.0"
