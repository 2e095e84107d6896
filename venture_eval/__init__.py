"""
Venture evaluation service.

Evidence-backed screening, due diligence and portfolio monitoring for
early-stage companies.
"""

__version__ = "0.1.0"
