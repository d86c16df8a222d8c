"""
Receipt Split - Source Package

Turns noisy receipt OCR output into consistent, itemized receipts and
splits their cost among a household of housemates.

DESIGN PRINCIPLES:
1. Absence of data is valid input - never crash on a bad OCR payload
2. One field drives every edit; everything else is derived
3. No silent corrections - mismatches are reported, not fixed
4. Every export step must be auditable
5. External services are swappable
"""

__version__ = "1.0.0"
__author__ = "Receipt Split Team"
