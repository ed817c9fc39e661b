"""
TripSplit - Source Package

Tracks shared trip expenses, tells each member what they owe or are
owed, and suggests who should pay whom.

DESIGN PRINCIPLES:
1. Balances are derived, never stored
2. The settlement core is pure: same input, same output, same order
3. Reminders are advisory and never change a computed plan
4. Every step must be auditable
5. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "TripSplit Team"
