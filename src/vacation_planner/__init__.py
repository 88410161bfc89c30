"""
Vacation and Weekend Shift Planner

Tracks vacation and shift-free wishes for a small roster, flags conflicts
with weekend shifts, warns about over-capacity vacation days and fills
open weekend shifts with a fair-share greedy planner.
"""

__version__ = "1.0.0"
__author__ = "Vacation Planner Team"
