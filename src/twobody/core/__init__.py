"""
===============================================================================
TWOBODY - Core Package
===============================================================================
Shared constants and input validation.

Modules:
    constants  : Default physical and numerical constants
    validation : Error taxonomy and argument checking helpers
===============================================================================
"""
