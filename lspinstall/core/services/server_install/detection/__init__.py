"""
L3 Detection — read-only inspection of configuration modules and docs.
"""
