"""
L1 Domain — reading and classifying client configuration.

Pure input → output.  No subprocess calls, no filesystem access.
"""
