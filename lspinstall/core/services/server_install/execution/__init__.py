"""
L4 Execution — collaborators that act on a resolved instruction.
"""
