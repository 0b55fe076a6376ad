"""
L2 Resolver — compute executable names from client descriptors.
"""
