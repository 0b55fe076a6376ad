"""
L5 Orchestration — the resolution engine.
"""
