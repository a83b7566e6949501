"""
Boundary models for display layers.
"""
