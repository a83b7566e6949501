"""
In-process data layer for a residential community: keyed stores, resident directory and service request lifecycle.
"""
