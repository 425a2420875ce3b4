"""
Property catalog loading and normalization.
"""
