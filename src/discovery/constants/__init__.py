"""
Rule tables for classification, facet cleaning and gender detection.
"""
