"""
Tracking service endpoints.
"""
