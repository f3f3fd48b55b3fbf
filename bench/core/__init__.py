"""
Core models and engines, independent of any frontend.
"""
