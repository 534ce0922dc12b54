"""
Multi-step workflows composed from provider operations.
"""
