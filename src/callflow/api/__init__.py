"""
HTTP front door.
"""
