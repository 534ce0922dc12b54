"""
callflow: signed telephony API client and voice-call workflow service.
"""

__version__ = "0.1.0"
