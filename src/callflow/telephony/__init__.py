"""
Telephony provider package.

Keep package import side-effects to a minimum to avoid circular imports.
Do not import factory/adapters here.
"""

__all__ = [
    "api",
    "config",
    "dispatcher",
    "factory",
    "interface",
    "mock_adapter",
    "poller",
    "signing",
]
