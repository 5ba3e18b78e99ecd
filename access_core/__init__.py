"""
Access-control core for the creator platform.

Decides whether a user may consume a gated capability (a purchased
product, a premium feature, or a suggestion slot) and keeps entitlement
state consistent with the asynchronously confirmed payment process.
"""

__version__ = "0.1.0"
