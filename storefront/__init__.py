"""
Storefront - e-commerce backend.

Accounts with cookie-carried session tokens, an admin role gate, and
admission-controlled product image uploads.
"""

__version__ = "0.1.0"
