"""
admin_revoker — administrative revocation tool for a certificate authority.

Revokes issued certificates (one serial, or every certificate of a
registration) and invalidates pending/valid authorizations for a domain, by
calling the registration and storage authorities on operator command.

Built on the Railway-Oriented Programming primitives in
admin_revoker.railway for explicit, composable error handling.
"""

__version__ = "0.1.0"
