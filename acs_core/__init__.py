"""
ACS Core Package
================
Keyholder trust-and-audit engine of the access-control system.

Provides:
- sshd ancestry and auth.log correlation for forced SSH commands
- authorized_keys lookup by legacy MD5 / SHA256 key fingerprint
- Pluggable audit storage (SQLite default)
- State directory projection for the status/door daemons
"""
__version__ = "0.1.0"
