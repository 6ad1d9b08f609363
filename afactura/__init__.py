"""
AFACTURA - Source Package

Invoicing back-end for small businesses operating under the
Angolan tax authority (AGT) regime.

DESIGN PRINCIPLES:
1. Every state-changing action leaves an audit entry
2. Audit failures never break the business action
3. Backups are encrypted end to end; only the password restores them
4. Cryptographic and format errors always fail loudly
5. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "AFACTURA Team"
