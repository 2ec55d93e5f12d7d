# =======================================================================================
# sedp/__init__.py - Package Initialization
# =======================================================================================
"""
SEDP Registry - Self-Employment Development Program registrations

Applicant registration with admin review, role-scoped data synchronization
and admin-managed program content.
"""

__version__ = "1.0.0"
__author__ = "SEDP Registry Team"
