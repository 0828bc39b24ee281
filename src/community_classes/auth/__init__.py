"""
community_classes.auth

Authentication/authorization package.

Responsibilities:
- JWT helpers and validation (identity verifier).
- Password hashing and the email/password identity provider.
- FastAPI auth dependencies (Principal + role gate).
"""

# Package marker.
