"""
community_classes.services

Service-layer package.

Responsibilities:
- Own transaction boundaries and authorization checks.
- Implement class catalog and admission control on top of the repositories.
"""

# Package marker.


# --- Module Notes -----------------------------------------------------------
# Services receive their storage collaborators (sessions / session factories) through
# their constructors so tests can point them at a throwaway database.
