"""
community_classes.api

API package for the Community Classes service.

Responsibilities:
- FastAPI app factory and router modules.
- API-layer dependency wiring, error mapping and request/response models.
"""

# Package marker.


# --- Module Notes -----------------------------------------------------------
# The API layer should remain thin: request validation + auth + delegation to services.
