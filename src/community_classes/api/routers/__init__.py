"""
community_classes.api.routers

HTTP routers (health, auth, admin and member panels).
"""
