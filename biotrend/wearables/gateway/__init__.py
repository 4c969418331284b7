"""Provider gateway implementations.

Modules:
    junction — Junction (Vital) REST client, identity store, link provider
"""
