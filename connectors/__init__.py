"""
connectors — clients for external services.

Currently only GitHub, used to list a developer's public repositories.
"""
