"""Pure routing and auth logic: prefixes, mounts, matching, credentials.

These modules are free of FastAPI/HTTP concerns so they can be unit-tested
and reused by the dispatcher, the CLI and the smoke runner alike.
"""
__all__ = ["paths", "registry", "router", "credentials"]
