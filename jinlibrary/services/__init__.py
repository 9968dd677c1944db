"""JinLibrary - Services Package

This package contains the network-facing modules:
- Credential store for the bearer token
- Endpoint descriptors
- HTTP gateway (the only module that talks to the network)
- Typed library API facade
"""
