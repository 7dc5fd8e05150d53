# app/core/__init__.py
"""
Core application modules.
Contains essential infrastructure components:
- db: Database configuration and connection management
- security: Password hashing and JWT access tokens
- handshake: Socket handshake authentication
- registry: Room membership registry
- channel / connection: Per-connection event channel and lifecycle state
- pubsub: Fanout dispatcher used by the REST write path
- lifecycle: Connection lifecycle from handshake to teardown
- realtime: Wires the above together into one injectable instance
"""
