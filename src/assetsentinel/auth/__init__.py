"""Authentication and authorization.

Users log in with email/password and receive a JWT access token carrying
their user id, organization id and role. Every request (and the WebSocket
handshake) is scoped to the token's organization.
"""
