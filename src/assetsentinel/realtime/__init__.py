"""Real-time delivery — connection hub, client sessions and the WebSocket endpoint.

Events flow one way:
1. Services / scheduler → hub.broadcast(event) (never blocks)
2. Hub dispatch loop → each live session of the organization
3. Session write pump → WebSocket text frame → frontend
"""
