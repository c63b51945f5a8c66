"""
Realtime chat app.

This app contains:
- A Channels consumer for `/ws/chat/` that wraps each socket in a ChatSession
- The in-process Hub that owns the session registry, fan-out and liveness probes
"""
