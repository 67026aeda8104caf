"""
Realtime delivery: broadcaster, presence, WebSocket consumer and change feed.
"""
