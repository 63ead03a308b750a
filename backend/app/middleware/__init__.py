"""
BeeBark Backend — HTTP Middleware
===================================

Request → [Rate Limit] → [Request ID] → [Access Log] → [GZip] → [CORS] → route

Socket.IO traffic never reaches this chain: socketio.ASGIApp answers the
socket path itself and forwards everything else to FastAPI.
"""
