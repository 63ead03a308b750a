"""
BeeBark Backend — API Routes Package
======================================

Route Inventory:
    - connection.py:    /api/connection/...   (request lifecycle, status, list)
    - post.py:          /api/post/...         (feed, create, like, comment)
    - notification.py:  /api/notification/... (inbox, delete, clear)
    - health.py:        GET /health

Routes stay thin: resolve the caller, call one service method, shape the
response. Errors propagate to the handlers registered in app.main.
"""
