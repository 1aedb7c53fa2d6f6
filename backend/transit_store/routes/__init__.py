"""
Transit Store Backend - API Routes Package
============================================

Route Inventory:
    - data.py:      POST /data, GET /data/{id}
    - folders.py:   GET/POST /folders, GET/DELETE /folders/{name}
    - projects.py:  /folders/{name}/projects[/{project}]  (nested under folders)
    - health.py:    GET /health

Routes handle HTTP concerns only (bodies, path params, status codes) and
delegate to the services in transit_store.services.
"""
