"""
TaskBoard — API Routes Package
===============================

Route Inventory:
    - auth.py:    POST /api/auth/sign-up, POST /api/auth/sign-in,
                  GET /api/auth/me, POST /api/auth/password
    - tasks.py:   /api/tasks CRUD and /api/tasks/{id}/status
    - health.py:  GET /health

Routes are thin: validate input, call a service, shape the response.
"""
