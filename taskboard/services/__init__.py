"""
TaskBoard — Services Layer
===========================

What:  Business logic between routes (HTTP) and the database.

Service Inventory:
    - PasswordHasher:        bcrypt hashing and constant-time verification
    - UserDirectory:         account creation, lookup, password rotation
    - CredentialVerifier:    username/password → identity, uniform failures
    - SessionIssuer:         signed, expiring session tokens (PyJWT)
    - TaskStore:             task persistence keyed by id
    - TaskLifecycleManager:  ownership gate and status transitions
    - build_services():      wires all of the above once per process
"""
