"""
Auth app: credential store, token service and the /api/v1/ auth endpoints.
"""
