"""
Thin wrappers, one per B2 endpoint.

Each function builds the request for its endpoint and returns the raw
Response; validation, retries and error rewriting live in the services.
"""
