"""
HTTP surface for merchant search.

Exposes the FastAPI app in merchant_search.api.server.
"""
