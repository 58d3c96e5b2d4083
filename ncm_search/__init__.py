"""
Semantic NCM tariff code search service.
"""
