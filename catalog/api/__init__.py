"""
REST API for the catalog enrichment service.
"""
