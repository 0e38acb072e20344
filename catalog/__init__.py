"""
Catalog Django application.

This app holds the supplier product catalog and its enrichment pipeline:
AI listing generation with a resumable processing queue, brand/model
equivalence analysis and vehicle year-range matching.
"""
