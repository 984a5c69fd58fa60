"""
FastAPI RESTful API for the Book Catalog.

This module provides a REST API for:
- Listing books with filters, pagination and hypermedia links
- Fetching, creating, replacing, patching and deleting single books
"""
