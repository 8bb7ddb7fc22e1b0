"""
posinglib - Family portrait posing reference gallery built with Streamlit

A web application for a photography studio's reference collection with features including:
- Multi-image upload with shared composition tags
- Size-bounded JPEG normalization for record-size-limited storage
- Per-user photo records in DuckDB with optional Cloud Storage backup
- Composition filters (head count, grandparents, parents, children, pets, favorites)
- Full-screen viewer with circular navigation
"""

__version__ = "0.1.0"
__author__ = "posinglib"
__description__ = "Family portrait posing reference gallery with Streamlit"
