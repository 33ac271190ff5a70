"""
CMS backend package.

A FastAPI service for the UniUnity.space site: blog posts, the singleton
site configuration and admin authentication, backed by SQLAlchemy or an
in-memory store.
"""
