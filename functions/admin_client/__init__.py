"""
Admin console client: a requests-based API client and a state store that
mirrors the server's configuration and blog posts for one admin session.
"""
