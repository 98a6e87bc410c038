"""
fanslink: link-in-bio profile service.

A FastAPI application that serves public profile pages and a JSON editor API
on top of a hosted document store, blob storage, an auth provider and a
headless CMS. Every backend has an in-memory implementation so the service
runs locally without credentials.
"""
