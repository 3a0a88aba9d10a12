"""
Showcase resources backend.

This package provides a FastAPI application serving a curated list of
resources (links with media, category, tags and publish/feature flags)
backed by Firestore, with Firebase Authentication guarding admin routes and
Cloudinary (or any S3-compatible bucket) holding the media.
"""
