"""
connectors — integrations with external services.

Currently holds the Cloudinary image uploader used for user avatars.
"""
