"""
auth — User authentication module.

Provides:
  • Access / refresh token creation & verification
  • Password hashing (bcrypt)
  • Refresh-token encryption at rest (Fernet)
  • Register / Login / Logout / Refresh API routes
  • ``get_current_user`` FastAPI dependency
"""
