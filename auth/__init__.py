"""
auth — User authentication module.

Provides:
  • Signed identity tokens (``TokenService``)
  • Password hashing (bcrypt)
  • ``get_current_user_id`` FastAPI dependency reading ``x-auth-token``
"""
