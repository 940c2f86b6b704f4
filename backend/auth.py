"""
Static credential check gating the admin panel. Demo only.
"""
import hmac

from config import ADMIN_PASSWORD, ADMIN_USERNAME


def verify_admin(username: str, password: str) -> bool:
    user_ok = hmac.compare_digest(username.encode("utf-8"), ADMIN_USERNAME.encode("utf-8"))
    password_ok = hmac.compare_digest(password.encode("utf-8"), ADMIN_PASSWORD.encode("utf-8"))
    return user_ok and password_ok
