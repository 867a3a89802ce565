# arcms/auth.py
"""
Single-administrator authentication.

There is exactly one operator identity, configured through the environment as
a username plus a PBKDF2-SHA256 password hash, salt and iteration count. A
successful login yields a signed, time-boxed token that carries nothing but
the username. It is accepted from the ``Authorization: Bearer`` header or from
the session cookie.
"""

import functools
import logging
import time
from datetime import datetime, timezone
from urllib.parse import urlencode

from django.core import signing
from django.http import JsonResponse
from django.shortcuts import redirect
from django.urls import reverse
from django.utils.crypto import constant_time_compare

from .conf import get_config
from .passwords import hash_password

logger = logging.getLogger(__name__)

TOKEN_SALT = "arcms.auth.session"


def verify_credentials(username, password):
    """
    Check a username/password pair against the configured admin.

    The hash is computed even when the username is wrong so that the response
    time does not tell which factor failed.
    """
    config = get_config()
    username = username or ""
    password = password or ""

    computed = hash_password(password, config.admin_password_salt, config.admin_password_iterations)
    user_ok = constant_time_compare(username, config.admin_username)
    password_ok = constant_time_compare(computed, config.admin_password_hash)
    return bool(username and password and user_ok and password_ok)


def issue_token():
    """Return (token, expires_at) for the admin identity."""
    config = get_config()
    issued_at = int(time.time())
    token = signing.dumps(
        {"sub": config.admin_username, "iat": issued_at},
        key=config.session_secret,
        salt=TOKEN_SALT,
    )
    expires_at = datetime.fromtimestamp(issued_at + config.session_max_age, tz=timezone.utc)
    return token, expires_at


def verify_token(token):
    """Return the session dict for a valid token, None for anything else."""
    if not token:
        return None
    config = get_config()
    try:
        payload = signing.loads(
            token,
            key=config.session_secret,
            salt=TOKEN_SALT,
            max_age=config.session_max_age,
        )
    except signing.SignatureExpired:
        logger.info("Rejected expired session token")
        return None
    except signing.BadSignature:
        logger.warning("Rejected session token with a bad signature")
        return None

    if not isinstance(payload, dict) or not constant_time_compare(
        str(payload.get("sub", "")), config.admin_username
    ):
        return None

    issued_at = int(payload.get("iat", 0))
    return {
        "user": {"name": config.admin_username},
        "expires": datetime.fromtimestamp(
            issued_at + config.session_max_age, tz=timezone.utc
        ).isoformat(),
    }


def token_from_request(request):
    header = request.headers.get("Authorization", "")
    if header.lower().startswith("bearer "):
        return header[7:].strip()
    return request.COOKIES.get(get_config().session_cookie_name)


def get_session(request):
    """Session dict for the request, cached on the request object."""
    if not hasattr(request, "_webar_session"):
        request._webar_session = verify_token(token_from_request(request))
    return request._webar_session


def set_session_cookie(response, token):
    config = get_config()
    response.set_cookie(
        config.session_cookie_name,
        token,
        max_age=config.session_max_age,
        httponly=True,
        secure=config.session_cookie_secure,
        samesite="Strict",
    )
    return response


def clear_session_cookie(response):
    response.delete_cookie(get_config().session_cookie_name, samesite="Strict")
    return response


def require_admin(view_func):
    """API decorator: 401 JSON before the view sees the payload."""

    @functools.wraps(view_func)
    def wrapper(request, *args, **kwargs):
        if get_session(request) is None:
            return JsonResponse({"error": "Unauthorized"}, status=401)
        return view_func(request, *args, **kwargs)

    return wrapper


def admin_page(view_func):
    """Page decorator: redirect to the login page when there is no session."""

    @functools.wraps(view_func)
    def wrapper(request, *args, **kwargs):
        if get_session(request) is None:
            return redirect(f"{reverse('admin_login')}?{urlencode({'next': request.get_full_path()})}")
        return view_func(request, *args, **kwargs)

    return wrapper
