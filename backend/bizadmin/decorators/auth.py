from functools import wraps
from flask import g
from flask_jwt_extended import verify_jwt_in_request, get_jwt, get_jwt_identity
from bizadmin.services.policy import CallerContext, assert_system_admin


def current_caller() -> CallerContext:
    return g.caller


def require_auth(fn):
    @wraps(fn)
    def wrapper(*args, **kwargs):
        verify_jwt_in_request()
        g.caller = CallerContext.from_claims(get_jwt_identity(), get_jwt())
        return fn(*args, **kwargs)
    return wrapper


def require_system_admin(fn):
    @wraps(fn)
    @require_auth
    def wrapper(*args, **kwargs):
        assert_system_admin(current_caller())
        return fn(*args, **kwargs)
    return wrapper
