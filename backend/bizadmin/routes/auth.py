from flask import Blueprint, request
from flask_jwt_extended import create_access_token
from bizadmin import get_db
from bizadmin.decorators.auth import require_auth, current_caller
from bizadmin.services.policy import token_claims
from bizadmin.services.users import authenticate, get_user

auth_bp = Blueprint('auth', __name__)


@auth_bp.post('/login')
def login():
    data = request.json or {}
    user = authenticate(get_db(), data.get('username'), data.get('password'), data.get('subsidiary_id'))
    # JWT identity must be a string (flask-jwt-extended v4 requirement)
    token = create_access_token(identity=str(user.id), additional_claims=token_claims(user))
    return {'access_token': token}


@auth_bp.get('/me')
@require_auth
def me():
    caller = current_caller()
    user = get_user(get_db(), caller, caller.user_id)
    return {
        'id': user.id,
        'username': user.username,
        'role_id': user.role_id,
        'template': user.role.template,
        'tenant_id': user.tenant_id,
        'subsidiary_id': user.subsidiary_id,
    }
