# apps/users/authentication.py
from rest_framework import authentication
from rest_framework.exceptions import AuthenticationFailed

from apps.core.backends import get_identity_provider
from apps.core.exceptions import IdentityProviderError
from apps.users.services import AccessService


class FirebaseAuthentication(authentication.BaseAuthentication):
    """
    Authenticates `Authorization: Bearer <Firebase ID token>`.
    request.user becomes an Identity carrying role and permission level.
    """
    keyword = 'Bearer'

    def authenticate(self, request):
        header = authentication.get_authorization_header(request).split()
        if not header or header[0].lower() != self.keyword.lower().encode():
            return None
        if len(header) != 2:
            raise AuthenticationFailed({'message': 'Invalid authorization header.'})

        token = header[1].decode()
        try:
            claims = get_identity_provider().verify_token(token)
        except IdentityProviderError as exc:
            raise AuthenticationFailed(exc.detail) from exc

        return AccessService.resolve(claims), token

    def authenticate_header(self, request):
        return self.keyword
