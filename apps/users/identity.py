# apps/users/identity.py
"""
Identity provider adapters (Firebase Authentication) and the request identity.
"""
import logging
import threading
import uuid

import requests
from django.conf import settings
from firebase_admin import auth
from firebase_admin import exceptions as firebase_exceptions

from apps.core.exceptions import IdentityProviderError
from apps.core.firebase import get_firebase_app

logger = logging.getLogger(__name__)

SIGN_IN_TIMEOUT = 10
MIN_PASSWORD_LENGTH = 6


class Identity:
    """Authenticated caller, set as request.user by FirebaseAuthentication"""
    is_authenticated = True
    is_anonymous = False

    def __init__(self, uid, email='', display_name='', photo_url='', role=None, permission=None):
        self.uid = uid
        self.email = email or ''
        self.display_name = display_name or ''
        self.photo_url = photo_url or ''
        self.role = role
        self.permission = permission

    @property
    def pk(self):
        return self.uid

    def __str__(self):
        return self.email or self.uid


class IdentityProvider:
    """Interface implemented by identity provider adapters"""

    def verify_token(self, token):
        """Return the token claims ({'uid', 'email', 'name', 'picture'}) or raise IdentityProviderError"""
        raise NotImplementedError

    def get_account(self, uid):
        raise NotImplementedError

    def create_account(self, email, password, display_name=None):
        """Create an email/password account and return its uid"""
        raise NotImplementedError

    def update_account(self, uid, display_name=None, photo_url=None):
        raise NotImplementedError

    def delete_account(self, uid):
        raise NotImplementedError

    def sign_in(self, email, password):
        """Email/password sign-in; returns {'idToken', 'refreshToken', 'expiresIn', 'localId', 'email'}"""
        raise NotImplementedError


def _account_info(user):
    return {
        'uid': user.uid,
        'email': user.email or '',
        'displayName': user.display_name or '',
        'photoURL': user.photo_url or '',
    }


class FirebaseIdentityProvider(IdentityProvider):
    """Firebase Authentication through firebase-admin, sign-in through the Identity Toolkit REST API"""

    def __init__(self, app=None):
        self._app = app or get_firebase_app()

    def verify_token(self, token):
        try:
            claims = auth.verify_id_token(token, app=self._app)
        except (auth.InvalidIdTokenError, auth.UserDisabledError, ValueError) as exc:
            logger.warning(f"Rejected ID token: {exc}")
            raise IdentityProviderError('INVALID_TOKEN') from exc
        except auth.CertificateFetchError as exc:
            logger.error(f"Could not fetch token certificates: {exc}")
            raise IdentityProviderError(detail={'message': 'Could not verify the token. Please retry.'}) from exc
        return claims

    def get_account(self, uid):
        try:
            return _account_info(auth.get_user(uid, app=self._app))
        except auth.UserNotFoundError as exc:
            raise IdentityProviderError('USER_NOT_FOUND') from exc

    def create_account(self, email, password, display_name=None):
        try:
            user = auth.create_user(
                email=email,
                password=password,
                display_name=display_name or None,
                app=self._app,
            )
        except auth.EmailAlreadyExistsError as exc:
            raise IdentityProviderError('EMAIL_EXISTS') from exc
        except ValueError as exc:
            # Malformed email or password rejected by the SDK
            raise IdentityProviderError(detail={'message': str(exc)}) from exc
        except firebase_exceptions.FirebaseError as exc:
            logger.error(f"Account creation for {email} failed: {exc}")
            raise IdentityProviderError(detail={'message': str(exc)}) from exc
        logger.info(f"Created account {user.uid} for {email}")
        return user.uid

    def update_account(self, uid, display_name=None, photo_url=None):
        changes = {}
        if display_name is not None:
            changes['display_name'] = display_name
        if photo_url is not None:
            changes['photo_url'] = photo_url
        try:
            user = auth.update_user(uid, app=self._app, **changes)
        except auth.UserNotFoundError as exc:
            raise IdentityProviderError('USER_NOT_FOUND') from exc
        except firebase_exceptions.FirebaseError as exc:
            logger.error(f"Account update for {uid} failed: {exc}")
            raise IdentityProviderError(detail={'message': str(exc)}) from exc
        return _account_info(user)

    def delete_account(self, uid):
        try:
            auth.delete_user(uid, app=self._app)
        except auth.UserNotFoundError as exc:
            raise IdentityProviderError('USER_NOT_FOUND') from exc
        except firebase_exceptions.FirebaseError as exc:
            logger.error(f"Account deletion for {uid} failed: {exc}")
            raise IdentityProviderError(detail={'message': str(exc)}) from exc
        logger.info(f"Deleted account {uid}")

    def sign_in(self, email, password):
        try:
            response = requests.post(
                settings.FIREBASE_SIGN_IN_URL,
                params={'key': settings.FIREBASE_WEB_API_KEY},
                json={'email': email, 'password': password, 'returnSecureToken': True},
                timeout=SIGN_IN_TIMEOUT,
            )
        except requests.RequestException as exc:
            logger.error(f"Sign-in request failed: {exc}")
            raise IdentityProviderError(detail={'message': 'Sign-in service unavailable. Please retry.'}) from exc

        try:
            payload = response.json() if response.content else {}
        except ValueError as exc:
            # Proxies answer outages with HTML pages
            logger.error(f"Sign-in returned a non-JSON {response.status_code} response")
            raise IdentityProviderError(detail={'message': 'Sign-in service unavailable. Please retry.'}) from exc

        if response.status_code != 200:
            reason = payload.get('error', {}).get('message', '')
            logger.warning(f"Sign-in rejected for {email}: {reason}")
            raise IdentityProviderError('INVALID_CREDENTIALS')

        return {
            'idToken': payload['idToken'],
            'refreshToken': payload.get('refreshToken', ''),
            'expiresIn': payload.get('expiresIn', ''),
            'localId': payload['localId'],
            'email': payload.get('email', email),
        }


class InMemoryIdentityProvider(IdentityProvider):
    """
    Accounts kept in memory. Tokens are opaque strings handed out by
    `issue_token` and `sign_in`.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self.accounts = {}
        self.tokens = {}

    def _find_by_email(self, email):
        email = email.strip().lower()
        for account in self.accounts.values():
            if account['email'].lower() == email:
                return account
        return None

    def issue_token(self, uid):
        token = f'token-{uuid.uuid4().hex}'
        with self._lock:
            self.tokens[token] = uid
        return token

    def verify_token(self, token):
        uid = self.tokens.get(token)
        account = self.accounts.get(uid)
        if account is None:
            raise IdentityProviderError('INVALID_TOKEN')
        return {
            'uid': uid,
            'email': account['email'],
            'name': account['displayName'],
            'picture': account['photoURL'],
        }

    def get_account(self, uid):
        account = self.accounts.get(uid)
        if account is None:
            raise IdentityProviderError('USER_NOT_FOUND')
        return {key: value for key, value in account.items() if key != 'password'}

    def create_account(self, email, password, display_name=None):
        if len(password or '') < MIN_PASSWORD_LENGTH:
            raise IdentityProviderError('WEAK_PASSWORD')
        with self._lock:
            if self._find_by_email(email) is not None:
                raise IdentityProviderError('EMAIL_EXISTS')
            uid = uuid.uuid4().hex[:28]
            self.accounts[uid] = {
                'uid': uid,
                'email': email,
                'password': password,
                'displayName': display_name or '',
                'photoURL': '',
            }
        return uid

    def update_account(self, uid, display_name=None, photo_url=None):
        with self._lock:
            account = self.accounts.get(uid)
            if account is None:
                raise IdentityProviderError('USER_NOT_FOUND')
            if display_name is not None:
                account['displayName'] = display_name
            if photo_url is not None:
                account['photoURL'] = photo_url
        return self.get_account(uid)

    def delete_account(self, uid):
        with self._lock:
            if self.accounts.pop(uid, None) is None:
                raise IdentityProviderError('USER_NOT_FOUND')

    def sign_in(self, email, password):
        account = self._find_by_email(email)
        if account is None or account['password'] != password:
            raise IdentityProviderError('INVALID_CREDENTIALS')
        return {
            'idToken': self.issue_token(account['uid']),
            'refreshToken': uuid.uuid4().hex,
            'expiresIn': '3600',
            'localId': account['uid'],
            'email': account['email'],
        }
