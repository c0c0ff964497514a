# melbox/api/auth/services.py
import logging
from datetime import datetime, timezone
from typing import Tuple, Optional, Iterable
from dataclasses import asdict
from firebase_admin import firestore, auth as firebase_auth
from flask import Flask

from melbox.core.config import parse_admin_emails
from melbox.models.user import User
from melbox.utils.datetime_utils import DateTimeUtils

class AuthService:
    """
    Turns Firebase ID tokens into our own JWT sessions and keeps the token blocklist.
    Users live in 'users/{firebase uid}'; revoked JWTs in 'revoked_tokens/{jti}'.
    """
    def __init__(self, db=None, admin_emails: Optional[Iterable[str]] = None):
        self.db = db
        self.users_ref = None
        self.revoked_tokens_ref = None
        self.admin_emails = {e.lower() for e in admin_emails} if admin_emails else set()
        if db is not None:
            self._bind(db)

    def _bind(self, db):
        self.db = db
        self.users_ref = db.collection('users')
        self.revoked_tokens_ref = db.collection('revoked_tokens')

    def init_app(self, app: Flask):
        """Called from create_app: binds Firestore and reads ADMIN_EMAILS."""
        self._bind(self.db or firestore.client())
        self.admin_emails = parse_admin_emails(app.config.get('ADMIN_EMAILS'))

    def is_admin_email(self, email: Optional[str]) -> bool:
        return bool(email) and email.lower() in self.admin_emails

    def sign_in_with_id_token(self, id_token: str) -> Tuple[User, bool]:
        """
        Verify a Firebase ID token and return (user, is_new_user).
        Raises ValueError / firebase_auth.InvalidIdTokenError for bad tokens.
        """
        decoded = firebase_auth.verify_id_token(id_token)
        return self.get_or_create_user(decoded['uid'], decoded.get('email'), decoded.get('name'))

    def get_or_create_user(self, uid: str, email: Optional[str], name: Optional[str]) -> Tuple[User, bool]:
        is_admin = self.is_admin_email(email)
        user_ref = self.users_ref.document(uid)
        user_doc = user_ref.get()

        if user_doc.exists:
            user_data = DateTimeUtils.from_firestore(user_doc.to_dict())
            user = User(**{k: v for k, v in user_data.items() if k in User.__dataclass_fields__})
            # admin rights follow the current ADMIN_EMAILS setting
            if user.is_admin != is_admin or (email and user.email != email):
                user.is_admin = is_admin
                user.email = email or user.email
                user_ref.update({'is_admin': user.is_admin, 'email': user.email})
            return user, False

        new_user = User(user_id=uid, email=email, display_name=name, is_admin=is_admin)
        user_ref.set(DateTimeUtils.for_firestore(asdict(new_user)))
        logging.info(f"New user registered: {uid} (admin={is_admin})")
        return new_user, True

    # --- blocklist ---
    def add_token_to_blocklist(self, jti: str, expires: datetime):
        """Store the token's jti together with its expiry."""
        try:
            token_data = {
                'revoked_at': DateTimeUtils.now(),
                'expires_at': expires
            }
            self.revoked_tokens_ref.document(jti).set(DateTimeUtils.for_firestore(token_data))
        except Exception as e:
            logging.error(f"Failed to add token to blocklist (jti: {jti}): {e}")
            raise

    def is_token_revoked(self, jwt_payload: dict) -> bool:
        jti = jwt_payload['jti']
        return self.revoked_tokens_ref.document(jti).get().exists

    def logout_user(self, access_jti: str, access_exp: int, refresh_jti: str, refresh_exp: int):
        """Put both the access and the refresh token on the blocklist."""
        self.add_token_to_blocklist(access_jti, datetime.fromtimestamp(access_exp, tz=timezone.utc))
        self.add_token_to_blocklist(refresh_jti, datetime.fromtimestamp(refresh_exp, tz=timezone.utc))
        logging.info(f"User logged out. JTI: {access_jti[:8]}..., {refresh_jti[:8]}...")
