"""
Credential store: user records and password checks on top of Django's auth User.

Password hashing is delegated to the configured PASSWORD_HASHERS (bcrypt first).
"""

from __future__ import annotations

import logging
from typing import List, Optional

from django.contrib.auth import get_user_model
from django.db import IntegrityError, transaction


class UserAlreadyExists(Exception):
    pass


class CredentialStore:
    def __init__(self, logger: Optional[logging.Logger] = None):
        self._log = logger or logging.getLogger(__name__)
        self._users = get_user_model()

    def create_user(self, username: str, password: str, email: str):
        self._log.info("Create user called: username=%s email=%s", username, email)
        if self._users.objects.filter(username=username).exists():
            raise UserAlreadyExists("username already taken")
        if self._users.objects.filter(email__iexact=email).exists():
            raise UserAlreadyExists("email already registered")
        try:
            with transaction.atomic():
                user = self._users.objects.create_user(username=username, email=email, password=password)
        except IntegrityError as exc:
            raise UserAlreadyExists("username already taken") from exc
        self._log.info("User created: user_id=%s", user.pk)
        return user

    def get_by_username(self, username: str):
        return self._users.objects.filter(username=username).first()

    def get_by_id(self, user_id: int):
        return self._users.objects.filter(pk=user_id).first()

    def list_users(self) -> List:
        return list(self._users.objects.order_by("id"))

    def delete_user(self, user_id: int) -> bool:
        deleted, _ = self._users.objects.filter(pk=user_id).delete()
        return deleted > 0

    def authenticate(self, username: str, password: str):
        """Return the user when the password matches, else None."""
        user = self.get_by_username(username)
        if user is None:
            self._log.warning("Login failed: unknown user %s", username)
            return None
        if not user.is_active or not user.check_password(password):
            self._log.warning("Login failed: password mismatch for %s", username)
            return None
        return user
