"""
Credential Store

Creates and authenticates users:
- admins and company owners log in by e-mail
- customers log in by CPF (digits only)

Passwords are stored only as bcrypt hashes, on every path including the
administrative reset.
"""

import logging
from typing import Any
from uuid import UUID

from appcore.db import Store
from appcore.security import PasswordHasher
from cardapio.cache.base import CacheBackend
from cardapio.cache.keys import ADMIN_PATH, PROFILE_PATH
from cardapio.contracts.errors import (
    ConflictError,
    InvalidCredentialsError,
    NotFoundError,
    UnauthorizedError,
    ValidationError,
)
from cardapio.contracts.payloads import ProfileUpdate
from cardapio.contracts.types import UserRole
from cardapio.persistence.repo import CardapioRepository
from cardapio.service.base import as_uuid, service_action, write_session
from cardapio.service.identity import Identity, require_admin, require_identity
from cardapio.utils.documents import only_digits

logger = logging.getLogger(__name__)

CPF_LENGTH = 11


def normalize_email(email: str | None) -> str:
    return (email or "").strip().lower()


class CredentialStore:
    """Account creation, authentication and password management."""

    def __init__(self, store: Store, cache: CacheBackend, hasher: PasswordHasher):
        self.store = store
        self.cache = cache
        self.hasher = hasher

    @service_action("Authentication failed")
    def authenticate(self, email: str, password: str) -> dict[str, Any]:
        """
        Authenticate an admin or company owner by e-mail.

        Returns:
            {"user": ..., "company": ...} with the role mapped to its public
            label (company_owner -> company) and no password hash.
        """
        email = normalize_email(email)
        if not email or not password:
            raise ValidationError("Email and password are required")

        with self.store.session() as db:
            user = CardapioRepository(db).get_user_by_email(email)

            if not user or not user.password_hash:
                raise NotFoundError("User not found")

            if not self.hasher.verify(password, user.password_hash):
                logger.info("Rejected login", extra={"user_id": str(user.id)})
                raise InvalidCredentialsError()

            return {
                "user": user.to_dict(public_role=True),
                "company": user.company.to_dict() if user.company else None,
            }

    @service_action("Authentication failed")
    def authenticate_customer(self, cpf: str, password: str) -> dict[str, Any]:
        """Authenticate a customer by CPF (any formatting)."""
        clean_cpf = only_digits(cpf)
        if not clean_cpf or not password:
            raise ValidationError("Credenciais inválidas")

        with self.store.session() as db:
            user = CardapioRepository(db).get_user_by_cpf(clean_cpf)

            if not user or not user.password_hash:
                raise NotFoundError("Usuário não encontrado")

            if not self.hasher.verify(password, user.password_hash):
                logger.info("Rejected customer login", extra={"user_id": str(user.id)})
                raise InvalidCredentialsError()

            return {"user": user.to_dict(public_role=True)}

    @service_action("Erro ao criar conta. Tente novamente.")
    def register_customer(self, name: str, cpf: str, password: str) -> dict[str, Any]:
        """
        Register a customer account.

        The CPF is reduced to digits before the uniqueness check and storage,
        so "123.456.789-00" and "12345678900" are the same customer.
        """
        if not name or not cpf or not password:
            raise ValidationError("Todos os campos são obrigatórios")

        clean_cpf = only_digits(cpf)
        if len(clean_cpf) != CPF_LENGTH:
            raise ValidationError("CPF inválido")

        password_hash = self.hasher.hash(password)

        with self.store.session() as db:
            repo = CardapioRepository(db)
            if repo.get_user_by_cpf(clean_cpf):
                raise ConflictError("CPF já cadastrado")

            user = repo.create_user(
                role=UserRole.CUSTOMER,
                password_hash=password_hash,
                name=name,
                cpf=clean_cpf,
            )
            logger.info("Registered customer", extra={"user_id": str(user.id)})
            return user.to_dict()

    @service_action("Failed to create admin")
    def create_admin(
        self,
        email: str,
        password: str,
        name: str = "Administrador",
        actor: Identity | None = None,
    ) -> dict[str, Any]:
        """
        Create an admin account.

        The first admin can be created without an actor (bootstrap); after
        that an existing admin must perform the call.
        """
        email = normalize_email(email)
        if not email or not password:
            raise ValidationError("Email and password are required")

        password_hash = self.hasher.hash(password)

        with self.store.session() as db:
            repo = CardapioRepository(db)
            if repo.admin_exists():
                require_admin(actor)
            if repo.email_exists(email):
                raise ConflictError("Email already in use")

            user = repo.create_user(
                role=UserRole.ADMIN,
                password_hash=password_hash,
                name=name,
                email=email,
            )
            return user.to_dict()

    @service_action("Failed to reset password")
    def reset_password(
        self, actor: Identity | None, user_id: str | UUID, new_password: str
    ) -> None:
        """Administrative override of a user's password. The new password is hashed."""
        require_admin(actor)
        if not new_password:
            raise ValidationError("New password is required")

        user_uuid = as_uuid(user_id, NotFoundError("User not found"))
        password_hash = self.hasher.hash(new_password)

        with write_session(self.store, self.cache) as (db, invalidation):
            if not CardapioRepository(db).set_password_hash(user_uuid, password_hash):
                raise NotFoundError("User not found")
            invalidation.paths(ADMIN_PATH)

        logger.info(
            "Password reset by admin",
            extra={"user_id": str(user_uuid), "admin_id": str(actor.user_id)},
        )

    @service_action("Erro ao atualizar perfil. Tente novamente.")
    def update_profile(
        self,
        identity: Identity | None,
        user_id: str | UUID,
        payload: ProfileUpdate | dict[str, Any],
    ) -> dict[str, Any]:
        """
        Update the caller's own profile.

        Phone and CPF are stored digits-only; an empty value clears them.
        """
        identity = require_identity(identity)
        user_uuid = as_uuid(user_id, UnauthorizedError())
        if identity.user_id != user_uuid:
            raise UnauthorizedError()

        if not isinstance(payload, ProfileUpdate):
            payload = ProfileUpdate.model_validate(payload)

        clean_phone = only_digits(payload.phone) or None
        clean_cpf = only_digits(payload.cpf) or None
        if clean_cpf and len(clean_cpf) != CPF_LENGTH:
            raise ValidationError("CPF inválido")

        fields = {
            "name": payload.name,
            "phone": clean_phone,
            "cpf": clean_cpf,
            "address": payload.address.model_dump() if payload.address else None,
        }

        with write_session(self.store, self.cache) as (db, invalidation):
            repo = CardapioRepository(db)
            if clean_cpf and repo.cpf_taken_by_other(clean_cpf, user_uuid):
                raise ConflictError("CPF já cadastrado")

            if not repo.update_user_profile(user_uuid, fields):
                raise UnauthorizedError()

            user = repo.get_user_by_id(user_uuid)
            data = user.to_dict()
            invalidation.paths(PROFILE_PATH)

        return data
