from __future__ import annotations

from datetime import datetime, timezone

from sqlmodel import Session, select

from microcrm.core.errors import ValidationFailed
from microcrm.core.logging_setup import logger as base_logger
from microcrm.models.base import utcnow
from microcrm.models.tenant import Tenant
from microcrm.models.user import User, UserRole
from microcrm.schemas.auth import (
    AuthResponse,
    LoginRequest,
    PasswordChange,
    ProfileUpdate,
    RegisterRequest,
    UserRead,
    password_policy_error,
)
from microcrm.utils.security import (
    create_access_token,
    decode_token,
    get_password_hash,
    token_blacklist,
    verify_password,
)

logger = base_logger.getChild("auth")


class AuthService:
    def __init__(self, session: Session) -> None:
        self.session = session

    def register(self, payload: RegisterRequest) -> AuthResponse:
        email = payload.email.lower()
        existing_user = self.session.exec(select(User).where(User.email == email)).first()
        if existing_user:
            raise ValueError("Email already registered")

        company_name = payload.company_name or f"{payload.name}'s Business"
        tenant = Tenant(name=company_name, company_name=company_name)
        self.session.add(tenant)
        self.session.flush()

        user = User(
            tenant_id=tenant.id,
            email=email,
            name=payload.name,
            password_hash=get_password_hash(payload.password),
            role=UserRole.ADMIN.value,
        )
        self.session.add(user)
        self.session.commit()
        self.session.refresh(user)
        logger.info("Registered tenant %s for %s", tenant.id, email)
        return self._build_response(user)

    def authenticate(self, payload: LoginRequest) -> AuthResponse:
        statement = select(User).where(User.email == payload.email.lower())
        user = self.session.exec(statement).first()

        if not user or not user.is_active:
            raise ValueError("Invalid credentials")

        if not verify_password(payload.password, user.password_hash):
            raise ValueError("Invalid credentials")

        user.last_login_at = utcnow()
        self.session.add(user)
        self.session.commit()
        self.session.refresh(user)
        return self._build_response(user)

    def logout(self, token: str) -> None:
        try:
            payload = decode_token(token)
        except ValueError:
            return
        jti = payload.get("jti")
        if not jti:
            return
        token_blacklist.revoke(str(jti), float(payload.get("exp") or datetime.now(timezone.utc).timestamp()))
        logger.info("Token revoked for user %s", payload.get("sub"))

    def update_profile(self, user: User, payload: ProfileUpdate) -> UserRead:
        fields = payload.model_dump(exclude_unset=True)
        if fields.get("name") is not None:
            name = fields["name"].strip()
            if not name:
                raise ValidationFailed("Name is required")
            user.name = name
            user.touch()
            self.session.add(user)
        if "company_name" in fields:
            tenant = self.session.get(Tenant, user.tenant_id)
            if tenant is not None:
                tenant.company_name = (fields["company_name"] or "").strip() or None
                tenant.touch()
                self.session.add(tenant)
        self.session.commit()
        self.session.refresh(user)
        logger.info("Profile updated for user %s", user.id)
        return self.describe(user)

    def change_password(self, user: User, payload: PasswordChange) -> None:
        if not payload.current_password or not payload.new_password:
            raise ValidationFailed("Current and new password are required")
        policy_error = password_policy_error(payload.new_password)
        if policy_error:
            raise ValidationFailed(policy_error)
        if not verify_password(payload.current_password, user.password_hash):
            raise ValueError("Current password is incorrect")

        user.password_hash = get_password_hash(payload.new_password)
        user.touch()
        self.session.add(user)
        self.session.commit()
        logger.info("Password changed for user %s", user.id)

    def describe(self, user: User) -> UserRead:
        tenant = self.session.get(Tenant, user.tenant_id)
        return UserRead(
            id=user.id,
            tenant_id=user.tenant_id,
            email=user.email,
            name=user.name,
            role=user.role,
            company_name=tenant.company_name if tenant else None,
        )

    def _build_response(self, user: User) -> AuthResponse:
        token = create_access_token(str(user.id), str(user.tenant_id))
        return AuthResponse(user=self.describe(user), token=token)
