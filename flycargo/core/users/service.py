# flycargo/core/users/service.py
"""
Сервис учётных записей: регистрация, подтверждение контактов, OAuth.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

from flycargo.common.constants import AccountKind, Region, TypeMsg, FINAL_REGIONS
from flycargo.common.exceptions import ConflictError, InvalidArgumentError, NotFoundError
from flycargo.common.logger import log_info, log_warning
from flycargo.core.confirmation.store import (
    ConfirmationCodeStore,
    email_verification_key,
    phone_verification_key,
)
from flycargo.core.identity.service import Actor, RegionPolicy, random_final_region
from flycargo.core.notifications.senders import CodeSender, DispatchResult
from flycargo.core.regions.registry import RegionStoreRegistry
from flycargo.core.users.models import OAuthProfile, User, UserCreateDTO


@dataclass
class RegistrationResult:
    """Итог регистрации."""

    user_id: int
    created: bool
    dispatch: list[DispatchResult] = field(default_factory=list)


def _conflict_fields(user: User, email: Optional[str], phone: Optional[str]) -> str:
    fields = []
    if email and user.email == email:
        fields.append("email")
    if phone and user.phone == phone:
        fields.append("phone")
    return " and ".join(fields)


class UserService:
    """
    Сервис пользователей.

    Коды подтверждения:
        - email при регистрации: email_verification:<email>
        - телефон при регистрации: phone_verification:<номер телефона>
        - телефон при смене в профиле: phone_verification:<ID пользователя>
    """

    def __init__(
        self,
        registry: RegionStoreRegistry,
        codes: ConfirmationCodeStore,
        email_sender: CodeSender,
        sms_sender: CodeSender,
        email_code_ttl: int = 300,
        phone_code_ttl: int = 300,
        region_policy: RegionPolicy = random_final_region,
    ) -> None:
        """
        Args:
            registry: Регистр региональных хранилищ
            codes: Хранилище кодов подтверждения
            email_sender: Отправка кодов по email
            sms_sender: Отправка кодов по SMS
            email_code_ttl: TTL кода email (сек)
            phone_code_ttl: TTL кода телефона (сек)
            region_policy: Выбор региона для новых OAuth пользователей
        """
        self._registry = registry
        self._codes = codes
        self._email_sender = email_sender
        self._sms_sender = sms_sender
        self._email_code_ttl = email_code_ttl
        self._phone_code_ttl = phone_code_ttl
        self._region_policy = region_policy

    # =========================================================================
    # РЕГИСТРАЦИЯ
    # =========================================================================

    async def _find_existing(self, email: Optional[str], phone: Optional[str]) -> Optional[User]:
        for store in self._registry.in_probe_order():
            async with store.session() as s:
                found = await s.users.find_by_contacts(email, phone)
            if found:
                return found[0]
        return None

    async def _send_email_code(self, email: str) -> DispatchResult:
        code = await self._codes.issue(email_verification_key(email), self._email_code_ttl)
        return await self._email_sender.send_verification_code(email, code)

    async def _send_phone_code(self, phone: str) -> DispatchResult:
        code = await self._codes.issue(phone_verification_key(phone), self._phone_code_ttl)
        return await self._sms_sender.send_verification_code(phone, code)

    async def register(
        self,
        first_name: str,
        last_name: str = "",
        email: Optional[str] = None,
        phone: Optional[str] = None,
        account_kind: AccountKind = AccountKind.CUSTOMER,
    ) -> RegistrationResult:
        """
        Регистрирует пользователя в регионе PENDING.

        Если пользователь с таким email или телефоном уже есть, но не
        подтвердил email (или телефон, если email у него нет), высылается
        новый код и возвращается его ID.

        Raises:
            InvalidArgumentError: Не указан ни email, ни телефон
            ConflictError: Подтверждённый пользователь с такими контактами уже есть
        """
        if not email and not phone:
            raise InvalidArgumentError("Нужен email или телефон")

        existing = await self._find_existing(email, phone)
        if existing is not None:
            conflict = _conflict_fields(existing, email, phone)
            if not existing.is_email_verified and existing.email:
                await log_warning(f"Повторная регистрация неподтверждённого пользователя {existing.id}")
                result = await self._send_email_code(existing.email)
                return RegistrationResult(user_id=existing.id, created=False, dispatch=[result])
            if not existing.email and existing.phone and not existing.is_phone_verified:
                await log_warning(f"Повторная регистрация пользователя {existing.id} с неподтверждённым телефоном")
                result = await self._send_phone_code(existing.phone)
                return RegistrationResult(user_id=existing.id, created=False, dispatch=[result])

            raise ConflictError(
                f"Пользователь с таким {conflict} уже существует",
                details={"fields": conflict.split(" and ")},
            )

        async with self._registry.get(Region.PENDING).session() as s:
            user = await s.users.create(
                UserCreateDTO(
                    first_name=first_name,
                    last_name=last_name,
                    email=email,
                    phone=phone,
                    account_kind=account_kind,
                )
            )

        await log_info(f"Пользователь зарегистрирован: {user.id}", type_msg=TypeMsg.INFO)

        dispatch: list[DispatchResult] = []
        if email:
            dispatch.append(await self._send_email_code(email))
        if phone:
            dispatch.append(await self._send_phone_code(phone))

        return RegistrationResult(user_id=user.id, created=True, dispatch=dispatch)

    async def verify_email(self, email: str, code: str) -> User:
        """
        Подтверждает email пользователя из региона PENDING.
        Пользователь остаётся в PENDING.

        Raises:
            InvalidArgumentError: Код неверный или истёк
            NotFoundError: Пользователя с таким email нет в PENDING
        """
        if not await self._codes.verify(email_verification_key(email), code):
            raise InvalidArgumentError("Неверный код подтверждения")

        async with self._registry.get(Region.PENDING).session() as s:
            user = await s.users.set_email_verified(email)
        if user is None:
            raise NotFoundError("user", email, region=Region.PENDING.value)

        await log_info(f"Email пользователя {user.id} подтверждён", type_msg=TypeMsg.INFO)
        return user

    async def verify_registration_phone(self, phone: str, code: str) -> User:
        """Подтверждает телефон, указанный при регистрации (ключ по номеру)."""
        if not await self._codes.verify(phone_verification_key(phone), code):
            raise InvalidArgumentError("Неверный код подтверждения")

        async with self._registry.get(Region.PENDING).session() as s:
            found = await s.users.find_by_contacts(None, phone)
            if not found:
                raise NotFoundError("user", phone, region=Region.PENDING.value)
            await s.users.set_phone_verified(found[0].id)
            user = await s.users.get_by_id(found[0].id)
        return user

    # =========================================================================
    # ТЕЛЕФОН В ПРОФИЛЕ
    # =========================================================================

    async def request_phone_change(self, actor: Actor, phone: str) -> DispatchResult:
        """
        Меняет телефон, сбрасывает его подтверждение и высылает код по SMS.
        Код хранится под ID пользователя.
        """
        phone = phone.strip()
        if not phone:
            raise InvalidArgumentError("Телефон не указан")
        if phone == actor.user.phone:
            raise InvalidArgumentError("Номер не изменился")

        async with self._registry.get(actor.region).session() as s:
            await s.users.update_phone(actor.id, phone)

        code = await self._codes.issue(phone_verification_key(actor.id), self._phone_code_ttl)
        return await self._sms_sender.send_verification_code(phone, code)

    async def verify_phone(self, actor: Actor, code: str) -> None:
        """Подтверждает новый телефон из профиля."""
        if not await self._codes.verify(phone_verification_key(actor.id), code):
            raise InvalidArgumentError("Неверный код подтверждения")

        async with self._registry.get(actor.region).session() as s:
            await s.users.set_phone_verified(actor.id)

    # =========================================================================
    # OAUTH
    # =========================================================================

    async def oauth_login(self, profile: OAuthProfile) -> Actor:
        """
        Находит или создаёт пользователя по профилю OAuth провайдера.

        Поиск идёт только в RU и OTHER. Новый пользователь сразу
        подтверждён и создаётся в регионе, выбранном политикой.
        """
        google_id = profile.provider_id if profile.provider == "google" else None
        apple_id = profile.provider_id if profile.provider == "apple" else None

        for region in FINAL_REGIONS:
            async with self._registry.get(region).session() as s:
                user = await s.users.find_by_provider(google_id, apple_id, profile.email)
            if user is not None:
                return Actor(user=user, region=region)

        region = self._region_policy()
        if region not in FINAL_REGIONS:
            raise InvalidArgumentError(f"Регион {region} недопустим для OAuth пользователя")

        async with self._registry.get(region).session() as s:
            user = await s.users.create(
                UserCreateDTO(
                    first_name=profile.first_name,
                    last_name=profile.last_name,
                    email=profile.email,
                    google_id=google_id,
                    apple_id=apple_id,
                    is_email_verified=True,
                )
            )

        await log_info(f"Создан OAuth пользователь {user.id} в регионе {region.value}", type_msg=TypeMsg.INFO)
        return Actor(user=user, region=region)
