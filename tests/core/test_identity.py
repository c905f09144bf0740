# tests/core/test_identity.py
"""
Тесты определения пользователя по токену.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

from unittest.mock import AsyncMock, patch

import pytest
from jose import jwt

from flycargo.common.constants import Region
from flycargo.common.exceptions import NotFoundError, RegionUnavailableError, UnauthenticatedError
from flycargo.core.users.models import User
from flycargo.core.identity.service import IdentityResolver, TokenDecoder

SECRET = "identity_test_secret"


def make_token(sub, secret: str = SECRET, expires_in: timedelta = timedelta(hours=1)) -> str:
    claims = {"exp": datetime.now(timezone.utc) + expires_in}
    if sub is not None:
        claims["sub"] = str(sub)
    return jwt.encode(claims, secret, algorithm="HS256")


class TestTokenDecoder:
    """Тесты проверки JWT."""

    @pytest.fixture
    def decoder(self) -> TokenDecoder:
        return TokenDecoder(SECRET)

    def test_valid_token(self, decoder: TokenDecoder) -> None:
        assert decoder.subject(make_token(42)) == 42

    def test_bearer_prefix(self, decoder: TokenDecoder) -> None:
        assert decoder.subject(f"Bearer {make_token(7)}") == 7

    @pytest.mark.parametrize("credential", [None, "", "Bearer ", "   "])
    def test_missing_credential(self, decoder: TokenDecoder, credential) -> None:
        with pytest.raises(UnauthenticatedError):
            decoder.subject(credential)

    def test_expired_token(self, decoder: TokenDecoder) -> None:
        """Просроченный токен отличается кодом ошибки."""
        with pytest.raises(UnauthenticatedError) as exc_info:
            decoder.subject(make_token(1, expires_in=timedelta(seconds=-10)))
        assert exc_info.value.code == "token_expired"

    def test_wrong_signature(self, decoder: TokenDecoder) -> None:
        with pytest.raises(UnauthenticatedError):
            decoder.subject(make_token(1, secret="other_secret"))

    def test_garbage(self, decoder: TokenDecoder) -> None:
        with pytest.raises(UnauthenticatedError):
            decoder.subject("not.a.token")

    def test_missing_sub(self, decoder: TokenDecoder) -> None:
        with pytest.raises(UnauthenticatedError):
            decoder.subject(make_token(None))

    def test_non_integer_sub(self, decoder: TokenDecoder) -> None:
        with pytest.raises(UnauthenticatedError):
            decoder.subject(make_token("abc"))


class TestIdentityResolver:
    """Тесты поиска пользователя по регионам."""

    @pytest.fixture
    def resolver(self, registry) -> IdentityResolver:
        return IdentityResolver(registry, TokenDecoder(SECRET))

    @pytest.mark.asyncio
    async def test_user_found_in_home_region(self, resolver, seed) -> None:
        seed.user(Region.PENDING, email="p@example.com")
        seed.user(Region.RU)
        ru_user = seed.user(Region.RU, email="ru@example.com")

        actor = await resolver.authenticate(make_token(ru_user.id))

        assert actor.region is Region.RU
        assert actor.id == ru_user.id

    @pytest.mark.asyncio
    async def test_user_ids_do_not_collide_across_regions(self, resolver, seed) -> None:
        """Первые пользователи всех регионов получают разные id и находятся у себя."""
        users = {region: seed.user(region, email=f"{region.value}@example.com") for region in Region}
        assert len({u.id for u in users.values()}) == len(Region)

        for region, user in users.items():
            actor = await resolver.authenticate(make_token(user.id))
            assert actor.region is region
            assert actor.user.email == user.email

    @pytest.mark.asyncio
    async def test_first_match_wins_for_duplicate_rows(self, resolver, seed, stores) -> None:
        """Строка с чужим id (например, ручной перенос): порядок поиска решает."""
        pending = seed.user(Region.PENDING, email="p@example.com")
        stores[Region.OTHER].tables["users"][pending.id] = User(
            id=pending.id, region=Region.OTHER, first_name="Копия", email="o@example.com"
        )

        actor = await resolver.authenticate(make_token(pending.id))

        assert actor.region is Region.PENDING

    @pytest.mark.asyncio
    async def test_dead_region_is_skipped(self, resolver, seed, stores) -> None:
        """PENDING не отвечает, пользователь RU всё равно находится."""
        ru_user = seed.user(Region.RU, email="ru@example.com")
        stores[Region.PENDING].fail_on["users.get_by_id"] = ConnectionRefusedError("refused")

        with patch("flycargo.core.identity.service.log_degraded", new_callable=AsyncMock) as mock_degraded:
            actor = await resolver.authenticate(make_token(ru_user.id))

        assert actor.region is Region.RU
        assert actor.id == ru_user.id
        mock_degraded.assert_awaited_once()
        assert mock_degraded.await_args.kwargs["extra"]["region"] == "PENDING"

    @pytest.mark.asyncio
    async def test_not_found_with_dead_region_is_degraded(self, resolver, seed, stores) -> None:
        """Не нашли, но регион молчал: это не NotFound, а деградация."""
        seed.user(Region.RU, email="ru@example.com")
        stores[Region.OTHER].fail_on["users.get_by_id"] = ConnectionResetError("reset")

        with patch("flycargo.core.identity.service.log_degraded", new_callable=AsyncMock):
            with pytest.raises(RegionUnavailableError) as exc_info:
                await resolver.authenticate(make_token(999))

        assert exc_info.value.regions == ("OTHER",)

    @pytest.mark.asyncio
    async def test_business_error_in_region_propagates(self, resolver, stores) -> None:
        stores[Region.PENDING].fail_on["users.get_by_id"] = ValueError("broken row")

        with pytest.raises(ValueError):
            await resolver.authenticate(make_token(1))

    @pytest.mark.asyncio
    async def test_unknown_user(self, resolver) -> None:
        with pytest.raises(NotFoundError):
            await resolver.authenticate(make_token(999))

    @pytest.mark.asyncio
    async def test_invalid_token_checked_before_lookup(self, resolver, stores) -> None:
        with pytest.raises(UnauthenticatedError):
            await resolver.authenticate("broken")
        assert all(store.sessions_opened == 0 for store in stores.values())

    @pytest.mark.asyncio
    async def test_find_returns_none(self, resolver) -> None:
        assert await resolver.find(12345) is None
