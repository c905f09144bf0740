# flycargo/bot/texts.py
"""
Тексты чата модераторов.
"""

from __future__ import annotations

from html import escape
from typing import Optional, assert_never

from flycargo.core.moderation.models import FlightCard, ModerationCard, OrderCard, PendingCounts, ReviewCard
from flycargo.core.users.models import User

MENU_TITLE = "🛂 <b>Модерация</b>"
QUEUE_EMPTY = "Очередь пуста ✅"
ENTITY_GONE = "Объект уже обработан или удалён"
ERROR_GENERIC = "Произошла ошибка, попробуйте позже"
RESOLVE_USAGE = "Использование: /resolve &lt;регион&gt; &lt;id заказа&gt; [итог]"


def _user_line(user: Optional[User]) -> str:
    if user is None:
        return "—"
    contact = user.email or user.phone or "без контактов"
    return f"{escape(user.full_name)} (id {user.id}, {escape(contact)})"


def render_menu(counts: PendingCounts) -> str:
    """Заголовок меню с количеством ожидающих объектов."""
    return (
        f"{MENU_TITLE}\n\n"
        f"Заказы: {counts.orders}\n"
        f"Рейсы: {counts.flights}\n"
        f"Отзывы: {counts.reviews}"
    )


def render_card(card: ModerationCard) -> str:
    """Текст карточки объекта на модерации."""
    match card:
        case FlightCard(flight=flight, owner=owner):
            lines = [
                f"✈️ <b>Рейс #{flight.id}</b> [{flight.region.value}]",
                f"{escape(flight.departure)} → {escape(flight.arrival)}",
                f"Вылет: {flight.date:%d.%m.%Y %H:%M} UTC",
                f"Номер: {escape(flight.iata_number or '—')}",
                f"Перевозчик: {_user_line(owner)}",
            ]
            if flight.document_ref:
                lines.append(f"Документ: {escape(flight.document_ref)}")
        case OrderCard(order=order, customer=customer):
            lines = [
                f"📦 <b>Заказ #{order.id}</b> [{order.region.value}]",
                f"{escape(order.name)}",
                f"{escape(order.departure)} → {escape(order.arrival)}",
                f"Цена: {order.price:g}, вознаграждение: {order.reward:g}",
                f"Заказчик: {_user_line(customer)}",
            ]
            if order.description:
                lines.append(escape(order.description))
            if order.media_refs:
                lines.append(f"Медиа: {len(order.media_refs)}")
        case ReviewCard(review=review, author=author, target=target, region=region):
            lines = [
                f"⭐ <b>Отзыв #{review.id}</b> [{region.value}]",
                f"Оценка: {review.rating}/5",
                f"Автор: {_user_line(author)}",
                f"О ком: {_user_line(target)}",
                f"Заказ: #{review.order_id}",
            ]
            if review.comment:
                lines.append(escape(review.comment))
        case _:
            assert_never(card)
    return "\n".join(lines)
