# tests/common/test_constants.py
"""
Тесты модуля констант.
"""

from flycargo.common.constants import (
    FINAL_REGIONS,
    REGION_PROBE_ORDER,
    DeliveryStage,
    EntityKind,
    OrderStatus,
    Region,
    TypeMsg,
)


class TestTypeMsg:
    """Тесты для enum TypeMsg."""

    def test_type_msg_is_str_enum(self) -> None:
        assert isinstance(TypeMsg.DEBUG, str)
        assert TypeMsg.INFO == "info"


class TestRegions:
    """Тесты регионов хранения."""

    def test_lookup_order_starts_with_pending(self) -> None:
        assert REGION_PROBE_ORDER == (Region.PENDING, Region.RU, Region.OTHER)

    def test_final_regions_exclude_pending(self) -> None:
        assert Region.PENDING not in FINAL_REGIONS
        assert set(FINAL_REGIONS) | {Region.PENDING} == set(Region)

    def test_values_match_storage_tags(self) -> None:
        assert [r.value for r in Region] == ["PENDING", "RU", "OTHER"]


class TestStatuses:
    """Тесты перечислений статусов."""

    def test_order_status_values(self) -> None:
        assert OrderStatus.PROCESSED_BY_CARRIER.value == "PROCESSED_BY_CARRIER"
        assert len(list(OrderStatus)) == 4

    def test_delivery_stage_order(self) -> None:
        assert list(DeliveryStage) == [
            DeliveryStage.TRANSFERRED_BY_CUSTOMER,
            DeliveryStage.RECEIVED_BY_CARRIER,
            DeliveryStage.TRANSFERRED_BY_CARRIER,
            DeliveryStage.RECEIVED_BY_CUSTOMER,
        ]

    def test_entity_kind_values(self) -> None:
        assert {k.value for k in EntityKind} == {"flight", "order", "review"}
