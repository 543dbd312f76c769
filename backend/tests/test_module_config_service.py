import uuid

import pytest

from vietadmin.crud.admin_module import AdminModuleRepository
from vietadmin.errors import ConflictError, NotFoundError, ValidationError
from vietadmin.models import FieldType
from vietadmin.schemas.module_config import FeatureCreate, FieldCreate, FieldUpdate
from vietadmin.services.admin.module_config_service import ModuleConfigService
from vietadmin.services.admin.module_service import ModuleService


@pytest.fixture
def service(session) -> ModuleConfigService:
    return ModuleConfigService(session)


@pytest.fixture
async def products(session):
    repo = AdminModuleRepository(session)
    for key in ("products", "posts"):
        await repo.create(key=key, name=key.title(), category="commerce", order=0)
    await session.commit()


def field(field_key: str, **overrides) -> FieldCreate:
    values = {"field_key": field_key, "name": field_key, "type": FieldType.TEXT}
    values.update(overrides)
    return FieldCreate(**values)


class TestFields:
    @pytest.mark.anyio
    async def test_order_defaults_to_position(self, service, products):
        first = await service.create_field("products", field("name", is_system=True))
        second = await service.create_field("products", field("salePrice", type=FieldType.PRICE))

        assert (first.order, second.order) == (0, 1)
        assert second.type == "price"
        keys = [f.field_key for f in await service.list_fields("products")]
        assert keys == ["name", "salePrice"]

    @pytest.mark.anyio
    async def test_enabled_only_listing(self, service, products):
        await service.create_field("products", field("name"))
        await service.create_field("products", field("sku", enabled=False))

        enabled = await service.list_fields("products", enabled_only=True)

        assert [f.field_key for f in enabled] == ["name"]

    @pytest.mark.anyio
    async def test_duplicate_field_key_conflicts(self, service, products):
        await service.create_field("products", field("sku"))

        with pytest.raises(ConflictError):
            await service.create_field("products", field("sku"))

    @pytest.mark.anyio
    async def test_field_for_unknown_module(self, service):
        with pytest.raises(NotFoundError):
            await service.create_field("ghost", field("sku"))

    @pytest.mark.anyio
    async def test_system_field_cannot_be_disabled(self, service, products):
        name = await service.create_field("products", field("name", is_system=True))

        with pytest.raises(ValidationError, match="Cannot disable system field"):
            await service.update_field("products", name.id, FieldUpdate(enabled=False))

        renamed = await service.update_field("products", name.id, FieldUpdate(name="Tên"))
        assert renamed.name == "Tên"
        assert renamed.enabled is True

    @pytest.mark.anyio
    async def test_system_field_cannot_be_deleted(self, service, products):
        name = await service.create_field("products", field("name", is_system=True))

        with pytest.raises(ValidationError, match="Cannot delete system field"):
            await service.remove_field("products", name.id)

    @pytest.mark.anyio
    async def test_remove_field(self, service, products):
        sku = await service.create_field("products", field("sku"))

        await service.remove_field("products", sku.id)

        assert await service.list_fields("products") == []

    @pytest.mark.anyio
    async def test_field_of_another_module_is_not_found(self, service, products):
        sku = await service.create_field("products", field("sku"))

        with pytest.raises(NotFoundError):
            await service.remove_field("posts", sku.id)
        with pytest.raises(NotFoundError):
            await service.update_field("products", uuid.uuid4(), FieldUpdate(required=True))


class TestFeatures:
    @pytest.mark.anyio
    async def test_toggle_carries_linked_field(self, service, products):
        gallery = await service.create_field("products", field("gallery", type=FieldType.GALLERY))
        await service.create_feature(
            "products",
            FeatureCreate(feature_key="enableGallery", name="Gallery", linked_field_key="gallery"),
        )

        feature = await service.toggle_feature("products", "enableGallery", False)

        assert feature.enabled is False
        assert gallery.enabled is False

        await service.toggle_feature("products", "enableGallery", True)
        assert gallery.enabled is True

    @pytest.mark.anyio
    async def test_toggle_leaves_linked_system_field_alone(self, service, products):
        name = await service.create_field("products", field("name", is_system=True))
        await service.create_feature(
            "products",
            FeatureCreate(feature_key="enableName", name="Name", linked_field_key="name"),
        )

        await service.toggle_feature("products", "enableName", False)

        assert name.enabled is True

    @pytest.mark.anyio
    async def test_toggle_unknown_feature(self, service, products):
        with pytest.raises(NotFoundError, match="Feature not found"):
            await service.toggle_feature("products", "enableGhost", True)

    @pytest.mark.anyio
    async def test_duplicate_feature_key_conflicts(self, service, products):
        await service.create_feature("products", FeatureCreate(feature_key="enableSku", name="SKU"))

        with pytest.raises(ConflictError):
            await service.create_feature(
                "products", FeatureCreate(feature_key="enableSku", name="SKU")
            )

    @pytest.mark.anyio
    async def test_remove_feature(self, service, products):
        feature = await service.create_feature(
            "products", FeatureCreate(feature_key="enableSku", name="SKU")
        )

        await service.remove_feature("products", feature.id)

        assert await service.get_feature("products", "enableSku") is None


class TestSettings:
    @pytest.mark.anyio
    async def test_set_creates_then_overwrites(self, service, products):
        await service.set_setting("products", "perPage", 20)
        await service.set_setting("products", "perPage", {"desktop": 24, "mobile": 12})

        settings = await service.list_settings("products")

        assert len(settings) == 1
        assert settings[0].value == {"desktop": 24, "mobile": 12}

    @pytest.mark.anyio
    async def test_setting_for_unknown_module(self, service):
        with pytest.raises(NotFoundError):
            await service.set_setting("ghost", "perPage", 20)

    @pytest.mark.anyio
    async def test_remove_missing_setting_is_a_noop(self, service, products):
        await service.set_setting("products", "perPage", 20)

        await service.remove_setting("products", "currency")
        await service.remove_setting("products", "perPage")

        assert await service.get_setting("products", "perPage") is None


@pytest.mark.anyio
async def test_removing_a_module_deletes_its_configuration(service, session, products):
    await service.create_field("products", field("sku"))
    await service.create_feature("products", FeatureCreate(feature_key="enableSku", name="SKU"))
    await service.set_setting("products", "perPage", 20)
    await service.set_setting("posts", "perPage", 10)

    await ModuleService(session).remove_module("products")

    assert await service.list_fields("products") == []
    assert await service.list_features("products") == []
    assert await service.list_settings("products") == []
    assert [s.setting_key for s in await service.list_settings("posts")] == ["perPage"]
