import uuid

import pytest

from vietadmin.crud.admin_module import AdminModuleRepository
from vietadmin.errors import ConflictError, NotFoundError, ValidationError
from vietadmin.models import ModuleCategory
from vietadmin.schemas.module import ModuleCreate, ModuleUpdate
from vietadmin.services.admin.module_service import ModuleService


async def make_module(session, key: str, **overrides):
    values = {
        "key": key,
        "name": key.title(),
        "category": "content",
        "enabled": True,
        "is_core": False,
        "order": 0,
    }
    values.update(overrides)
    module = await AdminModuleRepository(session).create(**values)
    await session.commit()
    return module


@pytest.fixture
def service(session) -> ModuleService:
    return ModuleService(session)


@pytest.fixture
async def commerce(session):
    await make_module(session, "settings", category="system", is_core=True, order=1)
    await make_module(session, "customers", category="user", is_core=True, order=2)
    await make_module(session, "products", category="commerce", order=3)
    await make_module(
        session,
        "orders",
        category="commerce",
        order=4,
        dependencies=["products", "customers"],
        dependency_type="all",
    )
    await make_module(
        session,
        "cart",
        category="commerce",
        order=5,
        dependencies=["products"],
        dependency_type="all",
    )
    await make_module(session, "posts", order=6, enabled=False)
    await make_module(
        session,
        "comments",
        order=7,
        enabled=False,
        dependencies=["posts", "products"],
        dependency_type="any",
    )


class TestQueries:
    @pytest.mark.anyio
    async def test_list_is_ordered(self, service, commerce):
        modules = await service.list_modules()

        assert [m.key for m in modules] == [
            "settings", "customers", "products", "orders", "cart", "posts", "comments",
        ]

    @pytest.mark.anyio
    async def test_list_enabled(self, service, commerce):
        keys = [m.key for m in await service.list_enabled_modules()]

        assert "posts" not in keys
        assert "comments" not in keys
        assert keys[0] == "settings"

    @pytest.mark.anyio
    async def test_list_by_category(self, service, commerce):
        modules = await service.list_modules_by_category(ModuleCategory.COMMERCE)

        assert [m.key for m in modules] == ["products", "orders", "cart"]

    @pytest.mark.anyio
    async def test_list_by_unknown_category(self, service):
        with pytest.raises(ValidationError, match="Invalid category 'toys'"):
            await service.list_modules_by_category("toys")

    @pytest.mark.anyio
    async def test_get_by_key(self, service, commerce):
        assert (await service.get_module_by_key("orders")).name == "Orders"
        assert await service.get_module_by_key("ghost") is None

    @pytest.mark.anyio
    async def test_dependents_only_include_enabled_modules(self, service, commerce):
        dependents = await service.get_dependent_modules("products")

        assert sorted(m.key for m in dependents) == ["cart", "orders"]


class TestToggle:
    @pytest.mark.anyio
    async def test_disable_and_enable(self, service, commerce):
        module = await service.toggle_module("cart", False)
        assert module.enabled is False

        module = await service.toggle_module("cart", True)
        assert module.enabled is True

    @pytest.mark.anyio
    async def test_records_updated_by(self, service, commerce):
        admin_id = uuid.uuid4()

        module = await service.toggle_module("cart", False, updated_by=admin_id)

        assert module.updated_by == admin_id

    @pytest.mark.anyio
    async def test_core_module_cannot_be_disabled(self, service, commerce):
        with pytest.raises(ValidationError, match="Cannot disable core module"):
            await service.toggle_module("settings", False)

    @pytest.mark.anyio
    async def test_enabling_core_module_is_allowed(self, service, commerce):
        assert (await service.toggle_module("settings", True)).enabled is True

    @pytest.mark.anyio
    async def test_enable_blocked_by_unmet_all_dependency(self, service, session, commerce):
        await service.toggle_module("orders", False)
        await service.toggle_module("cart", False)
        await service.toggle_module("products", False)

        with pytest.raises(ValidationError) as exc_info:
            await service.toggle_module("orders", True)

        assert exc_info.value.message == 'Dependency module "products" must be enabled first'
        assert exc_info.value.details == {
            "module_key": "orders",
            "missing_dependencies": ["products"],
        }

    @pytest.mark.anyio
    async def test_enable_any_dependency(self, service, commerce):
        # products is enabled, posts is not
        module = await service.toggle_module("comments", True)

        assert module.enabled is True

    @pytest.mark.anyio
    async def test_enable_blocked_when_no_any_dependency_enabled(self, service, commerce):
        await service.toggle_module("orders", False)
        await service.toggle_module("cart", False)
        await service.toggle_module("products", False)

        with pytest.raises(ValidationError) as exc_info:
            await service.toggle_module("comments", True)

        assert exc_info.value.message == (
            'At least one dependency module of "posts", "products" must be enabled first'
        )

    @pytest.mark.anyio
    async def test_unknown_module(self, service):
        with pytest.raises(NotFoundError, match="Module not found"):
            await service.toggle_module("ghost", True)


class TestCascade:
    @pytest.mark.anyio
    async def test_disables_listed_dependents(self, service, commerce):
        result = await service.toggle_module_with_cascade(
            "products", False, ["cart", "orders", "settings", "posts", "ghost"]
        )

        assert result.success is True
        assert result.disabled_modules == ["cart", "orders"]
        enabled = {m.key for m in await service.list_enabled_modules()}
        assert enabled == {"settings", "customers"}

    @pytest.mark.anyio
    async def test_cascade_ignored_when_enabling(self, service, commerce):
        result = await service.toggle_module_with_cascade("posts", True, ["cart"])

        assert result.success is True
        assert result.disabled_modules == []
        assert (await service.get_module_by_key("cart")).enabled is True

    @pytest.mark.anyio
    async def test_unknown_key_reports_failure(self, service):
        result = await service.toggle_module_with_cascade("ghost", False, ["cart"])

        assert result.success is False
        assert result.disabled_modules == []

    @pytest.mark.anyio
    async def test_core_module_still_protected(self, service, commerce):
        with pytest.raises(ValidationError, match="Cannot disable core module"):
            await service.toggle_module_with_cascade("customers", False, ["orders"])

        assert (await service.get_module_by_key("orders")).enabled is True


class TestCreate:
    @pytest.mark.anyio
    async def test_defaults(self, service, commerce):
        module = await service.create_module(
            ModuleCreate(key="media", name="Media", category=ModuleCategory.CONTENT)
        )

        assert module.enabled is True
        assert module.is_core is False
        assert module.order == 7
        assert module.dependency_type is None

    @pytest.mark.anyio
    async def test_dependencies_default_to_all(self, service, commerce):
        module = await service.create_module(
            ModuleCreate(
                key="wishlist",
                name="Wishlist",
                category=ModuleCategory.COMMERCE,
                dependencies=["products", "customers"],
            )
        )

        assert module.dependency_type == "all"

    @pytest.mark.anyio
    async def test_enabled_creation_requires_dependencies(self, service, commerce):
        with pytest.raises(ValidationError, match='Dependency module "posts" must be enabled first'):
            await service.create_module(
                ModuleCreate(
                    key="tags",
                    name="Tags",
                    category=ModuleCategory.CONTENT,
                    dependencies=["posts"],
                )
            )

    @pytest.mark.anyio
    async def test_disabled_creation_skips_dependency_check(self, service, commerce):
        module = await service.create_module(
            ModuleCreate(
                key="tags",
                name="Tags",
                category=ModuleCategory.CONTENT,
                enabled=False,
                dependencies=["posts"],
            )
        )

        assert module.enabled is False

    @pytest.mark.anyio
    async def test_core_module_is_always_enabled(self, service):
        module = await service.create_module(
            ModuleCreate(key="users", name="Users", category=ModuleCategory.USER, is_core=True, enabled=False)
        )

        assert module.enabled is True

    @pytest.mark.anyio
    async def test_duplicate_key(self, service, commerce):
        with pytest.raises(ConflictError, match="Module key already exists"):
            await service.create_module(
                ModuleCreate(key="orders", name="Orders", category=ModuleCategory.COMMERCE)
            )

    @pytest.mark.anyio
    async def test_self_dependency_is_a_cycle(self, service):
        with pytest.raises(ValidationError, match="must not form a cycle"):
            await service.create_module(
                ModuleCreate(
                    key="loop",
                    name="Loop",
                    category=ModuleCategory.SYSTEM,
                    dependencies=["loop"],
                )
            )


class TestUpdate:
    @pytest.mark.anyio
    async def test_partial_update(self, service, commerce):
        module = await service.update_module("cart", ModuleUpdate(name="Basket", order=42))

        assert module.name == "Basket"
        assert module.order == 42
        assert module.category == "commerce"

    @pytest.mark.anyio
    async def test_empty_update(self, service, commerce):
        with pytest.raises(ValidationError, match="No fields to update"):
            await service.update_module("cart", ModuleUpdate())

    @pytest.mark.anyio
    async def test_null_for_required_field(self, service, commerce):
        with pytest.raises(ValidationError, match="category cannot be null"):
            await service.update_module("cart", ModuleUpdate(category=None))

    @pytest.mark.anyio
    async def test_cycle_through_existing_modules(self, service, commerce):
        with pytest.raises(ValidationError, match="must not form a cycle") as exc_info:
            await service.update_module("products", ModuleUpdate(dependencies=["orders"]))

        assert exc_info.value.details["cycle"] == ["products", "orders", "products"]

    @pytest.mark.anyio
    async def test_enabled_module_cannot_gain_unmet_dependency(self, service, commerce):
        with pytest.raises(ValidationError, match='Dependency module "posts" must be enabled first'):
            await service.update_module("cart", ModuleUpdate(dependencies=["posts"]))

    @pytest.mark.anyio
    async def test_disabled_module_may_gain_unmet_dependency(self, service, commerce):
        module = await service.update_module("posts", ModuleUpdate(dependencies=["tags"]))

        assert module.dependencies == ["tags"]
        assert module.dependency_type == "all"

    @pytest.mark.anyio
    async def test_unknown_module(self, service):
        with pytest.raises(NotFoundError):
            await service.update_module("ghost", ModuleUpdate(name="Ghost"))


class TestRemove:
    @pytest.mark.anyio
    async def test_remove(self, service, commerce):
        await service.remove_module("cart")

        assert await service.get_module_by_key("cart") is None

    @pytest.mark.anyio
    async def test_core_module_cannot_be_removed(self, service, commerce):
        with pytest.raises(ValidationError, match="Cannot delete core module"):
            await service.remove_module("customers")

    @pytest.mark.anyio
    async def test_unknown_module(self, service):
        with pytest.raises(NotFoundError):
            await service.remove_module("ghost")
