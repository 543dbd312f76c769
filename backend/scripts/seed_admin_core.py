"""
Seed data for the admin core: module registry, presets and the super admin role.
Run once after the initial migration; running it again only fills in what is missing.

Set SEED_ADMIN_EMAIL and SEED_ADMIN_PASSWORD to also create the first admin
account bound to the super admin role.

Usage:
    python -m scripts.seed_admin_core
"""
import asyncio
import os

from sqlalchemy.ext.asyncio import AsyncSession

from vietadmin.auth.passwords import hash_password
from vietadmin.crud.admin_module import AdminModuleRepository
from vietadmin.crud.role import RoleRepository
from vietadmin.crud.system_preset import SystemPresetRepository
from vietadmin.crud.user import AdminUserRepository
from vietadmin.database import AsyncSessionLocal
from vietadmin.models.role import WILDCARD

SUPER_ADMIN_ROLE = {
    "name": "Super Admin",
    "description": "Toàn quyền hệ thống",
    "color": "#ef4444",
    "permissions": {WILDCARD: [WILDCARD]},
    "is_system": True,
    "is_super_admin": True,
}

DEFAULT_MODULES = [
    # content
    {"key": "posts", "name": "Bài viết & Danh mục", "description": "Quản lý bài viết, tin tức, blog và danh mục bài viết", "icon": "FileText", "category": "content", "enabled": True, "is_core": False, "order": 1},
    {"key": "comments", "name": "Bình luận và đánh giá", "description": "Bình luận và đánh giá cho bài viết, sản phẩm", "icon": "MessageSquare", "category": "content", "enabled": True, "is_core": False, "order": 2, "dependencies": ["posts", "products"], "dependency_type": "any"},
    {"key": "media", "name": "Thư viện Media", "description": "Quản lý hình ảnh, video, tài liệu", "icon": "Image", "category": "content", "enabled": True, "is_core": False, "order": 3},
    # commerce
    {"key": "products", "name": "Sản phẩm & Danh mục", "description": "Quản lý sản phẩm, danh mục sản phẩm, kho hàng", "icon": "Package", "category": "commerce", "enabled": True, "is_core": False, "order": 4},
    {"key": "orders", "name": "Đơn hàng", "description": "Quản lý đơn hàng, vận chuyển", "icon": "ShoppingBag", "category": "commerce", "enabled": True, "is_core": False, "order": 5, "dependencies": ["products", "customers"], "dependency_type": "all"},
    {"key": "cart", "name": "Giỏ hàng", "description": "Chức năng giỏ hàng cho khách", "icon": "ShoppingCart", "category": "commerce", "enabled": True, "is_core": False, "order": 6, "dependencies": ["products"], "dependency_type": "all"},
    {"key": "wishlist", "name": "Sản phẩm yêu thích", "description": "Danh sách sản phẩm yêu thích của khách", "icon": "Heart", "category": "commerce", "enabled": False, "is_core": False, "order": 7, "dependencies": ["products", "customers"], "dependency_type": "all"},
    # user
    {"key": "customers", "name": "Khách hàng", "description": "Quản lý thông tin khách hàng", "icon": "Users", "category": "user", "enabled": True, "is_core": True, "order": 8},
    {"key": "users", "name": "Người dùng Admin", "description": "Quản lý tài khoản admin", "icon": "UserCog", "category": "user", "enabled": True, "is_core": True, "order": 9},
    {"key": "roles", "name": "Vai trò & Quyền", "description": "Phân quyền và quản lý vai trò", "icon": "Shield", "category": "user", "enabled": True, "is_core": True, "order": 10},
    # system
    {"key": "settings", "name": "Cài đặt hệ thống", "description": "Cấu hình website và hệ thống", "icon": "Settings", "category": "system", "enabled": True, "is_core": True, "order": 11},
    {"key": "menus", "name": "Menu điều hướng", "description": "Quản lý menu header, footer", "icon": "Menu", "category": "system", "enabled": True, "is_core": False, "order": 12},
    {"key": "homepage", "name": "Trang chủ", "description": "Cấu hình components trang chủ", "icon": "LayoutGrid", "category": "system", "enabled": True, "is_core": False, "order": 13},
    # marketing
    {"key": "notifications", "name": "Thông báo", "description": "Gửi thông báo cho người dùng", "icon": "Bell", "category": "marketing", "enabled": True, "is_core": False, "order": 14},
    {"key": "promotions", "name": "Khuyến mãi", "description": "Quản lý mã giảm giá, voucher", "icon": "Megaphone", "category": "marketing", "enabled": False, "is_core": False, "order": 15, "dependencies": ["products", "orders"], "dependency_type": "all"},
    {"key": "analytics", "name": "Thống kê", "description": "Báo cáo và phân tích dữ liệu", "icon": "BarChart3", "category": "marketing", "enabled": True, "is_core": False, "order": 16},
    {"key": "services", "name": "Dịch vụ", "description": "Quản lý dịch vụ và danh mục dịch vụ", "icon": "Briefcase", "category": "content", "enabled": True, "is_core": False, "order": 17},
]

DEFAULT_PRESETS = [
    {"key": "blog", "name": "Blog / News", "description": "Blog với bài viết và bình luận", "is_default": False, "enabled_modules": ["posts", "comments", "media", "customers", "users", "roles", "settings", "menus", "homepage", "analytics"]},
    {"key": "landing", "name": "Landing Page", "description": "Trang giới thiệu đơn giản", "is_default": False, "enabled_modules": ["posts", "media", "users", "roles", "settings", "menus", "homepage"]},
    {"key": "catalog", "name": "Catalog", "description": "Trưng bày sản phẩm không giỏ hàng", "is_default": False, "enabled_modules": ["products", "media", "customers", "users", "roles", "settings", "menus", "homepage", "notifications", "analytics"]},
    {"key": "ecommerce-basic", "name": "eCommerce Basic", "description": "Shop đơn giản với giỏ hàng", "is_default": False, "enabled_modules": ["products", "orders", "cart", "media", "customers", "users", "roles", "settings", "menus", "homepage", "notifications", "analytics"]},
    {"key": "ecommerce-full", "name": "eCommerce Full", "description": "Shop đầy đủ: giỏ hàng, wishlist, khuyến mãi", "is_default": True, "enabled_modules": ["posts", "comments", "media", "products", "orders", "cart", "wishlist", "customers", "users", "roles", "settings", "menus", "homepage", "notifications", "promotions", "analytics"]},
]


async def seed_admin_core(
    session: AsyncSession,
    admin_email: str | None = None,
    admin_password: str | None = None,
) -> dict[str, int]:
    """Insert the default modules, presets and super admin role if missing.

    Returns the number of rows created per kind.
    """
    module_repo = AdminModuleRepository(session)
    preset_repo = SystemPresetRepository(session)
    role_repo = RoleRepository(session)
    user_repo = AdminUserRepository(session)
    created = {"modules": 0, "presets": 0, "roles": 0, "users": 0}

    print("Seeding modules...")
    for module_data in DEFAULT_MODULES:
        if await module_repo.get_by_key(module_data["key"]) is not None:
            print(f"  Module '{module_data['key']}' already exists, skipping...")
            continue
        await module_repo.create(**module_data)
        created["modules"] += 1
        print(f"  ✓ Created module: {module_data['key']}")

    print("\nSeeding presets...")
    existing_default = await preset_repo.get_default()
    for preset_data in DEFAULT_PRESETS:
        if await preset_repo.get_by_key(preset_data["key"]) is not None:
            print(f"  Preset '{preset_data['key']}' already exists, skipping...")
            continue
        values = dict(preset_data)
        # never steal the default from a preset an admin already promoted
        if existing_default is not None:
            values["is_default"] = False
        await preset_repo.create(**values)
        created["presets"] += 1
        print(f"  ✓ Created preset: {preset_data['key']}")

    print("\nSeeding super admin role...")
    role = await role_repo.get_super_admin_role()
    if role is None:
        role = await role_repo.create(**SUPER_ADMIN_ROLE)
        created["roles"] += 1
        print(f"  ✓ Created role: {role.name}")
    else:
        print(f"  Role '{role.name}' already exists, skipping...")

    if admin_email and admin_password:
        if await user_repo.get_by_email(admin_email.strip().lower()) is None:
            await user_repo.create(
                email=admin_email,
                name="Super Admin",
                password_hash=hash_password(admin_password),
                role_id=role.id,
            )
            created["users"] += 1
            print(f"  ✓ Created admin account: {admin_email}")
        else:
            print(f"  Admin account '{admin_email}' already exists, skipping...")

    await session.commit()
    return created


async def main() -> None:
    async with AsyncSessionLocal() as session:
        created = await seed_admin_core(
            session,
            admin_email=os.getenv("SEED_ADMIN_EMAIL"),
            admin_password=os.getenv("SEED_ADMIN_PASSWORD"),
        )
    print(
        "\n✅ Admin core seeding completed: "
        + ", ".join(f"{kind}={count}" for kind, count in created.items())
    )


if __name__ == "__main__":
    asyncio.run(main())
