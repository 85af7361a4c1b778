"""
Seed Permissions and Roles Script
This script populates the permissions, roles and role_permissions tables using the config.
Privileged roles (CEO, Admin) get is_privileged=true and no grant rows.
Run with: python -m opsboard.scripts.seed_permissions_roles
"""

import asyncio
import logging
import sys

from opsboard.config.permissions_config import PERMISSION_MATRIX
from opsboard.database.supabase_client import SupabaseClient
from supabase import AsyncClient

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


async def seed_permissions(supabase: AsyncClient):
    """Seed permissions from config"""
    logger.info("Seeding permissions...")

    permissions = PERMISSION_MATRIX["permissions"]
    created_count = 0
    updated_count = 0

    for perm in permissions:
        try:
            existing = await supabase.table("permissions")\
                .select("id")\
                .eq("name", perm["name"])\
                .execute()

            if existing.data:
                await supabase.table("permissions")\
                    .update({
                        "resource": perm["resource"],
                        "action": perm["action"],
                        "description": perm["description"]
                    })\
                    .eq("name", perm["name"])\
                    .execute()
                updated_count += 1
                logger.debug(f"Updated permission: {perm['name']}")
            else:
                await supabase.table("permissions").insert({
                    "name": perm["name"],
                    "resource": perm["resource"],
                    "action": perm["action"],
                    "description": perm["description"]
                }).execute()
                created_count += 1
                logger.debug(f"Created permission: {perm['name']}")
        except Exception as e:
            logger.error(f"Error processing permission {perm['name']}: {e}")

    logger.info(f"Permissions seeded: {created_count} created, {updated_count} updated")
    return created_count + updated_count


async def seed_roles(supabase: AsyncClient):
    """Seed roles from config"""
    logger.info("Seeding roles...")

    roles = PERMISSION_MATRIX["roles"]
    created_count = 0
    updated_count = 0

    for role in roles:
        try:
            existing = await supabase.table("roles")\
                .select("id")\
                .eq("name", role["name"])\
                .execute()

            if existing.data:
                await supabase.table("roles")\
                    .update({
                        "description": role["description"],
                        "is_privileged": role["is_privileged"]
                    })\
                    .eq("name", role["name"])\
                    .execute()
                role_id = existing.data[0]["id"]
                updated_count += 1
                logger.debug(f"Updated role: {role['name']}")
            else:
                result = await supabase.table("roles").insert({
                    "name": role["name"],
                    "description": role["description"],
                    "is_privileged": role["is_privileged"]
                }).execute()
                role_id = result.data[0]["id"]
                created_count += 1
                logger.debug(f"Created role: {role['name']}")

            if role["is_privileged"]:
                # Grants of privileged roles are never read; keep the table clean
                await supabase.table("role_permissions").delete().eq("role_id", role_id).execute()
            else:
                await assign_permissions_to_role(supabase, role_id, role["name"], role["permissions"])

        except Exception as e:
            logger.error(f"Error processing role {role['name']}: {e}")

    logger.info(f"Roles seeded: {created_count} created, {updated_count} updated")
    return created_count + updated_count


async def assign_permissions_to_role(supabase: AsyncClient, role_id: str, role_name: str, permission_names: list):
    """Make the role's grants match the config exactly"""
    try:
        permission_ids = []
        if permission_names:
            permission_result = await supabase.table("permissions")\
                .select("id")\
                .in_("name", permission_names)\
                .execute()
            if not permission_result.data:
                logger.warning(f"No permissions found for role {role_name}")
                return
            permission_ids = [p["id"] for p in permission_result.data]

        existing_result = await supabase.table("role_permissions")\
            .select("permission_id")\
            .eq("role_id", role_id)\
            .execute()

        existing_permission_ids = {p["permission_id"] for p in existing_result.data} if existing_result.data else set()

        new_assignments = [
            {"role_id": role_id, "permission_id": pid}
            for pid in permission_ids
            if pid not in existing_permission_ids
        ]

        if new_assignments:
            await supabase.table("role_permissions").insert(new_assignments).execute()
            logger.debug(f"Assigned {len(new_assignments)} permissions to role {role_name}")

        # Remove permissions that are no longer in the config
        permissions_to_remove = existing_permission_ids - set(permission_ids)
        if permissions_to_remove:
            await supabase.table("role_permissions")\
                .delete()\
                .eq("role_id", role_id)\
                .in_("permission_id", list(permissions_to_remove))\
                .execute()
            logger.debug(f"Removed {len(permissions_to_remove)} permissions from role {role_name}")

    except Exception as e:
        logger.error(f"Error assigning permissions to role {role_name}: {e}")


async def run():
    supabase = await SupabaseClient.get_service_client()

    logger.info("Starting permissions and roles seeding...")

    # Seed permissions first
    perm_count = await seed_permissions(supabase)

    # Then seed roles (which depend on permissions)
    role_count = await seed_roles(supabase)

    logger.info("Seeding completed successfully!")
    logger.info(f"Total: {perm_count} permissions, {role_count} roles processed")


def main():
    """Main function to seed permissions and roles"""
    try:
        asyncio.run(run())
    except Exception as e:
        logger.error(f"Error during seeding: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
