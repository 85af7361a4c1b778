"""
Permissions and Roles Configuration
This config defines the permission catalog for every dashboard area and the default roles.
Used by the seed script to populate/update roles, permissions and role_permissions.
"""

# Define dashboard areas and their actions
MODULES = {
    "orders": {
        "resource": "orders",
        "actions": ["view", "create", "edit", "delete"],
        "description": "Customer orders"
    },
    "inventory": {
        "resource": "inventory",
        "actions": ["view", "create", "edit", "delete"],
        "description": "Inventory and stock moves"
    },
    "tasks": {
        "resource": "tasks",
        "actions": ["view", "create", "edit", "delete"],
        "description": "Team tasks"
    },
    "payables": {
        "resource": "payables",
        "actions": ["view", "create", "edit", "delete"],
        "description": "Bills and payables"
    },
    "team": {
        "resource": "team",
        "actions": ["view", "edit"],
        "description": "Team roster"
    }
}

# Additional descriptions for specific actions
MODULE_SPECIFIC_PERMISSIONS = {
    "inventory": {
        "edit": "Adjust stock levels and record stock moves"
    },
    "team": {
        "edit": "Reassign team member roles"
    }
}

# Default roles. Privileged roles hold every permission; their grants are never read.
DEFAULT_ROLES = {
    "CEO": {
        "description": "Company owner with full access",
        "is_privileged": True,
        "permissions": []
    },
    "Admin": {
        "description": "System administrator with full access",
        "is_privileged": True,
        "permissions": []
    },
    "Ops Assistant": {
        "description": "Day-to-day operations: orders, inventory and tasks",
        "is_privileged": False,
        "permissions": [
            "orders:view", "orders:create", "orders:edit",
            "inventory:view", "inventory:edit",
            "tasks:view", "tasks:create", "tasks:edit",
            "team:view"
        ]
    },
    "Accountant": {
        "description": "Finance: payables and read-only orders",
        "is_privileged": False,
        "permissions": [
            "payables:view", "payables:create",
            "orders:view",
            "team:view"
        ]
    }
}


def get_permission_matrix():
    """
    Returns a dictionary with all permissions and the default roles
    Format: {
        "permissions": [
            {"name": "orders:view", "resource": "orders", "action": "view", "description": "..."},
            ...
        ],
        "roles": [
            {
                "name": "Accountant",
                "description": "...",
                "is_privileged": False,
                "permissions": ["orders:view", "payables:create", ...]
            },
            ...
        ]
    }
    """
    permissions = []
    known = set()

    for module_name, module_config in MODULES.items():
        resource = module_config["resource"]

        for action in module_config["actions"]:
            permission_name = f"{resource}:{action}"
            description = f"{action.capitalize()} {module_config['description'].lower()}"

            if module_name in MODULE_SPECIFIC_PERMISSIONS and action in MODULE_SPECIFIC_PERMISSIONS[module_name]:
                description = MODULE_SPECIFIC_PERMISSIONS[module_name][action]

            known.add(permission_name)
            permissions.append({
                "name": permission_name,
                "resource": resource,
                "action": action,
                "description": description
            })

    roles = []
    for role_name, role_config in DEFAULT_ROLES.items():
        unknown = [p for p in role_config["permissions"] if p not in known]
        if unknown:
            raise ValueError(f"Role {role_name} references unknown permissions: {unknown}")
        roles.append({
            "name": role_name,
            "description": role_config["description"],
            "is_privileged": role_config["is_privileged"],
            "permissions": sorted(role_config["permissions"])
        })

    return {
        "permissions": permissions,
        "roles": roles
    }


# Export the matrix for use in seed scripts
PERMISSION_MATRIX = get_permission_matrix()
