import pytest

from opsboard.config import permissions_config
from opsboard.config.permissions_config import PERMISSION_MATRIX, get_permission_matrix


def test_resource_action_pairs_are_unique():
    pairs = [(p["resource"], p["action"]) for p in PERMISSION_MATRIX["permissions"]]
    assert len(pairs) == len(set(pairs))


def test_permission_names_follow_resource_action():
    for perm in PERMISSION_MATRIX["permissions"]:
        assert perm["name"] == f"{perm['resource']}:{perm['action']}"


def test_privileged_roles_carry_no_grants():
    privileged = {r["name"]: r for r in PERMISSION_MATRIX["roles"] if r["is_privileged"]}
    assert set(privileged) == {"CEO", "Admin"}
    assert all(not r["permissions"] for r in privileged.values())


def test_accountant_defaults():
    accountant = next(r for r in PERMISSION_MATRIX["roles"] if r["name"] == "Accountant")
    assert "payables:view" in accountant["permissions"]
    assert "payables:edit" not in accountant["permissions"]


def test_unknown_permission_in_role_is_rejected(monkeypatch):
    roles = dict(permissions_config.DEFAULT_ROLES)
    roles["Broken"] = {"description": "", "is_privileged": False, "permissions": ["orders:fly"]}
    monkeypatch.setattr(permissions_config, "DEFAULT_ROLES", roles)
    with pytest.raises(ValueError):
        get_permission_matrix()
