from dataclasses import dataclass
from typing import List, Optional

from opsboard.core.session import SessionAuthorization


@dataclass(frozen=True)
class MenuItem:
    href: str
    label: str
    resource: Optional[str] = None
    action: str = "view"
    public: bool = False
    admin: bool = False


MENU_ITEMS = [
    MenuItem("/dashboard", "Mission Control", public=True),
    MenuItem("/dashboard/orders", "Orders", resource="orders"),
    MenuItem("/dashboard/inventory", "Inventory", resource="inventory"),
    MenuItem("/dashboard/tasks", "Tasks", public=True),
    MenuItem("/dashboard/payables", "Payables", resource="payables"),
    MenuItem("/dashboard/team", "Team", public=True),
    MenuItem("/dashboard/settings", "Settings", admin=True),
]


def can_see(session: SessionAuthorization, item: MenuItem) -> bool:
    if item.public:
        return True
    if item.admin:
        return session.is_privileged
    return item.resource is not None and session.has_permission(item.resource, item.action)


def visible_menu_items(session: SessionAuthorization) -> List[MenuItem]:
    """Dashboard sections the session may open, in menu order"""
    return [item for item in MENU_ITEMS if can_see(session, item)]
