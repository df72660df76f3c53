"""Built-in access model.

Every admin area gets ``<area>::read``, ``<area>::write`` and
``<area>::delete``. The ``administrator`` role holds all of them.
Seeding is idempotent and safe to run on every start.
"""

import structlog

from rolegraph.core.constants import ADMINISTRATOR_ROLE, BUILTIN_PERMISSION_AREAS
from rolegraph.core.errors import EntryNotFoundError
from rolegraph.core.permissions.policy import Operation, permission_name
from rolegraph.core.services import Services


logger = structlog.get_logger()


def builtin_permissions() -> list[str]:
    """Names of every built-in permission, sorted."""
    return sorted(
        permission_name(area, operation)
        for area in BUILTIN_PERMISSION_AREAS
        for operation in Operation
    )


async def seed_access_model(
    services: Services,
    admin_login: str | None = None,
    admin_password: str | None = None,
) -> None:
    """Ensure built-in permissions, the administrator role and the bootstrap admin.

    Args:
        services: The service container
        admin_login: Login of the bootstrap administrator, if one should exist
        admin_password: Password used only when that user has to be created
    """
    graph = services.graph
    names = builtin_permissions()
    await graph.ensure_permissions(names)

    role = await graph.find_role(ADMINISTRATOR_ROLE)
    if role is None:
        role = await graph.create_role(ADMINISTRATOR_ROLE, "Administrator")
    await graph.grant_permissions(role.id, names)

    if not admin_login or not admin_password:
        return

    try:
        admin = await services.identity.get_by_login(admin_login)
    except EntryNotFoundError:
        admin = await services.identity.create_user(admin_login, admin_password)
        logger.info("bootstrap_admin_created", login=admin_login)
    await graph.assign_role(admin.id, role.id)
