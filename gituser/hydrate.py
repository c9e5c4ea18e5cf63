from __future__ import annotations

import logging

from .errors import ExternalToolError, NotConfigured, NotTrackedWorkspace, StorageError
from .git_config import ConfigBridge, Scope
from .store import IdentityStore

logger = logging.getLogger(__name__)


def _import_scope(store: IdentityStore, bridge: ConfigBridge, scope: Scope) -> int | None:
    try:
        name, email = bridge.read_author(scope)
    except (NotConfigured, NotTrackedWorkspace, ExternalToolError) as exc:
        logger.debug("hydrate %s skipped: %s", scope, exc)
        return None
    name = name.strip()
    email = email.strip()
    if not name or "@" not in email:
        logger.debug("hydrate %s skipped: malformed author %r <%r>", scope, name, email)
        return None
    try:
        return store.insert(name, email)
    except StorageError as exc:
        logger.warning("hydrate %s insert failed: %s", scope, exc)
        return None


def hydrate_from_git(store: IdentityStore, bridge: ConfigBridge) -> list[int]:
    """Seed the store with the configured global and local git authors.

    Unset config is expected and skipped silently. Returns ids of rows that
    did not exist before.
    """

    inserted: list[int] = []
    scopes: list[Scope] = ["global"]
    if bridge.is_inside_tracked_workspace():
        scopes.append("local")
    for scope in scopes:
        new_id = _import_scope(store, bridge, scope)
        if new_id is not None:
            inserted.append(new_id)
    return inserted
