# backend/apps/security/permission_registry.py

# Populated by each app's permissions.py. An entry declares one (module, action)
# capability and the scopes it may be granted at:
#   {"module": "leads", "action": "view", "scopes": ["own", "team", "department", "all"],
#    "description": "View leads"}

from apps.security.scopes import Scope

ALL_PERMISSIONS = []


def register_permissions(permissions_list):
    """Registers a list of permissions from an app."""
    for perm in permissions_list:
        if not isinstance(perm, dict) or 'module' not in perm or 'action' not in perm:
            raise ValueError("Each permission must be a dictionary with 'module' and 'action' keys.")
        scopes = []
        for raw in perm.get('scopes') or [Scope.ALL]:
            scope = Scope.parse(raw)
            if scope is None:
                raise ValueError(f"Unknown scope '{raw}' for {perm['module']}:{perm['action']}.")
            scopes.append(scope)
        entry = {
            'module': perm['module'],
            'action': perm['action'],
            'scopes': scopes,
            'description': perm.get('description', ''),
        }
        if any(e['module'] == entry['module'] and e['action'] == entry['action'] for e in ALL_PERMISSIONS):
            continue
        ALL_PERMISSIONS.append(entry)


def iter_permission_triples():
    """Yield (module, action, scope, description) for every registered scope."""
    for perm in ALL_PERMISSIONS:
        for scope in perm['scopes']:
            yield perm['module'], perm['action'], scope, f"{perm['description']} ({scope.label.lower()})"


def registered_capabilities():
    """{(module, action): [scopes]} for every registered capability."""
    return {(perm['module'], perm['action']): list(perm['scopes']) for perm in ALL_PERMISSIONS}
