# apps/users/roles.py
"""
Role-gated view composer.

Roles:
- Admin: the identity whose email matches the Admin/data document
- myEmployee: any other signed-in identity

Employees are further restricted by their permission level
(read / write / all); Admin always acts with 'all'.
"""
import copy

ROLE_ADMIN = 'Admin'
ROLE_EMPLOYEE = 'myEmployee'

PERMISSION_READ = 'read'
PERMISSION_WRITE = 'write'
PERMISSION_ALL = 'all'

PERMISSION_CHOICES = [
    (PERMISSION_READ, 'Read'),
    (PERMISSION_WRITE, 'Write'),
    (PERMISSION_ALL, 'All'),
]

MUTATING_PERMISSIONS = {PERMISSION_WRITE, PERMISSION_ALL}

BOTH_ROLES = (ROLE_ADMIN, ROLE_EMPLOYEE)
ADMIN_ONLY = (ROLE_ADMIN,)

# Screen names
DASHBOARD = 'Dashboard'
CLIENT_MANAGEMENT = 'Client Management'
FAMILY_MANAGEMENT = 'Family Management'
EMPLOYEE = 'Employee'
MASTERS = 'Masters'
PRODUCT_MASTER = 'Product Master'
LOCATION_AREA_MASTER = 'Location & Area Master'
TRANSACTIONS = 'Transactions'
POSTAL_ENTRY = 'Postal Entry'
FD_ENTRY = 'FD Entry'
INSURANCE_ENTRY = 'Insurance Entry'
MEDICLAIM_ENTRY = 'Mediclaim Entry'
RUNSHEET_ENTRY = 'Runsheet Entry'
PHONE_LOG_BOOK = 'Phone Log Book'
POST_OFFICE = 'Post Office'
EXECUTIVE_MASTER = 'Executive Master'
NOTIFICATION_MANAGEMENT = 'Notification Management'

NAVIGATION = [
    {'name': DASHBOARD, 'href': '/', 'roles': BOTH_ROLES},
    {'name': CLIENT_MANAGEMENT, 'href': '/clientManagement', 'roles': BOTH_ROLES},
    {'name': FAMILY_MANAGEMENT, 'href': '/familyManagement', 'roles': BOTH_ROLES},
    {'name': EMPLOYEE, 'href': '/employee', 'roles': ADMIN_ONLY},
    {
        'name': MASTERS,
        'roles': ADMIN_ONLY,
        'children': [
            {'name': PRODUCT_MASTER, 'href': '/productMaster', 'roles': ADMIN_ONLY},
            {'name': LOCATION_AREA_MASTER, 'href': '/locationAndAreaMaster', 'roles': ADMIN_ONLY},
        ],
    },
    {
        'name': TRANSACTIONS,
        'roles': BOTH_ROLES,
        'children': [
            {'name': POSTAL_ENTRY, 'href': '/postalEntry', 'roles': BOTH_ROLES},
            {'name': FD_ENTRY, 'href': '/fdEntry', 'roles': ADMIN_ONLY},
            {'name': INSURANCE_ENTRY, 'href': '/insurance', 'roles': BOTH_ROLES},
            {'name': MEDICLAIM_ENTRY, 'href': '/mediclaim', 'roles': BOTH_ROLES},
            {'name': RUNSHEET_ENTRY, 'href': '/runsheetEntry', 'roles': ADMIN_ONLY},
            {'name': PHONE_LOG_BOOK, 'href': '/phoneLogBook', 'roles': BOTH_ROLES},
        ],
    },
    {'name': POST_OFFICE, 'href': '/postOffice', 'roles': BOTH_ROLES},
    {'name': EXECUTIVE_MASTER, 'href': '/executiveMaster', 'roles': ADMIN_ONLY},
    {'name': NOTIFICATION_MANAGEMENT, 'href': '/notificationManagement', 'roles': ADMIN_ONLY},
]


def _find_item(name, items=NAVIGATION, parent=None):
    for item in items:
        if item['name'] == name:
            return item, parent
        found = _find_item(name, item.get('children', ()), item)
        if found[0] is not None:
            return found
    return None, None


def resolve_role(identity, admin_email):
    """Return 'Admin', 'myEmployee' or None for an unauthenticated caller"""
    if identity is None or not getattr(identity, 'is_authenticated', False):
        return None
    email = (identity.email or '').strip().lower()
    if admin_email and email == admin_email.strip().lower():
        return ROLE_ADMIN
    return ROLE_EMPLOYEE


def can_view(nav_item, role):
    """Whether `role` may open the navigation entry (and every parent dropdown of it)"""
    item, parent = _find_item(nav_item)
    if item is None or role is None:
        return False
    if parent is not None and role not in parent['roles']:
        return False
    return role in item['roles']


def can_mutate(permission):
    """Only write/all permission levels may create, update or delete"""
    return permission in MUTATING_PERMISSIONS


def effective_permission(role, permission):
    if role == ROLE_ADMIN:
        return PERMISSION_ALL
    return permission or PERMISSION_READ


def compose_navigation(role):
    """Navigation tree visible to `role`; dropdowns left without children are dropped"""
    navigation = []
    for item in NAVIGATION:
        if role not in item['roles']:
            continue
        item = copy.deepcopy(item)
        if 'children' in item:
            item['children'] = [child for child in item['children'] if role in child['roles']]
            if not item['children']:
                continue
        item.pop('roles')
        for child in item.get('children', ()):
            child.pop('roles')
        navigation.append(item)
    return navigation


def compose_view(role, permission):
    """Navigation plus the action flags bound to every screen"""
    mutate = can_mutate(effective_permission(role, permission))
    return {
        'role': role,
        'permission': effective_permission(role, permission) if role else None,
        'navigation': compose_navigation(role),
        'actions': {
            'create': mutate,
            'update': mutate,
            'delete': mutate,
            'export': True,
        },
    }
