"""
Roles and capabilities.

Users carry exactly one Role. What a role may do is looked up in
ROLE_CAPABILITIES; routes ask for a Capability, never for role names.
"""

from enum import Enum
from typing import FrozenSet


class Role(str, Enum):
    admin = "admin"
    placement_director = "placement_director"
    placement_staff = "placement_staff"
    department_hod = "department_hod"
    other_staff = "other_staff"
    student = "student"
    alumni = "alumni"


class Capability(str, Enum):
    manage_course_categories = "manage_course_categories"
    manage_departments = "manage_departments"
    delete_departments = "delete_departments"
    manage_own_admin_profile = "manage_own_admin_profile"
    manage_own_director_profile = "manage_own_director_profile"
    manage_administrators = "manage_administrators"
    manage_staff_profiles = "manage_staff_profiles"
    import_staff = "import_staff"
    import_students = "import_students"
    preview_rosters = "preview_rosters"
    view_department_users = "view_department_users"
    access_all_departments = "access_all_departments"


# Roles allowed as the placementStaff of a department
PLACEMENT_ROLES: FrozenSet[Role] = frozenset({Role.placement_staff, Role.placement_director})

# Roles a roster row may import staff as
IMPORTABLE_STAFF_ROLES: FrozenSet[Role] = frozenset({
    Role.department_hod,
    Role.placement_staff,
    Role.other_staff,
})


ROLE_CAPABILITIES = {
    Role.admin: frozenset({
        Capability.manage_course_categories,
        Capability.manage_departments,
        Capability.delete_departments,
        Capability.manage_own_admin_profile,
        Capability.manage_administrators,
        Capability.manage_staff_profiles,
        Capability.import_staff,
        Capability.preview_rosters,
        Capability.view_department_users,
        Capability.access_all_departments,
    }),
    Role.placement_director: frozenset({
        Capability.manage_course_categories,
        Capability.manage_departments,
        Capability.manage_own_admin_profile,
        Capability.manage_own_director_profile,
        Capability.import_staff,
        Capability.preview_rosters,
        Capability.view_department_users,
        Capability.access_all_departments,
    }),
    Role.placement_staff: frozenset({
        Capability.manage_own_admin_profile,
        Capability.import_students,
        Capability.preview_rosters,
        Capability.view_department_users,
    }),
    Role.department_hod: frozenset({
        Capability.manage_own_admin_profile,
        Capability.view_department_users,
    }),
    Role.other_staff: frozenset(),
    Role.student: frozenset(),
    Role.alumni: frozenset(),
}


def capabilities_for(role: Role) -> FrozenSet[Capability]:
    return ROLE_CAPABILITIES[role]


def has_capability(role: Role, capability: Capability) -> bool:
    return capability in ROLE_CAPABILITIES[role]
