"""
Role to permission mapping.
"""
from __future__ import annotations

from typing import Dict, List, Union

from edumanage.models import Permission, Role

ROLE_PERMISSIONS: Dict[Role, List[Permission]] = {
    Role.SUPER_ADMIN: [Permission.ACCESS_ALL],
    Role.ADMIN: [
        Permission.MANAGE_USERS,
        Permission.MANAGE_COURSES,
        Permission.MANAGE_CONTENT,
        Permission.MANAGE_LEADS,
        Permission.MANAGE_STUDENTS,
        Permission.MANAGE_PAYMENTS,
        Permission.MANAGE_ATTENDANCE,
        Permission.VIEW_ANALYTICS,
        Permission.VIEW_LEADS,
        Permission.VIEW_STUDENTS,
        Permission.VIEW_COURSES,
        Permission.VIEW_CONTENT,
    ],
    Role.INSTRUCTOR: [
        Permission.MANAGE_COURSES,
        Permission.MANAGE_CONTENT,
        Permission.MANAGE_ATTENDANCE,
        Permission.VIEW_LEADS,
        Permission.VIEW_STUDENTS,
        Permission.VIEW_COURSES,
        Permission.VIEW_CONTENT,
    ],
    Role.STUDENT: [
        Permission.VIEW_COURSES,
        Permission.VIEW_CONTENT,
        Permission.ENROLL_COURSES,
    ],
    Role.GUEST: [Permission.VIEW_COURSES],
}

# A manage permission implies the matching view permission
IMPLIED_BY: Dict[Permission, Permission] = {
    Permission.VIEW_LEADS: Permission.MANAGE_LEADS,
    Permission.VIEW_STUDENTS: Permission.MANAGE_STUDENTS,
    Permission.VIEW_COURSES: Permission.MANAGE_COURSES,
    Permission.VIEW_CONTENT: Permission.MANAGE_CONTENT,
}


def permissions_for(role: Union[Role, str]) -> List[Permission]:
    return list(ROLE_PERMISSIONS.get(Role(role), []))


def has_permission(role: Union[Role, str], permission: Permission) -> bool:
    granted = permissions_for(role)
    if Permission.ACCESS_ALL in granted or permission in granted:
        return True
    implied = IMPLIED_BY.get(permission)
    return implied is not None and implied in granted
