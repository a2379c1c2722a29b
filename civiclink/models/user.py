"""
Caller role profiles.

Stored role strings vary ("ward_admin", "city_admin", "official", ...).
They are normalized once by `role_profile_from_document` into a closed
set: `CitizenProfile` or `AdminProfile` with an `AdminLevel`.
"""

from enum import Enum
from typing import Any, Dict, Literal, Optional, Union

from pydantic import BaseModel


class AdminLevel(str, Enum):
    WARD = "ward"
    CITY = "city"
    DEPARTMENT = "department"
    SUPER = "super"


# Raw role string -> fixed admin level (None: take level from `adminLevel`)
ADMIN_ROLE_LEVELS: Dict[str, Optional[AdminLevel]] = {
    "ward_admin": AdminLevel.WARD,
    "city_admin": AdminLevel.CITY,
    "dept_admin": AdminLevel.DEPARTMENT,
    "superadmin": AdminLevel.SUPER,
    "official": None,
    "admin": None,
}


class CitizenProfile(BaseModel):
    kind: Literal["citizen"] = "citizen"
    uid: str
    phone_number: Optional[str] = None
    locale: Optional[str] = None

    class Config:
        frozen = True

    @property
    def is_admin(self) -> bool:
        return False

    @property
    def role_name(self) -> str:
        return "citizen"


class AdminProfile(BaseModel):
    kind: Literal["admin"] = "admin"
    uid: str
    level: AdminLevel = AdminLevel.DEPARTMENT
    assigned_ward: Optional[str] = None
    assigned_city: Optional[str] = None
    phone_number: Optional[str] = None
    locale: Optional[str] = None

    class Config:
        frozen = True

    @property
    def is_admin(self) -> bool:
        return True

    @property
    def role_name(self) -> str:
        return "admin"


RoleProfile = Union[CitizenProfile, AdminProfile]


def role_profile_from_document(uid: str, data: Optional[Dict[str, Any]]) -> RoleProfile:
    """
    Build a RoleProfile from a `users/{uid}` document.

    A missing document (fresh auth user) is a citizen.
    A generic admin/official takes its level from `adminLevel`
    ("ward" or "city"); without one it is an unscoped department admin.
    """
    if not data:
        return CitizenProfile(uid=uid)

    raw_role = (data.get("role") or "citizen").strip().lower()
    phone_number = data.get("phoneNumber")
    locale = data.get("preferredLanguage") or data.get("locale")

    if raw_role not in ADMIN_ROLE_LEVELS:
        return CitizenProfile(uid=uid, phone_number=phone_number, locale=locale)

    level = ADMIN_ROLE_LEVELS[raw_role]
    if level is None:
        stored_level = (data.get("adminLevel") or "").strip().lower()
        if stored_level == AdminLevel.WARD.value:
            level = AdminLevel.WARD
        elif stored_level == AdminLevel.CITY.value:
            level = AdminLevel.CITY
        else:
            level = AdminLevel.DEPARTMENT

    return AdminProfile(
        uid=uid,
        level=level,
        assigned_ward=data.get("assignedWard"),
        assigned_city=data.get("assignedCity"),
        phone_number=phone_number,
        locale=locale,
    )
