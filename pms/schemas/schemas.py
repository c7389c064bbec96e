"""
Pydantic Schemas - Request/Response Validation

All API request and response schemas in one file for simplicity.
Field names follow the JSON the admin UI sends (camelCase).
"""

import re
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

from pms.core.roles import Role

TEN_DIGITS = re.compile(r"^[0-9]{10}$")
SIX_DIGITS = re.compile(r"^[0-9]{6}$")


def _blank_or_matching(value: Optional[str], pattern: re.Pattern, message: str) -> Optional[str]:
    if value is None:
        return value
    cleaned = re.sub(r"\s", "", value)
    if cleaned and not pattern.match(cleaned):
        raise ValueError(message)
    return cleaned


# ============================================================
# ENUMS
# ============================================================

class Gender(str, Enum):
    male = "Male"
    female = "Female"
    other = "Other"


class AdministratorRole(str, Enum):
    admin = "admin"
    director = "director"
    staff = "staff"
    hod = "hod"
    other = "other"
    student = "student"
    alumni = "alumni"
    company = "company"


class AdministratorStatus(str, Enum):
    active = "active"
    inactive = "inactive"
    deleted = "deleted"


class AccessLevel(str, Enum):
    super_admin = "superAdmin"
    admin = "admin"
    limited = "limited"


class AuthProvider(str, Enum):
    local = "local"
    google = "google"
    microsoft = "microsoft"
    other = "other"


class CommunicationChannel(str, Enum):
    email = "email"
    sms = "SMS"
    portal = "portal"


class RosterKind(str, Enum):
    staff = "staff"
    student = "student"


# ============================================================
# AUTH SCHEMAS
# ============================================================

class RegisterRequest(BaseModel):
    firstName: str = Field(..., min_length=2, max_length=50)
    lastName: str = Field(..., min_length=2, max_length=50)
    email: EmailStr
    password: str = Field(..., min_length=6)
    role: Role
    phone: Optional[str] = None
    department: Optional[str] = None
    employeeId: Optional[str] = Field(None, min_length=3, max_length=20)
    designation: Optional[str] = Field(None, max_length=100)

    @field_validator("password")
    @classmethod
    def password_strength(cls, value: str) -> str:
        if not (re.search(r"[a-z]", value) and re.search(r"[A-Z]", value) and re.search(r"\d", value)):
            raise ValueError(
                "Password must contain at least one uppercase letter, one lowercase letter, and one number"
            )
        return value

    @field_validator("phone")
    @classmethod
    def phone_digits(cls, value: Optional[str]) -> Optional[str]:
        return _blank_or_matching(value, TEN_DIGITS, "Phone number must be exactly 10 digits")


class LoginRequest(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=1)


class ChangePasswordRequest(BaseModel):
    currentPassword: str = Field(..., min_length=1)
    newPassword: str = Field(..., min_length=6)


# ============================================================
# COURSE CATEGORY SCHEMAS
# ============================================================

class CourseCategoryCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    description: str = Field("", max_length=500)
    isActive: bool = True

    @field_validator("name")
    @classmethod
    def strip_name(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("Course category name is required")
        return value


class CourseCategoryUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = Field(None, max_length=500)
    isActive: Optional[bool] = None

    @field_validator("name")
    @classmethod
    def strip_name(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return value
        value = value.strip()
        if not value:
            raise ValueError("Course category name cannot be empty")
        return value


# ============================================================
# DEPARTMENT SCHEMAS
# ============================================================

class DepartmentCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    code: str = Field(..., min_length=1, max_length=10)
    description: str = Field("", max_length=500)
    courseCategory: str = Field(..., min_length=1)
    placementStaff: Optional[str] = None
    isActive: bool = True

    @field_validator("name", "code")
    @classmethod
    def not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("must not be blank")
        return value


class DepartmentUpdate(BaseModel):
    """Partial update. `placementStaff` sent as null or "" clears the assignment."""

    name: Optional[str] = Field(None, min_length=1, max_length=100)
    code: Optional[str] = Field(None, min_length=1, max_length=10)
    description: Optional[str] = Field(None, max_length=500)
    courseCategory: Optional[str] = None
    placementStaff: Optional[str] = None
    isActive: Optional[bool] = None

    @field_validator("name", "code")
    @classmethod
    def not_blank(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return value
        value = value.strip()
        if not value:
            raise ValueError("must not be blank")
        return value


# ============================================================
# ADMINISTRATOR SCHEMAS
# ============================================================

class PersonName(BaseModel):
    firstName: Optional[str] = Field(None, min_length=2, max_length=50)
    lastName: Optional[str] = Field(None, min_length=2, max_length=50)


class Address(BaseModel):
    street: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    pincode: Optional[str] = None
    country: Optional[str] = None

    @field_validator("pincode")
    @classmethod
    def pincode_digits(cls, value: Optional[str]) -> Optional[str]:
        if value is not None and value.strip() and not SIX_DIGITS.match(value.strip()):
            raise ValueError("Pincode must be exactly 6 digits")
        return value


class Contact(BaseModel):
    alternatePhone: Optional[str] = None
    emergencyContact: Optional[str] = None
    address: Optional[Address] = None


class ProfilePatchBase(BaseModel):
    """Identity and employment fields shared by administrator and staff profiles."""

    model_config = ConfigDict(extra="ignore", use_enum_values=True)

    employeeId: Optional[str] = None
    name: Optional[PersonName] = None
    email: Optional[EmailStr] = None
    mobileNumber: Optional[str] = None
    gender: Optional[Gender] = None
    profilePhotoUrl: Optional[str] = None
    department: Optional[str] = None
    designation: Optional[str] = Field(None, max_length=100)
    dateOfJoining: Optional[datetime] = None
    contact: Optional[Contact] = None
    adminNotes: Optional[str] = Field(None, max_length=1000)

    @field_validator("employeeId")
    @classmethod
    def employee_id_format(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return value
        value = value.strip()
        if not value:
            raise ValueError("Employee ID cannot be empty")
        if not value.isalnum():
            raise ValueError("Employee ID must contain only letters and numbers")
        return value.upper()

    @field_validator("mobileNumber")
    @classmethod
    def mobile_digits(cls, value: Optional[str]) -> Optional[str]:
        return _blank_or_matching(value, TEN_DIGITS, "Mobile number must be exactly 10 digits")


class AdministratorPatch(ProfilePatchBase):
    """Create-or-patch body for PUT /administrators/profile."""

    role: Optional[AdministratorRole] = None
    status: Optional[AdministratorStatus] = None
    accessLevel: Optional[AccessLevel] = None
    authProvider: Optional[AuthProvider] = None
    officeLocation: Optional[str] = None


class AdministratorStatusUpdate(BaseModel):
    status: AdministratorStatus


# ============================================================
# STAFF PROFILE SCHEMAS
# ============================================================

class HODProfilePatch(ProfilePatchBase):
    departmentHeadOf: Optional[str] = None
    officeRoomNo: Optional[str] = None
    yearsAsHOD: Optional[int] = Field(None, ge=0, le=50)
    academicBackground: Optional[str] = None
    numberOfFacultyManaged: Optional[int] = Field(None, ge=0)
    subjectsTaught: Optional[List[str]] = None
    responsibilities: Optional[str] = None
    meetingSlots: Optional[List[str]] = None
    calendarLink: Optional[str] = None


class PlacementStaffProfilePatch(ProfilePatchBase):
    officeLocation: Optional[str] = None
    officialEmail: Optional[EmailStr] = None
    experienceYears: Optional[int] = Field(None, ge=0, le=60)
    qualifications: Optional[List[str]] = None
    responsibilitiesText: Optional[str] = None
    trainingProgramsHandled: Optional[List[str]] = None
    languagesSpoken: Optional[List[str]] = None
    availabilityTimeSlots: Optional[List[str]] = None


class PlacementDirectorProfilePatch(ProfilePatchBase):
    officeRoomNo: Optional[str] = Field(None, max_length=20)
    officialEmail: Optional[EmailStr] = None
    alternateMobile: Optional[str] = None
    yearsOfExperience: Optional[int] = Field(None, ge=0, le=50)
    responsibilitiesText: Optional[str] = Field(None, max_length=2000)
    communicationPreferences: Optional[List[CommunicationChannel]] = None

    @field_validator("alternateMobile")
    @classmethod
    def alternate_digits(cls, value: Optional[str]) -> Optional[str]:
        return _blank_or_matching(value, TEN_DIGITS, "Alternate mobile number must be exactly 10 digits")


# ============================================================
# ROSTER IMPORT SCHEMAS
# ============================================================

class StaffBulkRequest(BaseModel):
    staffData: List[Dict[str, Any]] = Field(..., min_length=1)
    importId: Optional[str] = Field(None, max_length=128)


class StudentBulkRequest(BaseModel):
    studentData: List[Dict[str, Any]] = Field(..., min_length=1)
    importId: Optional[str] = Field(None, max_length=128)


class RowResult(BaseModel):
    rowNumber: int
    data: Dict[str, Any]
    errors: List[str] = []
    warnings: List[str] = []
    isValid: bool


class ImportFailure(BaseModel):
    index: int
    error: str
    email: Optional[str] = None
    rowNumber: Optional[int] = None
    errors: Optional[List[str]] = None


class ImportReport(BaseModel):
    totalProcessed: int = 0
    totalSuccessful: int = 0
    totalFailed: int = 0
    totalReplayed: int = 0
    successful: List[Dict[str, Any]] = []
    failed: List[ImportFailure] = []
    replayed: List[Dict[str, Any]] = []


# ============================================================
# GENERIC SCHEMAS
# ============================================================

class MessageResponse(BaseModel):
    message: str
    success: bool = True
