"""
Roster Import Service - bulk staff/student creation from spreadsheet rows.

Pipeline:
1. normalize_row   - header-keyed row -> canonical record (never raises)
2. validate_row    - canonical record -> RowResult (errors block, warnings don't)
3. BatchImporter   - one creator call per valid record, report-and-continue
4. ImportReport    - the only thing handed back to the caller

Every record carries an import key so that re-submitting the same upload
(for example after a client timeout) never creates a second user.
"""

import hashlib
import logging
import re
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Sequence

from pymongo.errors import DuplicateKeyError

from pms.core.exceptions import PMSError
from pms.core.roles import IMPORTABLE_STAFF_ROLES, Role
from pms.schemas.schemas import ImportFailure, ImportReport, RowResult
from pms.services.mongo_service import duplicate_field

logger = logging.getLogger(__name__)

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
PHONE_PATTERN = re.compile(r"^[0-9]{10}$")

# Spreadsheet header (lower-cased, non-alphanumerics dropped) -> record field
HEADER_ALIASES = {
    "firstname": "firstName",
    "lastname": "lastName",
    "email": "email",
    "emailaddress": "email",
    "role": "role",
    "department": "department",
    "dept": "department",
    "designation": "designation",
    "employeeid": "employeeId",
    "empid": "employeeId",
    "phone": "phone",
    "phonenumber": "phone",
    "mobile": "phone",
    "mobilenumber": "phone",
    "adminnotes": "adminNotes",
    "notes": "adminNotes",
    "importkey": "importKey",
}

TEXT_FIELDS = (
    "firstName",
    "lastName",
    "department",
    "email",
    "role",
    "designation",
    "employeeId",
    "phone",
    "adminNotes",
)

ROLE_LABELS = {
    "department hod": Role.department_hod.value,
    "hod": Role.department_hod.value,
    "placement staff": Role.placement_staff.value,
    "other staff": Role.other_staff.value,
}

ROLE_ERROR = "Invalid role. Must be: Department HOD, Placement Staff, or Other Staff"


def _header_key(header: Any) -> str:
    return re.sub(r"[^a-z0-9]", "", str(header).lower())


def _text(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip()


def map_role(label: str) -> str:
    """Free-text role label -> role value. Blank means other_staff."""
    label = label.strip()
    if not label:
        return Role.other_staff.value
    known = ROLE_LABELS.get(label.lower())
    if known:
        return known
    return re.sub(r"[^a-z0-9]+", "_", label.lower()).strip("_")


def normalize_row(raw: Mapping[str, Any], department_aliases: Optional[Mapping[str, str]] = None) -> Dict[str, Any]:
    """
    Map a header-keyed spreadsheet row onto the canonical record shape.

    Missing fields become "", department full names are mapped through
    `department_aliases` (lower-cased name -> code) and upper-cased.
    """
    record: Dict[str, Any] = {field: "" for field in TEXT_FIELDS}
    for header, value in raw.items():
        field = HEADER_ALIASES.get(_header_key(header))
        if field is None:
            continue
        text = _text(value)
        # first non-empty column wins when two headers alias the same field
        if field in record and record[field]:
            continue
        record[field] = text

    department = record["department"]
    if department and department_aliases:
        department = department_aliases.get(department.lower(), department)
    record["department"] = department.upper()
    record["email"] = record["email"].lower()
    record["role"] = map_role(record["role"])
    if not record.get("importKey"):
        record.pop("importKey", None)
    record["isActive"] = True
    record["isVerified"] = False
    return record


def validate_row(record: Mapping[str, Any], row_number: int, known_codes: Iterable[str]) -> RowResult:
    """Check a normalized staff record. Errors accumulate; phone/employeeId issues are warnings."""
    errors: List[str] = []
    warnings: List[str] = []

    for field, label in (
        ("firstName", "First Name"),
        ("lastName", "Last Name"),
        ("department", "Department"),
        ("email", "Email"),
    ):
        if not record.get(field):
            errors.append(f"{label} is required")

    email = record.get("email")
    if email and not EMAIL_PATTERN.match(email):
        errors.append("Invalid email format")

    codes = sorted({code.upper() for code in known_codes})
    department = record.get("department")
    if department and department.upper() not in codes:
        errors.append(f"Invalid department code. Valid codes: {', '.join(codes)}")

    phone = record.get("phone")
    if phone and not PHONE_PATTERN.match(phone):
        warnings.append("Phone number should be 10 digits")

    employee_id = record.get("employeeId")
    if employee_id and len(employee_id) < 3:
        warnings.append("Employee ID should be at least 3 characters")

    if record.get("role") not in {role.value for role in IMPORTABLE_STAFF_ROLES}:
        errors.append(ROLE_ERROR)

    return RowResult(
        rowNumber=row_number,
        data=dict(record),
        errors=errors,
        warnings=warnings,
        isValid=not errors,
    )


def validate_student_row(record: Mapping[str, Any], row_number: int) -> RowResult:
    """Students only need a name and a well-formed email; department comes from the importer."""
    errors: List[str] = []
    for field, label in (("firstName", "First Name"), ("lastName", "Last Name"), ("email", "Email")):
        if not record.get(field):
            errors.append(f"{label} is required")
    email = record.get("email")
    if email and not EMAIL_PATTERN.match(email):
        errors.append("Invalid email format")
    data = {key: record.get(key, "") for key in ("firstName", "lastName", "email")}
    if record.get("importKey"):
        data["importKey"] = record["importKey"]
    return RowResult(rowNumber=row_number, data=data, errors=errors, warnings=[], isValid=not errors)


def row_number_for(index: int) -> int:
    """Spreadsheet row of the index-th data row (row 1 is the header)."""
    return index + 2


def validate_rows(
    raw_rows: Sequence[Mapping[str, Any]],
    known_codes: Iterable[str],
    department_aliases: Optional[Mapping[str, str]] = None,
) -> List[RowResult]:
    codes = list(known_codes)
    return [
        validate_row(normalize_row(raw, department_aliases), row_number_for(index), codes)
        for index, raw in enumerate(raw_rows)
    ]


def validate_student_rows(raw_rows: Sequence[Mapping[str, Any]]) -> List[RowResult]:
    return [
        validate_student_row(normalize_row(raw), row_number_for(index))
        for index, raw in enumerate(raw_rows)
    ]


def summarize(results: Sequence[RowResult]) -> Dict[str, Any]:
    """Preview payload for a validated sheet."""
    return {
        "results": [result.model_dump() for result in results],
        "validCount": sum(1 for r in results if r.isValid),
        "errorCount": sum(1 for r in results if not r.isValid),
        "warningCount": sum(1 for r in results if r.warnings and r.isValid),
        "validRows": [r.data for r in results if r.isValid],
    }


def import_key(import_id: Optional[str], kind: str, email: str, client_key: Optional[str] = None) -> Optional[str]:
    """
    Stable idempotency key for one roster record.

    None when the client named neither an upload id nor a row key; such rows
    are plain creates and an existing email fails them as a duplicate.
    """
    if client_key:
        return client_key
    if not import_id:
        return None
    material = f"{import_id}|{kind}|{email.strip().lower()}"
    return hashlib.sha256(material.encode("utf-8")).hexdigest()


# ============================================================
# BATCH IMPORTER
# ============================================================

CreateRecord = Callable[[int, Dict[str, Any]], Dict[str, Any]]
FindImported = Callable[[str], Optional[Dict[str, Any]]]


def describe_duplicate(field: str) -> str:
    if field == "email":
        return "User with this email already exists"
    if field == "employeeId":
        return "Employee ID already exists"
    if field == "studentId":
        return "Student ID already exists. This might be due to concurrent requests."
    return f"Duplicate {field} detected"


class BatchImporter:
    """
    Create one entity per record, sequentially and independently.

    `create_record(index, record)` persists one record and returns its success
    entry; it raises to fail that record only. `find_imported(key)` returns
    the entity already created under an import key, if any.
    """

    def __init__(self, create_record: CreateRecord, find_imported: Optional[FindImported] = None) -> None:
        self.create_record = create_record
        self.find_imported = find_imported

    def run(
        self,
        records: Sequence[Dict[str, Any]],
        rejected: Optional[Mapping[int, RowResult]] = None,
    ) -> ImportReport:
        rejected = rejected or {}
        report = ImportReport(totalProcessed=len(records))

        for index, record in enumerate(records):
            email = record.get("email") or None

            invalid = rejected.get(index)
            if invalid is not None:
                report.failed.append(ImportFailure(
                    index=index,
                    email=email,
                    rowNumber=invalid.rowNumber,
                    errors=invalid.errors,
                    error="; ".join(invalid.errors),
                ))
                continue

            key = record.get("importKey")
            existing = self.find_imported(key) if key and self.find_imported else None
            if existing is not None:
                report.replayed.append({"index": index, **existing})
                continue

            try:
                created = self.create_record(index, record)
            except DuplicateKeyError as e:
                field = duplicate_field(e)
                if field == "importKey" and self.find_imported:
                    existing = self.find_imported(key)
                    if existing is not None:
                        report.replayed.append({"index": index, **existing})
                        continue
                report.failed.append(ImportFailure(index=index, email=email, error=describe_duplicate(field)))
            except PMSError as e:
                report.failed.append(ImportFailure(index=index, email=email, error=e.message))
            except Exception as e:
                logger.exception("Error importing record at index %s", index)
                report.failed.append(ImportFailure(index=index, email=email, error=str(e) or "Unknown error occurred"))
            else:
                report.successful.append({"index": index, **created})

        report.totalSuccessful = len(report.successful)
        report.totalFailed = len(report.failed)
        report.totalReplayed = len(report.replayed)
        logger.info(
            "Bulk import finished: %s created, %s replayed, %s failed",
            report.totalSuccessful, report.totalReplayed, report.totalFailed,
        )
        return report
