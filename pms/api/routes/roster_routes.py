"""
Roster Routes - bulk staff and student creation from spreadsheets.

POST /roster/preview?kind=staff|student    - Parse and validate an uploaded sheet (no writes)
POST /users/staff/bulk                     - Create staff accounts (admin, placement director)
POST /student-management/students/bulk     - Create students in the caller's department (placement staff)

Bulk bodies carry the rows exactly as previewed plus an optional importId.
When the client sends an importId (or per-row importKey) every row gets an
import key, so re-posting the same batch reports the rows as replayed instead
of creating them again. Without one, an existing email fails its row.
"""

import logging
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, BackgroundTasks, Depends, File, Query, UploadFile
from fastapi.responses import JSONResponse

from pms.core.auth import require_capability
from pms.core.exceptions import ValidationFailed
from pms.core.roles import Capability
from pms.schemas.schemas import ImportReport, RosterKind, RowResult, StaffBulkRequest, StudentBulkRequest
from pms.services.department_service import DepartmentService
from pms.services.notification_service import NotificationService, get_notification_service
from pms.services.roster_import import (
    BatchImporter,
    import_key,
    summarize,
    validate_rows,
    validate_student_rows,
)
from pms.services.user_service import StaffCreator, StudentCreator, UserService
from pms.utils.file_upload import read_roster

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Roster Import"])


def _keyed_records(results: List[RowResult], import_id: Optional[str], kind: str) -> List[Dict[str, Any]]:
    records = []
    seen = set()
    for result in results:
        record = dict(result.data)
        # a repeated email in one batch must fail as a duplicate, not replay the first row
        if record.get("email") and record["email"] not in seen:
            seen.add(record["email"])
            key = import_key(import_id, kind, record["email"], record.get("importKey"))
            if key:
                record["importKey"] = key
        records.append(record)
    return records


def _report_response(report: ImportReport, noun: str) -> JSONResponse:
    ok = report.totalSuccessful > 0 or report.totalReplayed > 0
    message = (
        f"Bulk {noun} import completed. {report.totalSuccessful} created, "
        f"{report.totalReplayed} already imported, {report.totalFailed} failed."
    )
    return JSONResponse(
        status_code=201 if ok else 400,
        content={"success": ok, "message": message, "results": report.model_dump()},
    )


@router.post("/roster/preview")
async def preview_roster(
    kind: RosterKind = Query(RosterKind.staff),
    file: UploadFile = File(...),
    user: dict = Depends(require_capability(Capability.preview_rosters)),
):
    """
    Parse an uploaded roster and validate every row.

    Nothing is written; the client reviews the result and posts validRows
    to the matching bulk endpoint.
    """
    rows = await read_roster(file)
    if kind == RosterKind.staff:
        departments = DepartmentService()
        results = validate_rows(rows, departments.known_codes(), departments.name_aliases())
    else:
        results = validate_student_rows(rows)
    logger.info("Previewed %s roster %s with %s rows", kind.value, file.filename, len(results))
    return {"success": True, "data": summarize(results)}


@router.post("/users/staff/bulk")
def bulk_create_staff(
    body: StaffBulkRequest,
    user: dict = Depends(require_capability(Capability.import_staff)),
):
    departments = DepartmentService()
    results = validate_rows(body.staffData, departments.known_codes(), departments.name_aliases())
    rejected = {index: result for index, result in enumerate(results) if not result.isValid}
    records = _keyed_records(results, body.importId, RosterKind.staff.value)

    users = UserService()
    importer = BatchImporter(StaffCreator(user["_id"], users), users.find_imported)
    report = importer.run(records, rejected)
    return _report_response(report, "staff")


@router.post("/student-management/students/bulk")
def bulk_create_students(
    body: StudentBulkRequest,
    background_tasks: BackgroundTasks,
    user: dict = Depends(require_capability(Capability.import_students)),
    notifications: NotificationService = Depends(get_notification_service),
):
    department = (user.get("department") or "").upper()
    if not department:
        raise ValidationFailed("Your account has no department assigned. Contact an administrator.")

    results = validate_student_rows(body.studentData)
    rejected = {index: result for index, result in enumerate(results) if not result.isValid}
    records = _keyed_records(results, body.importId, RosterKind.student.value)

    users = UserService()
    importer = BatchImporter(StudentCreator(user["_id"], department, users), users.find_imported)
    report = importer.run(records, rejected)

    if report.successful:
        background_tasks.add_task(notifications.send_bulk_student_welcome_emails, list(report.successful))
    return _report_response(report, "student")
