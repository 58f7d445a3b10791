# app/services/department_service.py
"""Department / office code registry. Codes feed dispatch ticket numbers."""

from typing import Optional

from sqlalchemy.orm import Session

from app.models.department import Department
from app.schemas.department import DepartmentIn
from app.services.exceptions import NotFound, ValidationFailed
from app.services.transaction import atomic
from app.utils.logger import get_logger

logger = get_logger(__name__)


def list_departments(db: Session) -> list[Department]:
    return db.query(Department).order_by(Department.code).all()


def get_department(db: Session, department_id: int) -> Department:
    department = db.get(Department, department_id)
    if not department:
        raise NotFound("Department", department_id)
    return department


def _check_unique_code(db: Session, code: str, department_id: Optional[int] = None):
    q = db.query(Department.id).filter(Department.code == code)
    if department_id is not None:
        q = q.filter(Department.id != department_id)
    if q.first():
        raise ValidationFailed({"code": "This department code already exists."})


def create_department(db: Session, data: DepartmentIn) -> Department:
    _check_unique_code(db, data.code)
    department = Department(code=data.code, name=data.name)
    with atomic(db, "An error occurred while creating the department code. Please try again."):
        db.add(department)
    db.refresh(department)
    logger.info(f"[Dept] Created {department.code} {department.name}")
    return department


def update_department(db: Session, department_id: int, data: DepartmentIn) -> Department:
    department = get_department(db, department_id)
    _check_unique_code(db, data.code, department.id)
    with atomic(db, "An error occurred while updating the department code. Please try again."):
        department.code = data.code
        department.name = data.name
    db.refresh(department)
    return department


def delete_department(db: Session, department_id: int) -> str:
    # No in-use check: trips reference departments only through ticket text
    department = get_department(db, department_id)
    code = department.code
    with atomic(db, "An error occurred while deleting the department code. Please try again."):
        db.delete(department)
    logger.info(f"[Dept] Deleted {code}")
    return code
