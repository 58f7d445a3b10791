# app/routers/departments.py
"""Department / office codes used in ticket numbers."""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from app.database import get_db
from app.schemas.department import DepartmentIn, DepartmentOut
from app.services import department_service

router = APIRouter()


@router.get("/departments", response_model=list[DepartmentOut])
def list_departments(db: Session = Depends(get_db)):
    return department_service.list_departments(db)


@router.post("/departments", status_code=201)
def create_department(body: DepartmentIn, db: Session = Depends(get_db)):
    department = department_service.create_department(db, body)
    return {
        "status": "created",
        "message": "Department code created successfully.",
        "department": DepartmentOut.model_validate(department).model_dump(mode="json"),
    }


@router.patch("/departments/{department_id}")
def update_department(department_id: int, body: DepartmentIn, db: Session = Depends(get_db)):
    department = department_service.update_department(db, department_id, body)
    return {
        "status": "updated",
        "message": "Department code updated successfully.",
        "department": DepartmentOut.model_validate(department).model_dump(mode="json"),
    }


@router.delete("/departments/{department_id}")
def delete_department(department_id: int, db: Session = Depends(get_db)):
    code = department_service.delete_department(db, department_id)
    return {"status": "deleted", "message": f"Department code {code} deleted successfully.", "code": code}
