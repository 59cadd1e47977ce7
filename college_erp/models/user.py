# college_erp/models/user.py

from sqlmodel import SQLModel, Field, Column
from sqlalchemy import DateTime, String
from sqlalchemy import Enum as SAEnum
from datetime import datetime
import uuid
from enum import Enum
from typing import Optional


class UserRole(str, Enum):
    # Platform administration (user management, audit visibility)
    Admin = "admin"

    # Academic hierarchy
    Student = "student"
    Teacher = "teacher"
    HOD = "hod"
    Principal = "principal"

    # Non-teaching staff
    Registrar = "registrar"
    WorkshopInstructor = "workshop_instructor"
    Electrician = "electrician"
    ComputerTechnician = "computer_technician"
    AsstLibrarian = "asst_librarian"
    AsstStore = "asst_store"
    TechLabAsst = "tech_lab_asst"
    LabAsstCivil = "lab_asst_civil"
    Clerk = "clerk"
    SecurityGuard = "security_guard"
    FireOperator = "fire_operator"
    AccountsAsst = "accounts_asst"
    CivilSupervisor = "civil_supervisor"
    Plumber = "plumber"
    GirlsHostelRector = "girls_hostel_rector"
    Peon = "peon"
    EtpOperator = "etp_operator"


def new_uid() -> str:
    return uuid.uuid4().hex


class User(SQLModel, table=True):
    __tablename__ = "users"

    id: str = Field(
        default_factory=new_uid,
        sa_column=Column(String(32), primary_key=True)
    )

    name: str = Field(nullable=False)
    email: str = Field(nullable=False, index=True, unique=True)
    password_hash: str = Field(nullable=False)

    # stored by value ("clerk", "hod", ...) so the column stays readable
    role: UserRole = Field(
        sa_column=Column(
            SAEnum(UserRole, name="user_role", values_callable=lambda e: [m.value for m in e]),
            nullable=False,
            index=True,
        )
    )

    department: Optional[str] = Field(
        default=None,
        sa_column=Column(String, nullable=True)
    )

    created_at: datetime = Field(
        default_factory=datetime.utcnow,
        sa_column=Column(DateTime, nullable=False)
    )
