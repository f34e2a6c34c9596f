"""Patient schemas shared by booking and queue admission."""

from datetime import date
from typing import Annotated, Literal

from pydantic import BaseModel, Field

from app.core.exceptions import BadRequestException

PHONE_PATTERN = r"^[+]?[0-9\s\-()]+$"


class PatientCreate(BaseModel):
    """New-patient payload; returns the existing record when the phone is known."""

    name: str = Field(..., min_length=1, max_length=100)
    phone: str = Field(..., min_length=1, max_length=20, pattern=PHONE_PATTERN)
    dob: date | None = None
    notes: str | None = None


class PatientSummary(BaseModel):
    """Patient identity embedded in appointment and queue responses."""

    id: int
    name: str
    phone: str


class ExistingPatient(BaseModel):
    """Reference to a registered patient."""

    kind: Literal["existing"] = "existing"
    patient_id: int


class NewPatient(BaseModel):
    """Patient to create (or reuse by phone) as part of the operation."""

    kind: Literal["new"] = "new"
    patient: PatientCreate


PatientRef = Annotated[ExistingPatient | NewPatient, Field(discriminator="kind")]


class PatientSelection(BaseModel):
    """Request fields selecting a patient: an existing id or a new-patient payload."""

    patient_id: int | None = Field(None, ge=1, description="Patient ID (use this OR patient)")
    patient: PatientCreate | None = Field(None, description="New patient (use this OR patient_id)")

    def patient_ref(self) -> PatientRef:
        """
        Convert the selector fields to a tagged patient reference.

        Raises:
            BadRequestException: If both or neither selector is supplied
        """
        if self.patient_id is None and self.patient is None:
            raise BadRequestException("Either patient_id or patient object must be provided")

        if self.patient_id is not None and self.patient is not None:
            raise BadRequestException("Cannot provide both patient_id and patient object")

        if self.patient is not None:
            return NewPatient(patient=self.patient)
        return ExistingPatient(patient_id=self.patient_id)
