"""
OPD day scenarios for the Token Allocator simulation.

Provides:
1. Pydantic models describing a simulated day (doctors, patients, phases).
2. The built-in default day (3 doctors, 10 patients, 3 phases).
3. A tolerant JSON loader that skips invalid entries instead of failing the run.
"""

import json
import logging
import re
from typing import Any, Dict, List, Type

from pydantic import BaseModel, Field, ValidationError

from models import Provider

logger = logging.getLogger(__name__)


class Patient(BaseModel):
    id: str = Field(min_length=1)
    name: str = Field(min_length=1)
    phone: str = ""
    type: str = Field(default="regular", description="regular / priority / followup / emergency")


class BookingRequest(BaseModel):
    """A regular allocation request."""
    patient_id: str
    provider_id: str
    time: str = Field(description="Preferred slot, 'HH:MM'")
    source: str = Field(default="walkin")
    label: str = Field(default="Booking", description="Narrative label for the log")


class EmergencyRequest(BaseModel):
    patient_id: str
    provider_id: str
    time: str


class ScenarioPhase(BaseModel):
    """
    One block of the day. Events run in order: bookings, emergencies,
    cancellations, late bookings.
    """
    name: str
    bookings: List[BookingRequest] = Field(default_factory=list)
    emergencies: List[EmergencyRequest] = Field(default_factory=list)
    cancellations: List[int] = Field(
        default_factory=list,
        description="Indices into the list of tokens allocated so far (in allocation order)"
    )
    late_bookings: List[BookingRequest] = Field(default_factory=list)


class Scenario(BaseModel):
    providers: List[Provider] = Field(default_factory=list)
    patients: List[Patient] = Field(default_factory=list)
    phases: List[ScenarioPhase] = Field(default_factory=list)

    def patient_name(self, patient_id: str) -> str:
        for p in self.patients:
            if p.id == patient_id:
                return p.name
        return patient_id


def default_scenario() -> Scenario:
    """A full OPD day with three doctors handling mixed traffic."""
    providers = [
        Provider(id="DOC001", name="Dr. Sarah Johnson", specialization="General Medicine",
                 working_hours_start="09:00", working_hours_end="17:00"),
        Provider(id="DOC002", name="Dr. Michael Chen", specialization="Cardiology",
                 working_hours_start="10:00", working_hours_end="16:00"),
        Provider(id="DOC003", name="Dr. Priya Sharma", specialization="Pediatrics",
                 working_hours_start="08:00", working_hours_end="18:00"),
    ]

    patients = [
        Patient(id="P001", name="John Smith", phone="555-0101", type="regular"),
        Patient(id="P002", name="Emma Wilson", phone="555-0102", type="priority"),
        Patient(id="P003", name="Robert Brown", phone="555-0103", type="regular"),
        Patient(id="P004", name="Lisa Davis", phone="555-0104", type="followup"),
        Patient(id="P005", name="David Miller", phone="555-0105", type="emergency"),
        Patient(id="P006", name="Anna Garcia", phone="555-0106", type="regular"),
        Patient(id="P007", name="James Wilson", phone="555-0107", type="priority"),
        Patient(id="P008", name="Maria Rodriguez", phone="555-0108", type="regular"),
        Patient(id="P009", name="Thomas Anderson", phone="555-0109", type="followup"),
        Patient(id="P010", name="Jennifer Lee", phone="555-0110", type="regular"),
    ]

    morning = ScenarioPhase(
        name="Morning Rush",
        bookings=[
            # Online bookings made the previous night
            BookingRequest(patient_id="P001", provider_id="DOC001", time="09:00", source="online", label="Online booking"),
            BookingRequest(patient_id="P002", provider_id="DOC002", time="10:00", source="priority", label="Online booking"),
            BookingRequest(patient_id="P003", provider_id="DOC003", time="08:00", source="online", label="Online booking"),
            BookingRequest(patient_id="P004", provider_id="DOC001", time="10:00", source="followup", label="Online booking"),
            # Walk-ins arriving
            BookingRequest(patient_id="P006", provider_id="DOC001", time="09:00", label="Walk-in"),
            BookingRequest(patient_id="P008", provider_id="DOC003", time="09:00", label="Walk-in"),
            BookingRequest(patient_id="P010", provider_id="DOC002", time="11:00", label="Walk-in"),
        ],
    )

    midday = ScenarioPhase(
        name="Midday Scenarios",
        emergencies=[EmergencyRequest(patient_id="P005", provider_id="DOC001", time="12:00")],
        cancellations=[0],
        late_bookings=[
            BookingRequest(patient_id="P007", provider_id="DOC002", time="13:00", source="priority", label="Priority booking"),
        ],
    )

    afternoon = ScenarioPhase(
        name="Afternoon Operations",
        bookings=[
            BookingRequest(patient_id="P009", provider_id="DOC003", time="15:00", source="followup", label="Follow-up"),
            BookingRequest(patient_id="P010", provider_id="DOC001", time="16:00", source="online", label="Late booking"),
        ],
    )

    return Scenario(providers=providers, patients=patients, phases=[morning, midday, afternoon])


def _robust_parse_json(raw_text: str) -> Dict[str, Any]:
    """
    Handles markdown code fences and stray text around the JSON object.
    """
    if not raw_text:
        return {}

    clean_text = re.sub(r"```json\s*|\s*```", "", raw_text).strip()
    try:
        data = json.loads(clean_text)
    except json.JSONDecodeError:
        match = re.search(r"(\{.*\})", clean_text, re.DOTALL)
        if not match:
            return {}
        try:
            data = json.loads(match.group(1))
        except json.JSONDecodeError:
            return {}

    return data if isinstance(data, dict) else {}


def _validate_items(items: List[Any], model_class: Type[BaseModel], section: str) -> List[BaseModel]:
    valid_items = []
    for i, item in enumerate(items or []):
        try:
            valid_items.append(model_class(**item))
        except (ValidationError, TypeError) as e:
            logger.warning(f"Skipping invalid {section} entry {i}: {e}")
    return valid_items


def parse_scenario(raw_text: str) -> Scenario:
    data = _robust_parse_json(raw_text)
    return Scenario(
        providers=_validate_items(data.get("providers", []), Provider, "provider"),
        patients=_validate_items(data.get("patients", []), Patient, "patient"),
        phases=_validate_items(data.get("phases", []), ScenarioPhase, "phase"),
    )


def load_scenario(filename: str) -> Scenario:
    """Read and validate a scenario file. Raises FileNotFoundError if missing."""
    with open(filename, "r") as f:
        raw_text = f.read()

    scenario = parse_scenario(raw_text)
    logger.info(
        f"Loaded scenario from {filename}: {len(scenario.providers)} doctors, "
        f"{len(scenario.patients)} patients, {len(scenario.phases)} phases"
    )
    return scenario
