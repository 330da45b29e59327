"""Record factories shared by the test modules."""

from datetime import datetime
from itertools import count

from src.domain.records import ObservationRecord, PatientRecord

NOW = datetime(2024, 3, 15, 14, 30)

_ids = count(1)


def make_patient(**overrides) -> PatientRecord:
    """Build a NICU patient admitted 2024-03-01 08:00, in progress by default."""
    data = {
        "id": f"P{next(_ids):04d}",
        "unit": "NICU",
        "admission_type": "Inborn",
        "gender": "Male",
        "diagnosis": "Jaundice",
        "admission_date": datetime(2024, 3, 1, 8, 0),
    }
    data.update(overrides)
    return PatientRecord(**data)


def make_observation(**overrides) -> ObservationRecord:
    """Build an NICU observation entry started 2024-03-15 09:00."""
    data = {
        "id": f"O{next(_ids):04d}",
        "unit": "NICU",
        "admission_type": "Inborn",
        "reason_for_observation": "Low APGAR",
        "date_of_observation": datetime(2024, 3, 15, 9, 0),
    }
    data.update(overrides)
    return ObservationRecord(**data)
