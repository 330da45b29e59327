"""Shared fixtures for ward analytics tests.

All tests run against a fixed clock (Friday 2024-03-15 14:30, naive local
time) so that relative periods resolve deterministically.
"""

from datetime import datetime

import pytest

from factories import NOW, make_patient


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def ward_records():
    """Ten NICU/PICU patients with a spread of outcomes and dates."""
    return [
        # Active
        make_patient(id="A1", weight=1.2, age=0.5, age_unit="days"),
        make_patient(id="A2", weight=2.0, age=3, age_unit="days", admission_date=datetime(2024, 3, 14, 22, 0)),
        make_patient(id="A3", unit="PICU", weight=12.0, age=2, age_unit="years",
                     admission_type="Outborn", diagnosis="Pneumonia"),
        # Discharged
        make_patient(id="D1", outcome="Discharged", weight=3.1,
                     release_date=datetime(2024, 3, 4, 10, 0)),
        make_patient(id="D2", outcome="Discharged", weight=2.7,
                     admission_date=datetime(2024, 2, 20, 9, 0),
                     release_date=datetime(2024, 2, 25, 9, 0)),
        make_patient(id="D3", outcome="Discharged", unit="PICU", admission_type="Outborn (Community Referred)",
                     admission_date=datetime(2024, 3, 10, 11, 0),
                     final_discharge_date=datetime(2024, 3, 12, 15, 0)),
        # Referred
        make_patient(id="R1", outcome="Referred", diagnosis="Pneumonia",
                     release_date=datetime(2024, 3, 2, 16, 0)),
        # Deceased
        make_patient(id="X1", outcome="Deceased", weight=0.9, diagnosis="Neonatal Sepsis",
                     admission_date=datetime(2024, 3, 11, 6, 0),
                     date_of_death=datetime(2024, 3, 11, 10, 0)),
        make_patient(id="X2", outcome="Deceased", admission_type="Outborn",
                     admission_date=datetime(2024, 3, 13, 9, 0),
                     release_date=datetime(2024, 3, 16, 9, 0)),
        # Step down, readmitted later
        make_patient(id="S1", outcome="Step Down", readmission_from_step_down=True,
                     step_down_date=datetime(2024, 3, 8, 12, 0)),
    ]
