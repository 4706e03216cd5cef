from __future__ import annotations

from collections import Counter
from dataclasses import dataclass
from datetime import date

import pytest

from crewboard_core.config import Config
from crewboard_core.repository import StateRepository
from crewboard_core.service import CoreService
from crewboard_core.utils import ViewWindow

# Monday; the displayed window runs Mon 7 to Fri 11 January 2030
TODAY = date(2030, 1, 7)
WINDOW = ViewWindow(start=TODAY, days=5)


@dataclass
class Board:
    service: CoreService
    crew: str
    crew2: str
    crew3: str
    cctv: str
    jet: str
    recycler: str
    alice: str
    bob: str
    carol: str

    def add(self, kind: str, day: date, crew_id: str | None = None, **values):
        return self.service.create_item(
            kind=kind,
            day=day,
            crew_id=crew_id or self.crew,
            today=TODAY,
            window=WINDOW,
            **values,
        )

    def assign(self, employee_id: str, vehicle_id: str, day: date, crew_id: str | None = None, **values):
        return self.add("assignment", day, crew_id, employee_id=employee_id, vehicle_id=vehicle_id, **values)[0]

    def cell(self, crew_id: str, day: date):
        return [item for item in self.service.state.items.values() if item.crew_id == crew_id and item.day == day]

    def free_jobs(self, crew_id: str, day: date):
        return [item for item in self.cell(crew_id, day) if item.is_auto_linked]


def assert_one_free_job_per_employee(service: CoreService) -> None:
    counts = Counter(
        (item.crew_id, item.day, item.employee_id) for item in service.state.items.values() if item.is_auto_linked
    )
    assert all(count == 1 for count in counts.values()), counts


@pytest.fixture
def service(tmp_path) -> CoreService:
    repo = StateRepository(tmp_path / "state.json")
    return CoreService(repo, Config())


@pytest.fixture
def board(service: CoreService) -> Board:
    crew = service.add_crew(name="Alpha")
    crew2 = service.add_crew(name="Bravo")
    crew3 = service.add_crew(name="Charlie")
    cctv = service.add_vehicle(name="CCTV 1", vehicle_type="CCTV")
    jet = service.add_vehicle(name="Jetter 4", vehicle_type="Jet Vac")
    recycler = service.add_vehicle(name="Recycler 2", vehicle_type="Recycler")
    alice = service.add_employee(name="Alice")
    bob = service.add_employee(name="Bob")
    carol = service.add_employee(name="Carol")
    return Board(
        service=service,
        crew=crew.id,
        crew2=crew2.id,
        crew3=crew3.id,
        cctv=cctv.id,
        jet=jet.id,
        recycler=recycler.id,
        alice=alice.id,
        bob=bob.id,
        carol=carol.id,
    )
