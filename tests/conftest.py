"""Shared pytest fixtures for parqueo tests.

SimulatedStore stands in for PostgreSQL behind the repository functions so
the state machine can be exercised without a database. It keeps the
properties the real store gives us:

- compare-and-swap updates report whether a row changed
- one OPEN reservation per shift (the partial unique index)
- per-transaction rollback: each transaction keeps an undo log, so a failed
  transaction reverts only its own writes, never a competitor's
"""

import sys

sys.dont_write_bytecode = True

from contextlib import contextmanager  # noqa: E402
from datetime import datetime, timezone  # noqa: E402
from typing import Callable  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from parqueo.api.factory import create_app  # noqa: E402
from parqueo.domain import availability as availability_domain  # noqa: E402
from parqueo.domain import reservations as reservations_domain  # noqa: E402
from parqueo.domain.states import ReservationState, ShiftState  # noqa: E402
from parqueo.infra.settings import Settings  # noqa: E402

T0 = datetime(2024, 1, 1, 10, 0, 0, tzinfo=timezone.utc)

_MACHINE_FUNCTIONS = (
    "get_shift",
    "swap_shift_state",
    "insert_open_reservation",
    "get_reservation",
    "has_open_reservation",
    "swap_reservation_state",
)


class SimulatedTxn:
    """Cursor stand-in: records how to undo each write it makes."""

    def __init__(self) -> None:
        self.undo: list[Callable[[], None]] = []


class SimulatedStore:
    def __init__(self) -> None:
        self.spots: dict[int, dict] = {}
        self.shifts: dict[int, dict] = {}
        self.reservations: dict[int, dict] = {}
        self.writes = 0
        self._next_reservation_id = 1
        self._hooks: dict[str, Callable[[], None]] = {}

    # -- seeding --------------------------------------------------------

    def add_shift(
        self,
        shift_id: int,
        *,
        spot_number: int | None = None,
        section: str = "A",
        shift_type: int = 1,
        state: ShiftState = ShiftState.AVAILABLE,
    ) -> int:
        spot_id = len(self.spots) + 1
        self.spots[spot_id] = {
            "number": spot_number if spot_number is not None else shift_id,
            "section": section,
        }
        self.shifts[shift_id] = {
            "id": shift_id,
            "spot_id": spot_id,
            "type": shift_type,
            "state": state,
        }
        return shift_id

    def add_reservation(
        self,
        *,
        shift_id: int,
        user_id: str = "user-1",
        state: ReservationState = ReservationState.OPEN,
        start: datetime = T0,
        end: datetime | None = None,
    ) -> int:
        reservation_id = self._next_reservation_id
        self._next_reservation_id += 1
        self.reservations[reservation_id] = {
            "id": reservation_id,
            "user_id": user_id,
            "shift_id": shift_id,
            "start": start,
            "end": end,
            "created_at": start,
            "state": state,
        }
        return reservation_id

    # -- transactions and interleaving -----------------------------------

    @contextmanager
    def txn(self, pool=None):
        tx = SimulatedTxn()
        try:
            yield tx
        except Exception:
            for undo in reversed(tx.undo):
                undo()
            raise

    def before(self, name: str, hook: Callable[[], None]) -> None:
        """Run `hook` once, right before the next call to repository `name`."""
        self._hooks[name] = hook

    def _fire(self, name: str) -> None:
        hook = self._hooks.pop(name, None)
        if hook is not None:
            hook()

    def install(self, monkeypatch) -> None:
        for name in _MACHINE_FUNCTIONS:
            monkeypatch.setattr(reservations_domain, name, getattr(self, name))
        monkeypatch.setattr(
            availability_domain, "list_shifts_with_occupant", self.list_shifts_with_occupant
        )

    # -- repository API ---------------------------------------------------

    def get_shift(self, cur, shift_id, *, lock=False):
        self._fire("get_shift")
        shift = self.shifts.get(shift_id)
        return dict(shift) if shift else None

    def swap_shift_state(self, cur, shift_id, *, expected, new):
        self._fire("swap_shift_state")
        shift = self.shifts.get(shift_id)
        if shift is None or shift["state"] != expected:
            return False
        shift["state"] = new
        self.writes += 1
        cur.undo.append(lambda: shift.update(state=expected))
        return True

    def list_shifts_with_occupant(self, cur, *, shift_type, section):
        rows = []
        for shift in self.shifts.values():
            spot = self.spots[shift["spot_id"]]
            if shift["type"] != shift_type or spot["section"] != section:
                continue
            open_res = self._open_for(shift["id"])
            rows.append(
                {
                    "shift_id": shift["id"],
                    "spot_number": spot["number"],
                    "shift_type": shift["type"],
                    "state": shift["state"],
                    "section": spot["section"],
                    "occupant_user_id": open_res["user_id"] if open_res else None,
                    "reservation_id": open_res["id"] if open_res else None,
                }
            )
        return sorted(rows, key=lambda r: (r["spot_number"], r["shift_id"]))

    def insert_open_reservation(self, cur, *, user_id, shift_id, start, end, created_at):
        self._fire("insert_open_reservation")
        if self._open_for(shift_id) is not None:
            return None
        reservation_id = self.add_reservation(
            shift_id=shift_id, user_id=user_id, start=start, end=end
        )
        self.writes += 1
        cur.undo.append(lambda: self.reservations.pop(reservation_id))
        return reservation_id

    def get_reservation(self, cur, reservation_id, *, lock=False):
        self._fire("get_reservation")
        res = self.reservations.get(reservation_id)
        if res is None:
            return None
        return {k: res[k] for k in ("id", "user_id", "shift_id", "start", "end", "state")}

    def has_open_reservation(self, cur, shift_id):
        return self._open_for(shift_id) is not None

    def swap_reservation_state(self, cur, reservation_id, *, expected, new, end=None):
        self._fire("swap_reservation_state")
        res = self.reservations.get(reservation_id)
        if res is None or res["state"] != expected:
            return None
        previous = (res["state"], res["end"])
        res["state"] = new
        if end is not None:
            res["end"] = end
        self.writes += 1
        cur.undo.append(lambda: res.update(state=previous[0], end=previous[1]))
        return {"user_id": res["user_id"], "start": res["start"], "end": res["end"]}

    # -- assertions -------------------------------------------------------

    def _open_for(self, shift_id):
        for res in self.reservations.values():
            if res["shift_id"] == shift_id and res["state"] == ReservationState.OPEN:
                return res
        return None

    def assert_consistent(self) -> None:
        """OCCUPIED iff exactly one OPEN reservation references the shift."""
        for shift_id, shift in self.shifts.items():
            open_count = sum(
                1
                for r in self.reservations.values()
                if r["shift_id"] == shift_id and r["state"] == ReservationState.OPEN
            )
            assert open_count <= 1, f"shift {shift_id} has {open_count} open reservations"
            occupied = shift["state"] == ShiftState.OCCUPIED
            assert occupied == (open_count == 1), (
                f"shift {shift_id} is {shift['state'].name} with {open_count} open reservations"
            )


@pytest.fixture
def store(monkeypatch):
    """Simulated store wired into the state machine."""
    s = SimulatedStore()
    s.install(monkeypatch)
    return s


@pytest.fixture
def settings():
    return Settings(database_url="dbname=parqueo_test", environment="production")


@pytest.fixture
def client_for(monkeypatch, store):
    """Build a TestClient whose routes run on the simulated store."""
    from parqueo.api.routes import availability, reservations

    monkeypatch.setattr(reservations, "txn", store.txn)
    monkeypatch.setattr(availability, "txn", store.txn)

    def _make(settings: Settings) -> TestClient:
        app = create_app(settings, pool=object())
        return TestClient(app, raise_server_exceptions=False)

    return _make


@pytest.fixture
def client(client_for, settings):
    return client_for(settings)
