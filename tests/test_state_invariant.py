"""Shift/reservation consistency under random operation sequences."""

import random
from datetime import timedelta

import pytest

from conftest import T0
from parqueo.domain.errors import ParkingError
from parqueo.domain.reservations import (
    cancel_reservation,
    check_in_visitor,
    check_out_visitor,
    reserve,
)

SHIFT_IDS = (1, 2, 3)


def _step(store, rng, now):
    op = rng.choice(("reserve", "check_in", "check_out", "cancel"))
    with store.txn() as cur:
        if op == "reserve":
            reserve(cur, user_id=f"u{rng.randint(1, 9)}", shift_id=rng.choice(SHIFT_IDS), now=now)
        elif op == "check_in":
            check_in_visitor(cur, user_id=f"v{rng.randint(1, 9)}", shift_id=rng.choice(SHIFT_IDS), now=now)
        else:
            # Include ids that do not exist yet
            reservation_id = rng.randint(1, len(store.reservations) + 2)
            if op == "check_out":
                check_out_visitor(cur, reservation_id=reservation_id, now=now)
            else:
                cancel_reservation(cur, reservation_id=reservation_id)


@pytest.mark.parametrize("seed", range(10))
def test_occupied_iff_one_open_reservation(store, seed):
    rng = random.Random(seed)
    for shift_id in SHIFT_IDS:
        store.add_shift(shift_id)

    now = T0
    for _ in range(200):
        now += timedelta(minutes=rng.randint(1, 90))
        try:
            _step(store, rng, now)
        except ParkingError:
            pass
        store.assert_consistent()
