import json
import random
from datetime import datetime, timedelta, timezone

import pytest

from flightstat_proxy.models import EndpointKind, FlightStatus
from flightstat_proxy.normalizer import FlightNormalizer, derive_status
from flightstat_proxy.utils import parse_instant

from conftest import NOW, make_record

ARR = EndpointKind.ARRIVALS
SCHED = EndpointKind.SCHEDULED_ARRIVALS


def _normalize(raw, kind=ARR, now=NOW, airport="EDDK"):
    return FlightNormalizer(now, airport).normalize(raw, kind)


def test_future_scheduled_only_is_scheduled():
    flight = _normalize({"scheduled_in": "2025-01-01T13:00:00Z"}, SCHED)

    assert flight.status is FlightStatus.SCHEDULED
    assert flight.progress_percent == 0


def test_past_estimate_without_actual_is_delayed():
    flight = _normalize({"estimated_in": "2025-01-01T11:00:00Z"})

    assert flight.status is FlightStatus.DELAYED


def test_future_estimate_is_en_route():
    flight = _normalize(
        {"scheduled_in": "2025-01-01T10:00:00Z", "estimated_in": "2025-01-01T12:30:00Z"}
    )

    assert flight.status is FlightStatus.EN_ROUTE


def test_past_scheduled_only_is_delayed():
    flight = _normalize({"scheduled_in": "2025-01-01T11:59:59Z"})

    assert flight.status is FlightStatus.DELAYED


def test_actual_wins_over_estimate():
    flight = _normalize(
        {
            "actual_in": "2025-01-01T11:40:00Z",
            "estimated_in": "2025-01-01T14:00:00Z",
            "scheduled_in": "2025-01-01T15:00:00Z",
        }
    )

    assert flight.status is FlightStatus.LANDED
    assert flight.progress_percent == 100


def test_provider_status_text_is_ignored():
    flight = _normalize({"status": "Landed / Taxiing", "scheduled_in": "2025-01-01T18:00:00Z"})

    assert flight.status is FlightStatus.SCHEDULED


def test_no_timestamps_is_unknown_with_defaults():
    flight = _normalize({}, SCHED)

    assert flight.status is FlightStatus.UNKNOWN
    assert flight.ident == "N/A"
    assert flight.operator == "Unknown"
    assert flight.origin.code == "XXX"
    assert flight.origin.name == "Unknown Airport"
    assert flight.destination.code == "EDDK"
    assert flight.source is SCHED


def test_malformed_timestamps_count_as_absent():
    flight = _normalize({"actual_in": "not-a-date", "scheduled_in": 12, "estimated_in": True})

    assert flight.actual_in is None
    assert flight.estimated_in is None
    # epoch seconds are accepted
    assert flight.scheduled_in == datetime(1970, 1, 1, 0, 0, 12, tzinfo=timezone.utc)
    assert flight.status is FlightStatus.DELAYED


def test_progress_is_clamped_and_supplied_value_kept():
    assert _normalize({"progress_percent": 250}).progress_percent == 100
    assert _normalize({"progress_percent": -4}).progress_percent == 0
    assert _normalize({"progress_percent": "37"}).progress_percent == 37
    landed = _normalize({"actual_in": "2025-01-01T10:00:00Z", "progress_percent": 80})
    assert landed.progress_percent == 80


def test_origin_prefers_iata_then_icao():
    flight = _normalize(make_record("DLH1-1"))
    assert flight.origin.code == "MUC"
    assert flight.origin.city == "Munich"

    icao_only = _normalize({"origin": {"code_icao": "EDDF"}})
    assert icao_only.origin.code == "EDDF"


def test_callsign_uses_atc_ident_when_present():
    flight = _normalize({"ident": "LH123", "atc_ident": "DLH123"})

    assert flight.ident == "LH123"
    assert flight.callsign == "DLH123"


def test_placeholder_ids_do_not_collide_within_batch():
    normalizer = FlightNormalizer(NOW, "EDDK")
    ids = [normalizer.normalize({}, ARR).id for _ in range(3)]
    ids += [normalizer.normalize({}, SCHED).id for _ in range(3)]

    assert len(set(ids)) == 6


def test_same_input_same_flight():
    raw = make_record("DLH9-1", estimated_in="2025-01-01T12:10:00Z", progress_percent=55)

    assert _normalize(raw) == _normalize(raw)


def test_serialized_flight_normalizes_back_to_itself():
    raw = make_record(
        "EWG7-1",
        atc_ident="EWG7X",
        scheduled_in="2025-01-01T12:45:00.250Z",
        estimated_in="2025-01-01T12:50:00+01:00",
        registration="D-AIAB",
        destination={"code_icao": "EDDK", "name": "Cologne Bonn", "city": "Cologne"},
    )
    first = _normalize(raw, SCHED)

    wire = json.loads(json.dumps(first.model_dump(mode="json", by_alias=True)))
    second = _normalize(wire, SCHED)

    assert second == first


@pytest.mark.parametrize("seed", range(3))
def test_status_is_always_from_closed_set(seed):
    rng = random.Random(seed)
    choices = [None, "garbage", 0, "2025-01-01T11:00:00Z", "2025-01-01T13:00:00Z"]
    for _ in range(300):
        raw = {
            key: rng.choice(choices)
            for key in ("scheduled_in", "estimated_in", "actual_in")
        }
        flight = _normalize(raw)
        assert flight.status in set(FlightStatus)
        assert 0 <= flight.progress_percent <= 100


def test_derive_status_boundary_equal_to_now_is_delayed():
    assert derive_status(NOW, NOW, None, None) is FlightStatus.DELAYED
    assert derive_status(NOW, None, NOW + timedelta(seconds=1), None) is FlightStatus.EN_ROUTE


def test_placeholder_skips_provider_id_from_other_window():
    normalizer = FlightNormalizer(NOW, "EDDK")
    normalizer.reserve([{"fa_flight_id": "flight-arrivals-1"}])

    placeholder = normalizer.normalize({}, ARR)

    assert placeholder.id != "flight-arrivals-1"
    assert placeholder.id.startswith("flight-arrivals-")


def test_sub_second_estimate_compared_exactly_against_now():
    now = NOW.replace(microsecond=500000)

    flight = _normalize({"estimated_in": "2025-01-01T12:00:00.9Z"}, now=now)

    assert flight.estimated_in.microsecond == 900000
    assert flight.status is FlightStatus.EN_ROUTE
    assert _normalize({"estimated_in": "2025-01-01T12:00:00.1Z"}, now=now).status is FlightStatus.DELAYED


def test_parse_instant_keeps_fraction_digits():
    assert parse_instant("2025-01-01T12:00:00.25Z").microsecond == 250000
    assert parse_instant("2025-01-01T12:00:00.1234567+00:00").microsecond == 123456
    assert parse_instant("2025-01-01T12:00:00Z").microsecond == 0
